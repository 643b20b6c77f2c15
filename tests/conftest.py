"""
Shared fixtures for classroadmap tests.

ScriptedBackend stands in for the remote store: it records every call, can
be told to fail specific operations, and in manual mode holds each call
open until the test resolves it.
"""

import asyncio
import itertools

import pytest

from classroadmap.backends.base import FetchedFile, FileFetcher, RoadmapBackend
from classroadmap.roadmap import CurriculumEditor, RoadmapStore, SelectionController
from classroadmap.schemas import LessonResource, RoadmapSection
from classroadmap.viewer import FileViewer


class ScriptedBackend(RoadmapBackend):
    def __init__(self, sections=None):
        self.sections = sections or []
        self.calls = []
        self.fail_on = set()
        self.manual = False
        self.pending: list[asyncio.Future] = []
        self._ids = itertools.count(1)

    async def _run(self, name, *args, result=None):
        self.calls.append((name, *args))
        if self.manual:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            await future
        if name in self.fail_on:
            raise RuntimeError(f"{name} rejected")
        return result

    def call_names(self):
        return [call[0] for call in self.calls]

    async def list_sections(self):
        return await self._run("list_sections", result=[s.model_copy(deep=True) for s in self.sections])

    async def create_section(self, draft):
        section = RoadmapSection(id=f"new-s{next(self._ids)}", title=draft.title,
                                 description=draft.description)
        return await self._run("create_section", draft, result=section)

    async def update_section(self, section_id, fields):
        return await self._run("update_section", section_id, fields)

    async def delete_section(self, section_id):
        return await self._run("delete_section", section_id)

    async def create_lesson(self, section_id, draft):
        lesson = LessonResource(id=f"new-l{next(self._ids)}", title=draft.title,
                                description=draft.description, parent_section_id=section_id,
                                file_ref=draft.file_ref)
        return await self._run("create_lesson", section_id, draft, result=lesson)

    async def update_lesson(self, section_id, lesson_id, fields):
        return await self._run("update_lesson", section_id, lesson_id, fields)

    async def delete_lesson(self, section_id, lesson_id):
        return await self._run("delete_lesson", section_id, lesson_id)


class StaticFetcher(FileFetcher):
    def __init__(self, content=b"%PDF-1.4", mime_type=None, error=None):
        self.content = content
        self.mime_type = mime_type
        self.error = error
        self.requested = []

    async def fetch(self, file_ref):
        self.requested.append(file_ref.file_url)
        if self.error is not None:
            raise self.error
        return FetchedFile(content=self.content, mime_type=self.mime_type)


async def settle():
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(5):
        await asyncio.sleep(0)


def make_section(section_id, order, lesson_ids=(), **fields):
    return RoadmapSection(
        id=section_id,
        title=fields.pop("title", f"Section {section_id}"),
        order=order,
        children=[
            LessonResource(id=lesson_id, title=f"Lesson {lesson_id}", order=idx,
                           parent_section_id=section_id)
            for idx, lesson_id in enumerate(lesson_ids)
        ],
        **fields,
    )


@pytest.fixture
def abc_sections():
    """Roadmap [A(a1,a2), B(b1,b2), C(c1,c2)]."""
    return [
        make_section("A", 0, ["a1", "a2"]),
        make_section("B", 1, ["b1", "b2"]),
        make_section("C", 2, ["c1", "c2"]),
    ]


@pytest.fixture
def store(abc_sections):
    return RoadmapStore(abc_sections)


@pytest.fixture
def selection(store):
    return SelectionController(store)


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def fetcher():
    return StaticFetcher()


@pytest.fixture
def editor(store, selection, backend, fetcher):
    return CurriculumEditor(store, selection, backend, FileViewer(fetcher))
