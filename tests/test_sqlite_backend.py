"""Tests for the SQLite roadmap backend."""

import asyncio

import pytest

from classroadmap.backends import SQLiteRoadmapBackend
from classroadmap.errors import PersistenceError
from classroadmap.roadmap import CurriculumEditor, RoadmapStore, SelectionController
from classroadmap.schemas import EntityRef, FileRecord, LessonDraft, SectionDraft


@pytest.fixture
def db(tmp_path):
    return SQLiteRoadmapBackend(db_path=tmp_path / "roadmap.db", class_id="10A1")


@pytest.fixture
def seeded(db):
    first = db.create_section_sync(SectionDraft(title="Bài mở đầu"))
    second = db.create_section_sync(SectionDraft(title="Ngữ pháp", description="Thì hiện tại"))
    db.create_lesson_sync(first.id, LessonDraft(title="Chào hỏi"))
    db.create_lesson_sync(first.id, LessonDraft(title="Giới thiệu bản thân"))
    db.create_lesson_sync(second.id, LessonDraft(title="Present simple"))
    return db


class TestSQLiteBackend:

    def test_empty(self, db):
        assert db.list_sections_sync() == []

    def test_create_and_list(self, seeded):
        sections = seeded.list_sections_sync()
        assert [s.title for s in sections] == ["Bài mở đầu", "Ngữ pháp"]
        assert [s.order for s in sections] == [0, 1]
        assert [l.title for l in sections[0].children] == ["Chào hỏi", "Giới thiệu bản thân"]
        assert all(l.parent_section_id == sections[0].id for l in sections[0].children)

    def test_created_ids_are_assigned(self, db):
        section = db.create_section_sync(SectionDraft(title="A"))
        lesson = db.create_lesson_sync(section.id, LessonDraft(title="a1"))
        assert isinstance(section.id, int)
        assert lesson.parent_section_id == section.id
        assert lesson.order == 0

    def test_class_isolation(self, seeded, tmp_path):
        other = SQLiteRoadmapBackend(db_path=tmp_path / "roadmap.db", class_id="10A2")
        assert other.list_sections_sync() == []

    def test_create_lesson_unknown_section(self, db):
        with pytest.raises(PersistenceError):
            db.create_lesson_sync(999, LessonDraft(title="orphan"))

    def test_update_section(self, seeded):
        section = seeded.list_sections_sync()[1]
        updated = seeded.update_section_sync(section.id, {"title": "Grammar", "icon_image": "g.png"})
        assert updated.title == "Grammar"
        assert updated.description == "Thì hiện tại"
        assert len(updated.children) == 1
        assert seeded.list_sections_sync()[1].icon_image == "g.png"

    def test_update_lesson_file(self, seeded):
        section = seeded.list_sections_sync()[0]
        lesson = section.children[1]
        record = FileRecord(file_name="intro.pdf", file_url="/tmp/intro.pdf", file_type="application/pdf")
        seeded.update_lesson_sync(section.id, lesson.id, {"file_ref": record})
        stored = seeded.list_sections_sync()[0].children[1]
        assert stored.file_ref == record

    def test_update_lesson_wrong_section(self, seeded):
        first, second = seeded.list_sections_sync()
        with pytest.raises(PersistenceError):
            seeded.update_lesson_sync(second.id, first.children[0].id, {"title": "x"})

    def test_update_unknown_field(self, seeded):
        section = seeded.list_sections_sync()[0]
        with pytest.raises(PersistenceError):
            seeded.update_section_sync(section.id, {"order": 4})

    def test_delete_section_cascades_and_compacts(self, seeded):
        first, second = seeded.list_sections_sync()
        seeded.delete_section_sync(first.id)
        sections = seeded.list_sections_sync()
        assert [s.id for s in sections] == [second.id]
        assert sections[0].order == 0

        third = seeded.create_section_sync(SectionDraft(title="Ôn tập"))
        assert [s.id for s in seeded.list_sections_sync()] == [second.id, third.id]

    def test_delete_lesson_compacts(self, seeded):
        section = seeded.list_sections_sync()[0]
        seeded.delete_lesson_sync(section.id, section.children[0].id)
        children = seeded.list_sections_sync()[0].children
        assert [l.title for l in children] == ["Giới thiệu bản thân"]
        assert children[0].order == 0

    def test_delete_missing(self, db):
        with pytest.raises(PersistenceError):
            db.delete_section_sync(42)

    def test_upload_path_records_file(self, db, tmp_path):
        upload = tmp_path / "worksheet.pdf"
        upload.write_bytes(b"%PDF-1.4 test")
        section = db.create_section_sync(SectionDraft(title="A"))
        lesson = db.create_lesson_sync(section.id, LessonDraft(title="Bài tập", upload_path=upload))
        assert lesson.file_ref.file_name == "worksheet.pdf"
        assert lesson.file_ref.file_type == "application/pdf"
        assert lesson.file_ref.file_size == upload.stat().st_size

    def test_upload_path_missing(self, db, tmp_path):
        section = db.create_section_sync(SectionDraft(title="A"))
        with pytest.raises(PersistenceError):
            db.create_lesson_sync(section.id, LessonDraft(title="x", upload_path=tmp_path / "nope.pdf"))


class TestSQLiteWithEditor:

    def test_editor_round_trip(self, seeded):
        store = RoadmapStore()
        selection = SelectionController(store)
        editor = CurriculumEditor(store, selection, seeded)

        async def scenario():
            await editor.refresh()
            first_id = store.section_ids[0]
            await editor.edit(EntityRef.section(first_id), {"description": "Tuần 1"})
            created = await editor.create_lesson(first_id, LessonDraft(title="Luyện tập"))
            await editor.delete(EntityRef.section(store.section_ids[1]))
            return first_id, created

        first_id, created = asyncio.run(scenario())

        reloaded = seeded.list_sections_sync()
        assert [s.id for s in reloaded] == [first_id]
        assert reloaded[0].description == "Tuần 1"
        assert reloaded[0].children[-1].id == created.id
        assert reloaded == store.sections
