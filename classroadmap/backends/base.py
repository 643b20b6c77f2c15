"""
Interfaces for the collaborators the roadmap core talks to.

- RoadmapBackend: remote (or local) store that persists sections and lessons
  and assigns their ids
- FileFetcher: retrieves the bytes behind a lesson's file record

Implementations raise PersistenceError / ResourceUnavailableError; the
editor maps anything else to those as well.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from classroadmap.schemas import (
    FileRecord,
    LessonDraft,
    LessonResource,
    NodeId,
    RoadmapSection,
    SectionDraft,
)


class RoadmapBackend(ABC):
    """Persistence for one class's roadmap."""

    @abstractmethod
    async def list_sections(self) -> list[RoadmapSection]:
        """Fetch the whole roadmap, sections and lessons in order."""
        pass

    @abstractmethod
    async def create_section(self, draft: SectionDraft) -> RoadmapSection:
        """Create a section and return it with its assigned id."""
        pass

    @abstractmethod
    async def update_section(self, section_id: NodeId, fields: dict[str, Any]) -> RoadmapSection:
        pass

    @abstractmethod
    async def delete_section(self, section_id: NodeId) -> None:
        """Delete a section together with its lessons."""
        pass

    @abstractmethod
    async def create_lesson(self, section_id: NodeId, draft: LessonDraft) -> LessonResource:
        """Create a lesson under ``section_id`` and return it with its assigned id."""
        pass

    @abstractmethod
    async def update_lesson(self, section_id: NodeId, lesson_id: NodeId,
                            fields: dict[str, Any]) -> LessonResource:
        pass

    @abstractmethod
    async def delete_lesson(self, section_id: NodeId, lesson_id: NodeId) -> None:
        pass


@dataclass
class FetchedFile:
    """Raw file content plus the MIME type reported by the source."""
    content: bytes
    mime_type: Optional[str] = None


class FileFetcher(ABC):
    """Source of lesson file contents."""

    @abstractmethod
    async def fetch(self, file_ref: FileRecord) -> FetchedFile:
        pass
