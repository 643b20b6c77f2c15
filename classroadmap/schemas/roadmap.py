"""
Roadmap schemas for classroadmap.

Defines Pydantic models for the curriculum roadmap:
- Sections ("Bài N") and the lesson resources they hold
- Attached file records
- Entity references used to address a node in the tree
- Drafts sent to the remote store when creating nodes
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Remote ids are integers; local fixtures and tests often use strings.
NodeId = Union[int, str]


class EntityKind(str, Enum):
    SECTION = "section"
    LESSON = "lesson"


# -----------------------------------------------------------------------------
# Files
# -----------------------------------------------------------------------------


class FileRecord(BaseModel):
    """A file attached to a lesson, as stored by the file service."""
    id: Optional[NodeId] = None
    file_name: str
    file_url: str
    file_type: str = "application/octet-stream"  # MIME type
    file_size: int = Field(0, ge=0)
    folder: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None


# -----------------------------------------------------------------------------
# Roadmap tree
# -----------------------------------------------------------------------------


class LessonResource(BaseModel):
    id: NodeId
    title: str
    description: str = ""
    order: int = Field(0, ge=0)  # position among siblings in the section
    parent_section_id: NodeId    # back-reference, the section owns the lesson
    background_image: Optional[str] = None
    icon_image: Optional[str] = None
    file_ref: Optional[FileRecord] = None


class RoadmapSection(BaseModel):
    id: NodeId
    title: str
    description: str = ""
    order: int = Field(0, ge=0)  # position among sections in the roadmap
    background_image: Optional[str] = None
    icon_image: Optional[str] = None
    children: list[LessonResource] = []


# Fields an edit may touch. Ordering and identity change only through
# dedicated store operations.
EDITABLE_SECTION_FIELDS = frozenset({
    "title",
    "description",
    "background_image",
    "icon_image",
})
EDITABLE_LESSON_FIELDS = EDITABLE_SECTION_FIELDS | {"file_ref"}
PROTECTED_FIELDS = frozenset({"id", "order", "children", "parent_section_id"})


# -----------------------------------------------------------------------------
# References
# -----------------------------------------------------------------------------


class EntityRef(BaseModel):
    """
    Address of a node in the roadmap.

    Lesson ids are only unique within their section, so a lesson ref may
    carry the parent ``section_id``. Without it the store searches every
    section and rejects ambiguous ids.
    """
    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    id: NodeId
    section_id: Optional[NodeId] = None

    @model_validator(mode="after")
    def _section_has_no_parent(self):
        if self.kind == EntityKind.SECTION and self.section_id is not None:
            raise ValueError("a section ref cannot name a parent section")
        return self

    @classmethod
    def section(cls, section_id: NodeId) -> "EntityRef":
        return cls(kind=EntityKind.SECTION, id=section_id)

    @classmethod
    def lesson(cls, lesson_id: NodeId, section_id: Optional[NodeId] = None) -> "EntityRef":
        return cls(kind=EntityKind.LESSON, id=lesson_id, section_id=section_id)

    @property
    def is_section(self) -> bool:
        return self.kind == EntityKind.SECTION


# -----------------------------------------------------------------------------
# Drafts (creation requests)
# -----------------------------------------------------------------------------


class SectionDraft(BaseModel):
    """Fields for a node that does not exist yet; the remote store assigns the id."""
    title: str
    description: str = ""
    background_image: Optional[str] = None
    icon_image: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value


class LessonDraft(SectionDraft):
    file_ref: Optional[FileRecord] = None
    upload_path: Optional[Path] = None  # local file to attach on creation
