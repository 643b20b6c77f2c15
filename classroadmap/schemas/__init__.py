"""
classroadmap schemas - Pydantic models for the curriculum roadmap.

This module exports all schema classes for:
- Roadmap: sections, lesson resources, file records, refs and drafts
- API: the REST response envelope
"""

# Roadmap schemas
from .roadmap import (
    NodeId,
    EntityKind,
    FileRecord,
    LessonResource,
    RoadmapSection,
    EntityRef,
    SectionDraft,
    LessonDraft,
    EDITABLE_SECTION_FIELDS,
    EDITABLE_LESSON_FIELDS,
    PROTECTED_FIELDS,
)

# API schemas
from .api import (
    ApiResponse,
    SUCCESS_CODE,
)

__all__ = [
    # Roadmap
    'NodeId',
    'EntityKind',
    'FileRecord',
    'LessonResource',
    'RoadmapSection',
    'EntityRef',
    'SectionDraft',
    'LessonDraft',
    'EDITABLE_SECTION_FIELDS',
    'EDITABLE_LESSON_FIELDS',
    'PROTECTED_FIELDS',
    # API
    'ApiResponse',
    'SUCCESS_CODE',
]
