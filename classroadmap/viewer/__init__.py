"""
classroadmap viewer - Display helpers for the roadmap screen.

This module provides:
- File opening with view-mode classification
- Timeline and lesson-card display data
"""

from .files import (
    FileViewer,
    LocalFileFetcher,
    OpenedFile,
    ViewMode,
    view_mode_for,
)

from .timeline import (
    TimelineEntry,
    LessonCard,
    chapter_label,
    lesson_count_text,
    get_status_indicator,
    build_timeline,
    build_lesson_cards,
    find_section,
    EMPTY_ROADMAP_TEXT,
    EMPTY_SECTION_TEXT,
)

__all__ = [
    # Files
    "FileViewer",
    "LocalFileFetcher",
    "OpenedFile",
    "ViewMode",
    "view_mode_for",
    # Timeline
    "TimelineEntry",
    "LessonCard",
    "chapter_label",
    "lesson_count_text",
    "get_status_indicator",
    "build_timeline",
    "build_lesson_cards",
    "find_section",
    "EMPTY_ROADMAP_TEXT",
    "EMPTY_SECTION_TEXT",
]
