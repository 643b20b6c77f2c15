"""
classroadmap roadmap - Runtime components for the curriculum roadmap.

This module provides:
- RoadmapStore: ordered tree of sections and lessons
- SelectionController: the active section in the timeline
- CurriculumEditor: optimistic edit/delete/create against a backend
"""

from .store import (
    RoadmapStore,
    RoadmapChange,
    ChangeAction,
)

from .selection import (
    SelectionController,
    SelectionState,
)

from .editor import (
    CurriculumEditor,
)

__all__ = [
    # Store
    "RoadmapStore",
    "RoadmapChange",
    "ChangeAction",
    # Selection
    "SelectionController",
    "SelectionState",
    # Editor
    "CurriculumEditor",
]
