"""
classroadmap - Curriculum roadmap for an e-learning class manager.

Sections ("Bài N") hold ordered lesson resources. The roadmap is edited
optimistically and kept in sync with a remote (or local) store.
"""

from classroadmap.errors import (
    RoadmapError,
    NotFoundError,
    InvalidArgumentError,
    InvalidStateError,
    PersistenceError,
    ResourceUnavailableError,
)
from classroadmap.roadmap import (
    RoadmapStore,
    SelectionController,
    CurriculumEditor,
)

__version__ = "0.1.0"

__all__ = [
    "RoadmapError",
    "NotFoundError",
    "InvalidArgumentError",
    "InvalidStateError",
    "PersistenceError",
    "ResourceUnavailableError",
    "RoadmapStore",
    "SelectionController",
    "CurriculumEditor",
]
