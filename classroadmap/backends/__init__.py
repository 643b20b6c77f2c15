"""
classroadmap backends - Persistence and file collaborators.

This module provides:
- RoadmapBackend / FileFetcher: interfaces the editor and viewer depend on
- HttpRoadmapBackend / HttpFileFetcher: the learning-roadmap REST service
- SQLiteRoadmapBackend: local storage for offline use and seeding
"""

from .base import (
    RoadmapBackend,
    FileFetcher,
    FetchedFile,
)

from .http import (
    RoadmapApiClient,
    HttpRoadmapBackend,
    HttpFileFetcher,
    roadmap_from_payload,
)

from .sqlite import (
    SQLiteRoadmapBackend,
    DEFAULT_ROADMAP_DIR,
    DEFAULT_ROADMAP_DB,
)

__all__ = [
    # Interfaces
    "RoadmapBackend",
    "FileFetcher",
    "FetchedFile",
    # HTTP
    "RoadmapApiClient",
    "HttpRoadmapBackend",
    "HttpFileFetcher",
    "roadmap_from_payload",
    # SQLite
    "SQLiteRoadmapBackend",
    "DEFAULT_ROADMAP_DIR",
    "DEFAULT_ROADMAP_DB",
]
