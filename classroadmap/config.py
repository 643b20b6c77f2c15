"""
Configuration for classroadmap.

Settings come from the environment, with a project-level .env loaded first:

    ROADMAP_API_BASE       REST service root; unset means local SQLite mode
    ROADMAP_ACCESS_TOKEN   bearer token for the REST service
    ROADMAP_CLASS_ID       class whose roadmap is edited
    ROADMAP_HTTP_TIMEOUT   seconds per request (default 10)
    ROADMAP_DB_PATH        SQLite file (default ~/.classroadmap/roadmap.db)
    ROADMAP_LOG_LEVEL      logging level name (default INFO)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from classroadmap.backends import (
    DEFAULT_ROADMAP_DB,
    HttpFileFetcher,
    HttpRoadmapBackend,
    RoadmapApiClient,
    RoadmapBackend,
    SQLiteRoadmapBackend,
)
from classroadmap.viewer import FileViewer, LocalFileFetcher

PROJECT_ROOT = Path(__file__).parent.parent
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO"):
    """Set up root logging for entry points (app, scripts)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


@dataclass
class Settings:
    api_base: Optional[str] = None
    access_token: Optional[str] = None
    class_id: str = "default"
    http_timeout: float = 10.0
    db_path: Path = DEFAULT_ROADMAP_DB
    log_level: str = "INFO"

    @property
    def backend_mode(self) -> str:
        return "http" if self.api_base else "sqlite"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """
        Build settings from the environment.

        Args:
            env_file: .env file to load first (default: PROJECT_ROOT/.env).
                Variables already set in the environment win.
        """
        load_dotenv(env_file or PROJECT_ROOT / ".env")

        timeout = os.environ.get("ROADMAP_HTTP_TIMEOUT", "10")
        try:
            http_timeout = float(timeout)
        except ValueError as e:
            raise ValueError(f"ROADMAP_HTTP_TIMEOUT must be a number, got {timeout!r}") from e

        db_path = os.environ.get("ROADMAP_DB_PATH")
        return cls(
            api_base=os.environ.get("ROADMAP_API_BASE") or None,
            access_token=os.environ.get("ROADMAP_ACCESS_TOKEN") or None,
            class_id=os.environ.get("ROADMAP_CLASS_ID", "default"),
            http_timeout=http_timeout,
            db_path=Path(db_path).expanduser() if db_path else DEFAULT_ROADMAP_DB,
            log_level=os.environ.get("ROADMAP_LOG_LEVEL", "INFO"),
        )


def build_backend(settings: Settings) -> tuple[RoadmapBackend, FileViewer]:
    """Create the persistence backend and file viewer matching the settings."""
    if settings.backend_mode == "http":
        client = RoadmapApiClient(
            settings.api_base,
            access_token=settings.access_token,
            timeout=settings.http_timeout,
        )
        return HttpRoadmapBackend(client, settings.class_id), FileViewer(HttpFileFetcher(client))

    backend = SQLiteRoadmapBackend(settings.db_path, class_id=settings.class_id)
    return backend, FileViewer(LocalFileFetcher())
