"""
File viewer - Open the file attached to a lesson.

Decides how the screen should present a file from its MIME type:
images and PDFs inline, Word documents and everything else as a download.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from classroadmap.backends.base import FetchedFile, FileFetcher
from classroadmap.errors import ResourceUnavailableError
from classroadmap.schemas import FileRecord

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    IMAGE = "image"          # shown inline
    PDF = "pdf"              # embedded viewer
    DOCUMENT = "document"    # Word and friends: download only
    DOWNLOAD = "download"    # anything else


@dataclass
class OpenedFile:
    name: str
    mime_type: str
    content: bytes
    mode: ViewMode


def view_mode_for(mime_type: Optional[str]) -> ViewMode:
    """
    Pick a presentation for a MIME type.

    Returns:
        IMAGE for image/*, PDF for application/pdf, DOCUMENT for Word-like
        types, DOWNLOAD otherwise
    """
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return ViewMode.IMAGE
    if mime_type == "application/pdf":
        return ViewMode.PDF
    if "word" in mime_type or "document" in mime_type:
        return ViewMode.DOCUMENT
    return ViewMode.DOWNLOAD


class LocalFileFetcher(FileFetcher):
    """Read files referenced by local path (SQLite backend uploads)."""

    async def fetch(self, file_ref: FileRecord) -> FetchedFile:
        path = Path(file_ref.file_url)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ResourceUnavailableError(f"Could not read {path}: {e}") from e
        return FetchedFile(content=content, mime_type=file_ref.file_type)


class FileViewer:
    """Open lesson files through a FileFetcher."""

    def __init__(self, fetcher: FileFetcher):
        self.fetcher = fetcher

    async def open(self, file_ref: Optional[FileRecord]) -> OpenedFile:
        """
        Fetch a lesson file and classify it for display.

        Raises:
            ResourceUnavailableError: No file attached, or the fetch failed
        """
        if file_ref is None or not file_ref.file_url:
            raise ResourceUnavailableError("No file attached to this lesson")

        try:
            fetched = await self.fetcher.fetch(file_ref)
        except ResourceUnavailableError:
            raise
        except Exception as e:
            raise ResourceUnavailableError(
                f"Could not open {file_ref.file_name}: {e}",
                details={"file_url": file_ref.file_url},
            ) from e

        # The stored record is authoritative; servers often answer octet-stream.
        mime_type = file_ref.file_type or fetched.mime_type or "application/octet-stream"
        if mime_type == "application/octet-stream" and fetched.mime_type:
            mime_type = fetched.mime_type.split(";")[0].strip()

        logger.info("Opened %s as %s", file_ref.file_name, view_mode_for(mime_type).value)
        return OpenedFile(
            name=file_ref.file_name,
            mime_type=mime_type,
            content=fetched.content,
            mode=view_mode_for(mime_type),
        )
