"""
HTTP backend for the learning-roadmap REST service.

Endpoints:
- GET    /api/learning-roadmaps/class/{classId}   whole roadmap
- POST   /api/learning-roadmaps                   create (multipart form)
- PUT    /api/learning-roadmaps/{id}              update (multipart form)
- DELETE /api/learning-roadmaps/{id}              delete (children included)
- GET    /api/files/get?fileUrl=...               attached file contents

The service models sections and lessons as the same "roadmap" node; a
lesson is a node created with a ``parentId``. Every JSON answer is wrapped
in an ApiResponse envelope.
"""

import asyncio
import logging
from contextlib import ExitStack
from datetime import datetime
from typing import Any, Optional

import requests

from classroadmap.errors import PersistenceError, ResourceUnavailableError
from classroadmap.schemas import (
    ApiResponse,
    FileRecord,
    LessonDraft,
    LessonResource,
    NodeId,
    RoadmapSection,
    SectionDraft,
)

from .base import FetchedFile, FileFetcher, RoadmapBackend

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# model field -> form field
FORM_FIELDS = {
    "title": "title",
    "description": "description",
    "background_image": "backgroundImage",
    "icon_image": "iconImage",
}


# -----------------------------------------------------------------------------
# Payload conversion
# -----------------------------------------------------------------------------


def _sort_key(payload: dict) -> int:
    # Nodes without a usable index fall back to their id.
    return payload.get("roadmapIndex") or payload.get("id") or 0


def file_record_from_payload(payload: Optional[dict]) -> Optional[FileRecord]:
    if not payload or not payload.get("fileUrl"):
        return None
    uploaded_at = payload.get("uploadedAt")
    return FileRecord(
        id=payload.get("id"),
        file_name=payload.get("fileName") or payload["fileUrl"].rsplit("/", 1)[-1],
        file_url=payload["fileUrl"],
        file_type=payload.get("fileType") or "application/octet-stream",
        file_size=payload.get("fileSize") or 0,
        folder=payload.get("folder"),
        uploaded_by=payload.get("uploadedBy"),
        uploaded_at=datetime.fromisoformat(uploaded_at) if uploaded_at else None,
    )


def lesson_from_payload(payload: dict, section_id: NodeId, order: int) -> LessonResource:
    return LessonResource(
        id=payload["id"],
        title=payload.get("title") or "",
        description=payload.get("description") or "",
        order=order,
        parent_section_id=section_id,
        background_image=payload.get("backgroundImage") or None,
        icon_image=payload.get("iconImage") or None,
        file_ref=file_record_from_payload(payload.get("fileRecord")),
    )


def section_from_payload(payload: dict, order: int) -> RoadmapSection:
    children = sorted(payload.get("children") or [], key=_sort_key)
    return RoadmapSection(
        id=payload["id"],
        title=payload.get("title") or "",
        description=payload.get("description") or "",
        order=order,
        background_image=payload.get("backgroundImage") or None,
        icon_image=payload.get("iconImage") or None,
        children=[
            lesson_from_payload(child, payload["id"], idx)
            for idx, child in enumerate(children)
        ],
    )


def roadmap_from_payload(payloads: list[dict]) -> list[RoadmapSection]:
    """Convert the class roadmap listing, deriving contiguous orders from the sort."""
    top_level = [p for p in payloads if p.get("parentId") is None]
    return [
        section_from_payload(payload, idx)
        for idx, payload in enumerate(sorted(top_level, key=_sort_key))
    ]


def form_from_fields(fields: dict[str, Any]) -> dict[str, str]:
    """Map model field names to form fields. Empty values are sent as ''."""
    form = {}
    for name, value in fields.items():
        if name == "file_ref":
            continue
        if name not in FORM_FIELDS:
            raise PersistenceError(f"Field cannot be sent to the roadmap service: {name}")
        form[FORM_FIELDS[name]] = "" if value is None else str(value)
    return form


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------


class RoadmapApiClient:
    """
    Thin blocking client for the roadmap service.

    Authenticates with a bearer token and unwraps ApiResponse envelopes.
    """

    def __init__(self, base_url: str, access_token: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        """
        Initialize client.

        Args:
            base_url: Service root, e.g. "https://api.example.edu"
            access_token: Bearer token (None for anonymous requests)
            timeout: Per-request timeout in seconds
            session: Optional preconfigured requests.Session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if access_token:
            self.session.headers["Authorization"] = f"Bearer {access_token}"

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def request(self, method: str, path: str, **kwargs) -> Any:
        """
        Send a request and return the envelope's ``result``.

        Raises:
            PersistenceError: Transport failure, non-JSON answer, or an
                envelope whose code is not the success code
        """
        try:
            response = self.session.request(method, self.url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise PersistenceError(f"{method} {path} failed: {e}") from e

        try:
            envelope = ApiResponse.model_validate(response.json())
        except ValueError as e:
            raise PersistenceError(
                f"{method} {path} returned an unreadable response (HTTP {response.status_code})",
                details={"status_code": response.status_code},
            ) from e

        if not envelope.ok:
            raise PersistenceError(
                envelope.message or f"{method} {path} was rejected",
                details={"code": envelope.code, "status_code": response.status_code},
            )
        return envelope.result

    def download(self, path: str, **kwargs) -> requests.Response:
        """GET raw bytes. Raises ResourceUnavailableError on any failure."""
        try:
            response = self.session.get(self.url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ResourceUnavailableError(f"Could not download file: {e}") from e
        if not response.ok:
            raise ResourceUnavailableError(
                f"Could not download file (HTTP {response.status_code})",
                details={"status_code": response.status_code},
            )
        return response


class HttpRoadmapBackend(RoadmapBackend):
    """RoadmapBackend over the learning-roadmap REST service."""

    def __init__(self, client: RoadmapApiClient, class_id: str):
        self.client = client
        self.class_id = str(class_id)

    # -------------------------------------------------------------------------
    # Synchronous operations
    # -------------------------------------------------------------------------

    def list_sections_sync(self) -> list[RoadmapSection]:
        result = self.client.request("GET", f"/api/learning-roadmaps/class/{self.class_id}")
        if not isinstance(result, list):
            raise PersistenceError("Roadmap listing is not a list")
        return roadmap_from_payload(result)

    def _create(self, draft: SectionDraft, parent_id: Optional[NodeId]) -> dict:
        form = {"classId": self.class_id}
        form.update(form_from_fields(draft.model_dump(include=set(FORM_FIELDS))))
        if parent_id is not None:
            form["parentId"] = str(parent_id)

        with ExitStack() as stack:
            files = None
            if isinstance(draft, LessonDraft) and draft.upload_path:
                handle = stack.enter_context(open(draft.upload_path, "rb"))
                files = {"file": (draft.upload_path.name, handle)}
            result = self.client.request("POST", "/api/learning-roadmaps", data=form, files=files)

        if not isinstance(result, dict) or "id" not in result:
            raise PersistenceError("Create response carries no roadmap node")
        return result

    def _update(self, node_id: NodeId, fields: dict[str, Any]) -> dict:
        form = {"classId": self.class_id}
        form.update(form_from_fields(fields))
        result = self.client.request("PUT", f"/api/learning-roadmaps/{node_id}", data=form)
        if not isinstance(result, dict):
            raise PersistenceError("Update response carries no roadmap node")
        return result

    def create_section_sync(self, draft: SectionDraft) -> RoadmapSection:
        return section_from_payload(self._create(draft, None), order=0)

    def create_lesson_sync(self, section_id: NodeId, draft: LessonDraft) -> LessonResource:
        return lesson_from_payload(self._create(draft, section_id), section_id, order=0)

    def update_section_sync(self, section_id: NodeId, fields: dict[str, Any]) -> RoadmapSection:
        return section_from_payload(self._update(section_id, fields), order=0)

    def update_lesson_sync(self, section_id: NodeId, lesson_id: NodeId,
                           fields: dict[str, Any]) -> LessonResource:
        return lesson_from_payload(self._update(lesson_id, fields), section_id, order=0)

    def delete_sync(self, node_id: NodeId):
        self.client.request("DELETE", f"/api/learning-roadmaps/{node_id}")

    # -------------------------------------------------------------------------
    # RoadmapBackend
    # -------------------------------------------------------------------------

    async def list_sections(self) -> list[RoadmapSection]:
        return await asyncio.to_thread(self.list_sections_sync)

    async def create_section(self, draft: SectionDraft) -> RoadmapSection:
        return await asyncio.to_thread(self.create_section_sync, draft)

    async def update_section(self, section_id: NodeId, fields: dict[str, Any]) -> RoadmapSection:
        return await asyncio.to_thread(self.update_section_sync, section_id, fields)

    async def delete_section(self, section_id: NodeId) -> None:
        await asyncio.to_thread(self.delete_sync, section_id)

    async def create_lesson(self, section_id: NodeId, draft: LessonDraft) -> LessonResource:
        return await asyncio.to_thread(self.create_lesson_sync, section_id, draft)

    async def update_lesson(self, section_id: NodeId, lesson_id: NodeId,
                            fields: dict[str, Any]) -> LessonResource:
        return await asyncio.to_thread(self.update_lesson_sync, section_id, lesson_id, fields)

    async def delete_lesson(self, section_id: NodeId, lesson_id: NodeId) -> None:
        await asyncio.to_thread(self.delete_sync, lesson_id)


class HttpFileFetcher(FileFetcher):
    """Fetch lesson files through the service's file proxy."""

    def __init__(self, client: RoadmapApiClient):
        self.client = client

    def fetch_sync(self, file_ref: FileRecord) -> FetchedFile:
        response = self.client.download("/api/files/get", params={"fileUrl": file_ref.file_url})
        mime_type = response.headers.get("Content-Type")
        logger.debug("Fetched %s (%d bytes)", file_ref.file_name, len(response.content))
        return FetchedFile(content=response.content, mime_type=mime_type)

    async def fetch(self, file_ref: FileRecord) -> FetchedFile:
        return await asyncio.to_thread(self.fetch_sync, file_ref)
