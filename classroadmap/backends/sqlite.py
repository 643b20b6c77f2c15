"""
SQLiteRoadmapBackend - Persist a class roadmap in a local SQLite database.

Used when no remote API is configured (offline use, demos, seeding).
Sections and lessons share one table; lessons point at their section
through ``parent_id`` and each sibling group keeps a contiguous
``position``.
"""

import asyncio
import json
import mimetypes
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from classroadmap.errors import PersistenceError
from classroadmap.schemas import (
    FileRecord,
    LessonDraft,
    LessonResource,
    NodeId,
    RoadmapSection,
    SectionDraft,
)

from .base import RoadmapBackend

DEFAULT_ROADMAP_DIR = Path.home() / ".classroadmap"
DEFAULT_ROADMAP_DB = DEFAULT_ROADMAP_DIR / "roadmap.db"

# model field -> column
_COLUMNS = {
    "title": "title",
    "description": "description",
    "background_image": "background_image",
    "icon_image": "icon_image",
    "file_ref": "file_json",
}


class SQLiteRoadmapBackend(RoadmapBackend):
    """
    Roadmap storage in SQLite.

    Each method opens its own connection, so calls can run on worker
    threads via asyncio.to_thread.
    """

    def __init__(self, db_path: Optional[Path] = None, class_id: str = "default"):
        """
        Initialize backend.

        Args:
            db_path: Path to roadmap.db (default: ~/.classroadmap/roadmap.db)
            class_id: Class whose roadmap this backend reads and writes
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_ROADMAP_DB
        self.class_id = class_id
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS roadmap_nodes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    class_id TEXT NOT NULL,
                    parent_id INTEGER REFERENCES roadmap_nodes(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    background_image TEXT,
                    icon_image TEXT,
                    file_json TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_roadmap_nodes_class
                ON roadmap_nodes(class_id, parent_id, position);
            """)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _file_from_json(raw: Optional[str]) -> Optional[FileRecord]:
        if not raw:
            return None
        return FileRecord.model_validate(json.loads(raw))

    def _lesson_from_row(self, row: sqlite3.Row, order: int) -> LessonResource:
        return LessonResource(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            order=order,
            parent_section_id=row["parent_id"],
            background_image=row["background_image"],
            icon_image=row["icon_image"],
            file_ref=self._file_from_json(row["file_json"]),
        )

    @staticmethod
    def _section_from_row(row: sqlite3.Row, order: int,
                          children: list[LessonResource]) -> RoadmapSection:
        return RoadmapSection(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            order=order,
            background_image=row["background_image"],
            icon_image=row["icon_image"],
            children=children,
        )

    @staticmethod
    def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
        values = {}
        for name, value in fields.items():
            if name not in _COLUMNS:
                raise PersistenceError(f"Field cannot be stored: {name}")
            if name == "file_ref":
                if isinstance(value, dict):
                    value = FileRecord.model_validate(value)
                value = value.model_dump_json() if value is not None else None
            values[_COLUMNS[name]] = value
        return values

    @staticmethod
    def _file_for_upload(path: Path) -> FileRecord:
        """Reference a local file in place; nothing is copied."""
        path = Path(path)
        if not path.is_file():
            raise PersistenceError(f"Upload file not found: {path}")
        return FileRecord(
            file_name=path.name,
            file_url=str(path.resolve()),
            file_type=mimetypes.guess_type(path.name)[0] or "application/octet-stream",
            file_size=path.stat().st_size,
            uploaded_at=datetime.now(),
        )

    def _fetch_node(self, conn: sqlite3.Connection, node_id: NodeId,
                    parent_id: Optional[NodeId]) -> sqlite3.Row:
        if parent_id is None:
            cursor = conn.execute(
                """SELECT * FROM roadmap_nodes
                   WHERE id = ? AND class_id = ? AND parent_id IS NULL""",
                (node_id, self.class_id)
            )
        else:
            cursor = conn.execute(
                """SELECT * FROM roadmap_nodes
                   WHERE id = ? AND class_id = ? AND parent_id = ?""",
                (node_id, self.class_id, parent_id)
            )
        row = cursor.fetchone()
        if not row:
            kind = "Section" if parent_id is None else "Lesson"
            raise PersistenceError(f"{kind} not found in database: {node_id!r}")
        return row

    def _sibling_position(self, conn: sqlite3.Connection, parent_id: Optional[NodeId]) -> int:
        if parent_id is None:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM roadmap_nodes WHERE class_id = ? AND parent_id IS NULL",
                (self.class_id,)
            )
        else:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM roadmap_nodes WHERE class_id = ? AND parent_id = ?",
                (self.class_id, parent_id)
            )
        return cursor.fetchone()[0]

    # -------------------------------------------------------------------------
    # Synchronous operations
    # -------------------------------------------------------------------------

    def list_sections_sync(self) -> list[RoadmapSection]:
        """Read the whole roadmap for this class."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT * FROM roadmap_nodes
                   WHERE class_id = ?
                   ORDER BY position, id""",
                (self.class_id,)
            )
            rows = cursor.fetchall()
        finally:
            conn.close()

        lessons_by_parent: dict[int, list[sqlite3.Row]] = {}
        section_rows = []
        for row in rows:
            if row["parent_id"] is None:
                section_rows.append(row)
            else:
                lessons_by_parent.setdefault(row["parent_id"], []).append(row)

        sections = []
        for order, row in enumerate(section_rows):
            children = [
                self._lesson_from_row(lesson_row, idx)
                for idx, lesson_row in enumerate(lessons_by_parent.get(row["id"], []))
            ]
            sections.append(self._section_from_row(row, order, children))
        return sections

    def _insert_node(self, draft: SectionDraft, parent_id: Optional[NodeId]) -> sqlite3.Row:
        values = self._column_values(draft.model_dump(include=set(_COLUMNS) & set(type(draft).model_fields)))
        if isinstance(draft, LessonDraft) and draft.upload_path and draft.file_ref is None:
            values["file_json"] = self._file_for_upload(draft.upload_path).model_dump_json()
        conn = self._get_connection()
        try:
            if parent_id is not None:
                self._fetch_node(conn, parent_id, None)
            position = self._sibling_position(conn, parent_id)
            cursor = conn.execute(
                """INSERT INTO roadmap_nodes
                   (class_id, parent_id, position, title, description,
                    background_image, icon_image, file_json, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    self.class_id,
                    parent_id,
                    position,
                    values["title"],
                    values["description"],
                    values.get("background_image"),
                    values.get("icon_image"),
                    values.get("file_json"),
                    datetime.now().isoformat(),
                )
            )
            conn.commit()
            return self._fetch_node(conn, cursor.lastrowid, parent_id)
        finally:
            conn.close()

    def create_section_sync(self, draft: SectionDraft) -> RoadmapSection:
        row = self._insert_node(draft, None)
        return self._section_from_row(row, row["position"], [])

    def create_lesson_sync(self, section_id: NodeId, draft: LessonDraft) -> LessonResource:
        row = self._insert_node(draft, section_id)
        return self._lesson_from_row(row, row["position"])

    def _update_node(self, node_id: NodeId, parent_id: Optional[NodeId],
                     fields: dict[str, Any]) -> sqlite3.Row:
        values = self._column_values(fields)
        conn = self._get_connection()
        try:
            self._fetch_node(conn, node_id, parent_id)
            if values:
                assignments = ", ".join(f"{column} = ?" for column in values)
                conn.execute(
                    f"UPDATE roadmap_nodes SET {assignments} WHERE id = ?",
                    (*values.values(), node_id)
                )
                conn.commit()
            return self._fetch_node(conn, node_id, parent_id)
        finally:
            conn.close()

    def update_section_sync(self, section_id: NodeId, fields: dict[str, Any]) -> RoadmapSection:
        row = self._update_node(section_id, None, fields)
        children = [lesson for section in self.list_sections_sync()
                    if section.id == section_id for lesson in section.children]
        return self._section_from_row(row, row["position"], children)

    def update_lesson_sync(self, section_id: NodeId, lesson_id: NodeId,
                           fields: dict[str, Any]) -> LessonResource:
        row = self._update_node(lesson_id, section_id, fields)
        return self._lesson_from_row(row, row["position"])

    def _delete_node(self, node_id: NodeId, parent_id: Optional[NodeId]):
        conn = self._get_connection()
        try:
            row = self._fetch_node(conn, node_id, parent_id)
            conn.execute("DELETE FROM roadmap_nodes WHERE parent_id = ?", (node_id,))
            conn.execute("DELETE FROM roadmap_nodes WHERE id = ?", (node_id,))
            if parent_id is None:
                conn.execute(
                    """UPDATE roadmap_nodes SET position = position - 1
                       WHERE class_id = ? AND parent_id IS NULL AND position > ?""",
                    (self.class_id, row["position"])
                )
            else:
                conn.execute(
                    """UPDATE roadmap_nodes SET position = position - 1
                       WHERE class_id = ? AND parent_id = ? AND position > ?""",
                    (self.class_id, parent_id, row["position"])
                )
            conn.commit()
        finally:
            conn.close()

    def delete_section_sync(self, section_id: NodeId):
        self._delete_node(section_id, None)

    def delete_lesson_sync(self, section_id: NodeId, lesson_id: NodeId):
        self._delete_node(lesson_id, section_id)

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
        await asyncio.to_thread(self.delete_section_sync, section_id)

    async def create_lesson(self, section_id: NodeId, draft: LessonDraft) -> LessonResource:
        return await asyncio.to_thread(self.create_lesson_sync, section_id, draft)

    async def update_lesson(self, section_id: NodeId, lesson_id: NodeId,
                            fields: dict[str, Any]) -> LessonResource:
        return await asyncio.to_thread(self.update_lesson_sync, section_id, lesson_id, fields)

    async def delete_lesson(self, section_id: NodeId, lesson_id: NodeId) -> None:
        await asyncio.to_thread(self.delete_lesson_sync, section_id, lesson_id)
