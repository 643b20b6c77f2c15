"""
CurriculumEditor - Turn roadmap intents into store mutations and persistence calls.

Provides:
- Optimistic edits with field-level rollback
- Optimistic deletes (sections cascade) with positional restore
- Creation of sections and lessons through the backend
- Opening a lesson's attached file
- Reloading the roadmap from the backend

Store mutations happen synchronously before the first await, so anything
reading the store while a request is pending sees the optimistic state.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional, TypeVar, Union

from classroadmap.backends.base import RoadmapBackend
from classroadmap.errors import NotFoundError, PersistenceError, ResourceUnavailableError
from classroadmap.schemas import (
    EntityRef,
    LessonDraft,
    LessonResource,
    NodeId,
    RoadmapSection,
    SectionDraft,
)

from .selection import SelectionController
from .store import RoadmapStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
Entity = Union[RoadmapSection, LessonResource]


@dataclass
class _PendingEdit:
    """An edit whose persistence call has not resolved yet."""
    token: int
    ref: EntityRef
    inverse: dict[str, Any]  # field -> value to restore if this edit fails


@dataclass
class _InFlightDelete:
    done: asyncio.Event = field(default_factory=asyncio.Event)
    result: Optional[Entity] = None
    error: Optional[PersistenceError] = None


class CurriculumEditor:
    """
    Command interface for the roadmap screen.

    Combines RoadmapStore (local state), SelectionController (active section)
    and a RoadmapBackend (remote state).
    """

    def __init__(self, store: RoadmapStore, selection: SelectionController,
                 backend: RoadmapBackend, viewer=None):
        """
        Initialize editor.

        Args:
            store: RoadmapStore holding the optimistic state
            selection: SelectionController following the same store
            backend: Persistence collaborator
            viewer: Optional FileViewer used by view_file
        """
        self.store = store
        self.selection = selection
        self.backend = backend
        self.viewer = viewer
        self._tokens = itertools.count(1)
        self._pending_edits: list[_PendingEdit] = []
        self._deletes_in_flight: dict[EntityRef, _InFlightDelete] = {}

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _resolve(self, ref: EntityRef) -> EntityRef:
        """Fill in the parent section of a lesson ref, checking the entity exists."""
        if ref.is_section:
            self.store.index_of_section(ref.id)
            return ref
        if ref.section_id is None:
            return EntityRef.lesson(ref.id, self.store.find_lesson_parent(ref.id))
        self.store.index_of_lesson(ref.id, ref.section_id)
        return ref

    def _exists(self, ref: EntityRef) -> bool:
        try:
            self._resolve(ref)
        except NotFoundError:
            return False
        return True

    def _get(self, ref: EntityRef) -> Entity:
        if ref.is_section:
            return self.store.get_section(ref.id)
        return self.store.get_lesson(ref.id, ref.section_id)

    def _apply_patch(self, ref: EntityRef, patch: dict[str, Any]) -> Entity:
        if ref.is_section:
            return self.store.update_section(ref.id, patch)
        return self.store.update_lesson(ref.id, patch, section_id=ref.section_id)

    @staticmethod
    async def _call(description: str, request: Awaitable[T]) -> T:
        """Await a backend request, reporting any failure as PersistenceError."""
        try:
            return await request
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"{description} failed: {e}") from e

    # -------------------------------------------------------------------------
    # Edit
    # -------------------------------------------------------------------------

    async def edit(self, ref: EntityRef, new_fields: dict[str, Any]) -> Optional[Entity]:
        """
        Optimistically update a section or lesson, then persist it.

        Returns:
            The entity as applied locally, or None if it no longer exists

        Raises:
            InvalidArgumentError: If ``new_fields`` names protected or unknown fields
            PersistenceError: If the backend rejected the change (after rollback)
        """
        try:
            ref = self._resolve(ref)
        except NotFoundError as e:
            logger.warning("Edit ignored: %s", e.message)
            return None

        current = self._get(ref)
        if not new_fields:
            return current

        inverse = {name: getattr(current, name) for name in new_fields if hasattr(current, name)}
        updated = self._apply_patch(ref, new_fields)

        pending = _PendingEdit(token=next(self._tokens), ref=ref, inverse=inverse)
        self._pending_edits.append(pending)
        try:
            if ref.is_section:
                request = self.backend.update_section(ref.id, new_fields)
            else:
                request = self.backend.update_lesson(ref.section_id, ref.id, new_fields)
            await self._call(f"Updating {ref.kind.value} {ref.id!r}", request)
        except (PersistenceError, asyncio.CancelledError) as e:
            if self._exists(ref):
                self._rollback_edit(pending)
            elif isinstance(e, PersistenceError):
                logger.info("Edit of deleted %s %r resolved after delete; ignoring", ref.kind.value, ref.id)
                return None
            raise
        else:
            self._confirm_edit(pending)
        finally:
            self._pending_edits.remove(pending)

        if not self._exists(ref):
            return None
        return updated

    def _confirm_edit(self, pending: _PendingEdit):
        """Earlier pending edits must no longer restore fields this edit has persisted."""
        for earlier in self._pending_edits:
            if earlier.ref == pending.ref and earlier.token < pending.token:
                for name in pending.inverse:
                    earlier.inverse.pop(name, None)

    def _rollback_edit(self, pending: _PendingEdit):
        """
        Restore the fields this edit changed.

        A field rewritten by a later edit that is still pending keeps the later
        value; that edit inherits this edit's restore value instead. A field
        already confirmed by a later edit is no longer in ``inverse``.
        """
        later = [p for p in self._pending_edits
                 if p.ref == pending.ref and p.token > pending.token]
        revert = {}
        for name, value in pending.inverse.items():
            owner = next((p for p in later if name in p.inverse), None)
            if owner is None:
                revert[name] = value
            else:
                owner.inverse[name] = value

        logger.warning("Rolling back edit of %s %r: %s",
                       pending.ref.kind.value, pending.ref.id, sorted(revert))
        if revert:
            self._apply_patch(pending.ref, revert)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def _find_in_flight(self, ref: EntityRef) -> Optional[_InFlightDelete]:
        if ref in self._deletes_in_flight:
            return self._deletes_in_flight[ref]
        if not ref.is_section and ref.section_id is None:
            for key, entry in self._deletes_in_flight.items():
                if not key.is_section and key.id == ref.id:
                    return entry
        return None

    async def delete(self, ref: EntityRef) -> Optional[Entity]:
        """
        Optimistically delete a section (with its lessons) or a lesson.

        A second call for an entity whose delete is still pending waits for
        that delete instead of sending another request.

        Returns:
            The removed entity, or None if it was already gone

        Raises:
            PersistenceError: If the backend rejected the delete (after restore)
        """
        entry = self._find_in_flight(ref)
        if entry is not None:
            logger.debug("Delete of %s %r already in flight", ref.kind.value, ref.id)
            await entry.done.wait()
            if entry.error is not None:
                raise entry.error
            return entry.result

        try:
            ref = self._resolve(ref)
        except NotFoundError as e:
            logger.warning("Delete ignored: %s", e.message)
            return None

        was_active = ref.is_section and self.selection.is_active(ref.id)
        if ref.is_section:
            siblings = self.store.section_ids
            removed = self.store.remove_section(ref.id)
            request = self.backend.delete_section(ref.id)
        else:
            siblings = [lesson.id for lesson in self.store.get_section(ref.section_id).children]
            removed = self.store.remove_lesson(ref.id, section_id=ref.section_id)
            request = self.backend.delete_lesson(ref.section_id, ref.id)
        followers = siblings[siblings.index(ref.id) + 1:]

        entry = _InFlightDelete()
        self._deletes_in_flight[ref] = entry
        try:
            await self._call(f"Deleting {ref.kind.value} {ref.id!r}", request)
        except PersistenceError as e:
            self._restore(ref, removed, followers, was_active)
            entry.error = e
            raise
        except asyncio.CancelledError:
            self._restore(ref, removed, followers, was_active)
            entry.error = PersistenceError(f"Deleting {ref.kind.value} {ref.id!r} was cancelled")
            raise
        else:
            entry.result = removed
            return removed
        finally:
            del self._deletes_in_flight[ref]
            entry.done.set()

    def _restore_index(self, ref: EntityRef, followers: list[NodeId]) -> Optional[int]:
        """Index of the first sibling that followed ``ref`` and still exists; None appends."""
        for follower in followers:
            try:
                if ref.is_section:
                    return self.store.index_of_section(follower)
                return self.store.index_of_lesson(follower, ref.section_id)
            except NotFoundError:
                continue
        return None

    def _restore(self, ref: EntityRef, removed: Entity, followers: list[NodeId], was_active: bool):
        # Siblings may have been removed or restored since, so the old index is stale.
        if ref.is_section:
            at_index = self._restore_index(ref, followers)
            logger.warning("Restoring section %r at position %s after failed delete",
                           ref.id, "end" if at_index is None else at_index)
            self.store.insert_section(removed, at_index=at_index)
            if was_active:
                self.selection.select(ref.id)
            return
        if ref.section_id not in self.store:
            logger.warning("Section %r is gone; lesson %r not restored", ref.section_id, ref.id)
            return
        at_index = self._restore_index(ref, followers)
        logger.warning("Restoring lesson %r at position %s after failed delete",
                       ref.id, "end" if at_index is None else at_index)
        self.store.insert_lesson(ref.section_id, removed, at_index=at_index)

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create_section(self, draft: SectionDraft, at_index: Optional[int] = None,
                             select: bool = True) -> RoadmapSection:
        """
        Create a section remotely, then insert the canonical copy.

        Args:
            draft: Fields for the new section
            at_index: Position in the roadmap (default: end)
            select: Make the new section active

        Raises:
            PersistenceError: If the backend rejected the request (store unchanged)
        """
        section = await self._call("Creating section", self.backend.create_section(draft))
        inserted = self.store.insert_section(section, at_index=at_index)
        if select:
            self.selection.select(inserted.id)
        return inserted

    async def create_lesson(self, section_id: NodeId, draft: LessonDraft,
                            at_index: Optional[int] = None) -> Optional[LessonResource]:
        """
        Create a lesson remotely under ``section_id``, then insert it.

        Returns None (and sends nothing) if the section is unknown, or if the
        section was deleted while the request was pending.
        """
        if section_id not in self.store:
            logger.warning("Create lesson ignored: section %r not found", section_id)
            return None

        lesson = await self._call(f"Creating lesson in section {section_id!r}",
                                  self.backend.create_lesson(section_id, draft))
        try:
            return self.store.insert_lesson(section_id, lesson, at_index=at_index)
        except NotFoundError:
            logger.warning("Section %r deleted before lesson %r arrived", section_id, lesson.id)
            return None

    # -------------------------------------------------------------------------
    # Files and reload
    # -------------------------------------------------------------------------

    async def view_file(self, lesson: LessonResource):
        """
        Open the file attached to a lesson. Never touches the store.

        Raises:
            ResourceUnavailableError: No file attached, no viewer, or the
                viewer could not open it
        """
        if self.viewer is None:
            raise ResourceUnavailableError("No file viewer configured")
        return await self.viewer.open(lesson.file_ref)

    async def refresh(self) -> list[RoadmapSection]:
        """
        Replace local state with the backend's roadmap.

        Raises:
            PersistenceError: If the roadmap could not be fetched
            InvalidStateError: If the fetched roadmap is inconsistent
        """
        sections = await self._call("Loading roadmap", self.backend.list_sections())
        self.store.load(sections)
        logger.info("Loaded roadmap: %d sections", len(self.store))
        return self.store.sections
