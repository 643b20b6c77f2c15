"""
SelectionController - Which roadmap section is active in the timeline.

Two states:
- NONE_SELECTED: nothing highlighted (empty roadmap or explicit clear)
- SECTION_ACTIVE: exactly one existing section highlighted

Transitions:
- select(id)                    -> SECTION_ACTIVE(id), id must exist
- clear()                       -> NONE_SELECTED
- active section removed        -> section now at its old position,
                                   else the new last section, else NONE_SELECTED
- roadmap reloaded              -> keep the active id if it survived,
                                   else the first section, else NONE_SELECTED
- inserts, updates, moves       -> unchanged
"""

import logging
from enum import Enum
from typing import Callable, Optional

from classroadmap.errors import NotFoundError
from classroadmap.schemas import NodeId

from .store import ChangeAction, RoadmapChange, RoadmapStore

logger = logging.getLogger(__name__)


class SelectionState(str, Enum):
    NONE_SELECTED = "none_selected"
    SECTION_ACTIVE = "section_active"


SelectionListener = Callable[[Optional[NodeId]], None]


class SelectionController:
    """
    Sole owner of the active-section id.

    Subscribes to a RoadmapStore so the active id can never point at a
    section that no longer exists.
    """

    def __init__(self, store: RoadmapStore):
        """
        Initialize selection from the store's current contents.

        Args:
            store: RoadmapStore to follow
        """
        self.store = store
        ids = store.section_ids
        self._active_id: Optional[NodeId] = ids[0] if ids else None
        self._listeners: list[SelectionListener] = []
        self._unsubscribe = store.subscribe(self._on_change)

    @property
    def active_id(self) -> Optional[NodeId]:
        return self._active_id

    @property
    def state(self) -> SelectionState:
        if self._active_id is None:
            return SelectionState.NONE_SELECTED
        return SelectionState.SECTION_ACTIVE

    def is_active(self, section_id: NodeId) -> bool:
        return self._active_id is not None and self._active_id == section_id

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        """Register a listener called with the new active id on every transition."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def detach(self):
        """Stop following the store."""
        self._unsubscribe()

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def select(self, section_id: NodeId) -> None:
        """
        Make ``section_id`` the active section.

        Raises:
            NotFoundError: If the section is not in the roadmap
        """
        if section_id not in self.store:
            raise NotFoundError(f"Cannot select unknown section: {section_id!r}",
                                details={"section_id": section_id})
        self._set(section_id)

    def clear(self) -> None:
        self._set(None)

    def _set(self, section_id: Optional[NodeId]):
        if section_id == self._active_id:
            return
        logger.debug("Active section %r -> %r", self._active_id, section_id)
        self._active_id = section_id
        for listener in list(self._listeners):
            listener(section_id)

    def _on_change(self, change: RoadmapChange):
        if change.action == ChangeAction.LOAD:
            self._on_reload(change)
        elif change.action == ChangeAction.REMOVE_SECTION:
            if self._active_id is not None and self._active_id in change.removed_section_ids:
                self._set(self._successor(change))

    def _on_reload(self, change: RoadmapChange):
        ids = [section.id for section in change.after]
        if self._active_id is not None and self._active_id in ids:
            return
        self._set(ids[0] if ids else None)

    @staticmethod
    def _successor(change: RoadmapChange) -> Optional[NodeId]:
        """Right sibling of the removed section, else its new left sibling."""
        remaining = change.after
        if not remaining:
            return None
        position = change.removed_position or 0
        if position < len(remaining):
            return remaining[position].id
        return remaining[-1].id
