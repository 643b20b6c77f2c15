"""
RoadmapStore - In-memory ordered tree of sections and lessons.

Holds the roadmap a class is working on and enforces, after every mutation:
- Unique section ids, and lesson ids unique within their section
- Contiguous ``order`` values (0..n-1) matching list position
- Lessons pointing back at the section that holds them

Every successful mutation notifies subscribers with the snapshots taken
before and after it. Failed mutations leave the store untouched.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError

from classroadmap.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from classroadmap.schemas import (
    EDITABLE_LESSON_FIELDS,
    EDITABLE_SECTION_FIELDS,
    PROTECTED_FIELDS,
    EntityRef,
    LessonResource,
    NodeId,
    RoadmapSection,
)

from .ordering import (
    check_move_index,
    duplicate_ids,
    insertion_index,
    reindex,
    sort_by_order,
    validate_roadmap,
)

logger = logging.getLogger(__name__)


class ChangeAction(str, Enum):
    LOAD = "load"
    INSERT_SECTION = "insert_section"
    INSERT_LESSON = "insert_lesson"
    UPDATE_SECTION = "update_section"
    UPDATE_LESSON = "update_lesson"
    MOVE_SECTION = "move_section"
    MOVE_LESSON = "move_lesson"
    REMOVE_SECTION = "remove_section"
    REMOVE_LESSON = "remove_lesson"


@dataclass(frozen=True)
class RoadmapChange:
    """Notification emitted after a successful mutation."""
    action: ChangeAction
    before: list[RoadmapSection]
    after: list[RoadmapSection]
    ref: Optional[EntityRef] = None
    removed_section_ids: tuple = ()
    removed_position: Optional[int] = None  # former index of a removed section


Listener = Callable[[RoadmapChange], None]


class RoadmapStore:
    """
    Ordered tree of roadmap sections, each holding ordered lessons.

    Reads return deep copies, so callers can never bypass the invariants by
    mutating a returned model.
    """

    def __init__(self, sections: Optional[Iterable[Union[RoadmapSection, dict]]] = None):
        """
        Initialize the store.

        Args:
            sections: Optional initial roadmap, validated like ``load``
        """
        self._sections: list[RoadmapSection] = []
        self._listeners: list[Listener] = []
        if sections is not None:
            self.load(sections)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, action: ChangeAction, before: list[RoadmapSection],
              ref: Optional[EntityRef] = None, removed_section_ids: tuple = (),
              removed_position: Optional[int] = None):
        change = RoadmapChange(
            action=action,
            before=before,
            after=self.snapshot(),
            ref=ref,
            removed_section_ids=removed_section_ids,
            removed_position=removed_position,
        )
        logger.debug("Roadmap %s (%s)", action.value, ref.id if ref else "-")
        for listener in list(self._listeners):
            listener(change)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self) -> list[RoadmapSection]:
        """Deep copy of the whole roadmap."""
        return [section.model_copy(deep=True) for section in self._sections]

    @property
    def sections(self) -> list[RoadmapSection]:
        return self.snapshot()

    @property
    def section_ids(self) -> list[NodeId]:
        return [section.id for section in self._sections]

    def __len__(self) -> int:
        return len(self._sections)

    def __contains__(self, section_id: NodeId) -> bool:
        return any(section.id == section_id for section in self._sections)

    def get_section(self, section_id: NodeId) -> RoadmapSection:
        _, section = self._locate_section(section_id)
        return section.model_copy(deep=True)

    def index_of_section(self, section_id: NodeId) -> int:
        index, _ = self._locate_section(section_id)
        return index

    def get_lesson(self, lesson_id: NodeId, section_id: Optional[NodeId] = None) -> LessonResource:
        _, _, lesson = self._locate_lesson(lesson_id, section_id)
        return lesson.model_copy(deep=True)

    def find_lesson_parent(self, lesson_id: NodeId) -> NodeId:
        """Return the id of the section holding ``lesson_id``."""
        section, _, _ = self._locate_lesson(lesson_id, None)
        return section.id

    def index_of_lesson(self, lesson_id: NodeId, section_id: Optional[NodeId] = None) -> int:
        _, index, _ = self._locate_lesson(lesson_id, section_id)
        return index

    def _locate_section(self, section_id: NodeId) -> tuple[int, RoadmapSection]:
        for index, section in enumerate(self._sections):
            if section.id == section_id:
                return index, section
        raise NotFoundError(f"Section not found: {section_id!r}", details={"section_id": section_id})

    def _locate_lesson(self, lesson_id: NodeId,
                       section_id: Optional[NodeId]) -> tuple[RoadmapSection, int, LessonResource]:
        if section_id is not None:
            _, candidates = self._locate_section(section_id)
            sections = [candidates]
        else:
            sections = self._sections

        matches = []
        for section in sections:
            for index, lesson in enumerate(section.children):
                if lesson.id == lesson_id:
                    matches.append((section, index, lesson))

        if not matches:
            raise NotFoundError(
                f"Lesson not found: {lesson_id!r}",
                details={"lesson_id": lesson_id, "section_id": section_id},
            )
        if len(matches) > 1:
            raise InvalidArgumentError(
                f"Lesson id {lesson_id!r} exists in several sections; pass section_id",
                details={"lesson_id": lesson_id, "section_ids": [m[0].id for m in matches]},
            )
        return matches[0]

    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------

    def load(self, sections: Iterable[Union[RoadmapSection, dict]]) -> None:
        """
        Replace the whole roadmap.

        Siblings are arranged by ``order``; the result must satisfy every
        invariant or the previous state is kept.

        Raises:
            InvalidStateError: If the input is malformed or violates an invariant
        """
        try:
            incoming = [RoadmapSection.model_validate(section) if isinstance(section, dict)
                        else section.model_copy(deep=True)
                        for section in sections]
        except ValidationError as e:
            raise InvalidStateError(f"Malformed roadmap: {e}") from e

        incoming = sort_by_order(incoming)
        for section in incoming:
            section.children = sort_by_order(section.children)

        errors = validate_roadmap(incoming)
        if errors:
            logger.warning("Rejected roadmap load: %s", "; ".join(errors))
            raise InvalidStateError("Roadmap violates ordering invariants", details={"errors": errors})

        before = self.snapshot()
        new_ids = {section.id for section in incoming}
        removed = tuple(section.id for section in before if section.id not in new_ids)
        self._sections = incoming
        self._emit(ChangeAction.LOAD, before, removed_section_ids=removed)

    # -------------------------------------------------------------------------
    # Insert
    # -------------------------------------------------------------------------

    def insert_section(self, section: RoadmapSection, at_index: Optional[int] = None) -> RoadmapSection:
        """
        Insert a section (with any lessons it carries) and re-index siblings.

        Raises:
            InvalidArgumentError: Duplicate section id, or lessons that do not
                belong to this section
        """
        if section.id in self:
            raise InvalidArgumentError(f"Section id already exists: {section.id!r}",
                                       details={"section_id": section.id})

        section = section.model_copy(deep=True)
        strays = [lesson.id for lesson in section.children if lesson.parent_section_id != section.id]
        if strays:
            raise InvalidArgumentError(
                f"Lessons {strays} do not belong to section {section.id!r}",
                details={"section_id": section.id, "lesson_ids": strays},
            )
        dupes = duplicate_ids(lesson.id for lesson in section.children)
        if dupes:
            raise InvalidArgumentError(f"Duplicate lesson ids {dupes} in section {section.id!r}",
                                       details={"section_id": section.id, "lesson_ids": dupes})
        reindex(section.children)

        before = self.snapshot()
        self._sections.insert(insertion_index(at_index, len(self._sections)), section)
        reindex(self._sections)
        self._emit(ChangeAction.INSERT_SECTION, before, ref=EntityRef.section(section.id))
        return section.model_copy(deep=True)

    def insert_lesson(self, section_id: NodeId, lesson: LessonResource,
                      at_index: Optional[int] = None) -> LessonResource:
        """
        Insert a lesson into a section and re-index its siblings.

        Raises:
            NotFoundError: If the section does not exist
            InvalidArgumentError: If the section already has a lesson with this id
        """
        _, section = self._locate_section(section_id)
        if any(existing.id == lesson.id for existing in section.children):
            raise InvalidArgumentError(
                f"Lesson id {lesson.id!r} already exists in section {section_id!r}",
                details={"lesson_id": lesson.id, "section_id": section_id},
            )

        lesson = lesson.model_copy(deep=True)
        lesson.parent_section_id = section.id

        before = self.snapshot()
        section.children.insert(insertion_index(at_index, len(section.children)), lesson)
        reindex(section.children)
        self._emit(ChangeAction.INSERT_LESSON, before, ref=EntityRef.lesson(lesson.id, section.id))
        return lesson.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_patch(patch: dict[str, Any], editable: frozenset):
        protected = sorted(PROTECTED_FIELDS.intersection(patch))
        if protected:
            raise InvalidArgumentError(
                f"Fields {protected} cannot be changed through update; use move/insert/remove",
                details={"fields": protected},
            )
        unknown = sorted(set(patch) - editable)
        if unknown:
            raise InvalidArgumentError(f"Unknown fields: {unknown}", details={"fields": unknown})

    def update_section(self, section_id: NodeId, patch: dict[str, Any]) -> RoadmapSection:
        """
        Apply a partial update to a section.

        Raises:
            NotFoundError: If the section does not exist
            InvalidArgumentError: If the patch names protected/unknown fields
                or carries values of the wrong type
        """
        self._check_patch(patch, EDITABLE_SECTION_FIELDS)
        index, section = self._locate_section(section_id)
        try:
            updated = RoadmapSection.model_validate({**section.model_dump(), **patch})
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid section patch: {e}") from e

        before = self.snapshot()
        self._sections[index] = updated
        self._emit(ChangeAction.UPDATE_SECTION, before, ref=EntityRef.section(section_id))
        return updated.model_copy(deep=True)

    def update_lesson(self, lesson_id: NodeId, patch: dict[str, Any],
                      section_id: Optional[NodeId] = None) -> LessonResource:
        """
        Apply a partial update to a lesson.

        Raises:
            NotFoundError: If the lesson (or given section) does not exist
            InvalidArgumentError: Protected/unknown fields, bad values, or an
                ambiguous lesson id
        """
        self._check_patch(patch, EDITABLE_LESSON_FIELDS)
        section, index, lesson = self._locate_lesson(lesson_id, section_id)
        try:
            updated = LessonResource.model_validate({**lesson.model_dump(), **patch})
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid lesson patch: {e}") from e

        before = self.snapshot()
        section.children[index] = updated
        self._emit(ChangeAction.UPDATE_LESSON, before, ref=EntityRef.lesson(lesson_id, section.id))
        return updated.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Move
    # -------------------------------------------------------------------------

    def move_section(self, section_id: NodeId, to_index: int) -> None:
        """Move a section to ``to_index`` among its siblings."""
        index, section = self._locate_section(section_id)
        check_move_index(to_index, len(self._sections))
        if index == to_index:
            return

        before = self.snapshot()
        self._sections.insert(to_index, self._sections.pop(index))
        reindex(self._sections)
        self._emit(ChangeAction.MOVE_SECTION, before, ref=EntityRef.section(section_id))

    def move_lesson(self, lesson_id: NodeId, to_index: int,
                    section_id: Optional[NodeId] = None) -> None:
        """Move a lesson to ``to_index`` within its section."""
        section, index, lesson = self._locate_lesson(lesson_id, section_id)
        check_move_index(to_index, len(section.children))
        if index == to_index:
            return

        before = self.snapshot()
        section.children.insert(to_index, section.children.pop(index))
        reindex(section.children)
        self._emit(ChangeAction.MOVE_LESSON, before, ref=EntityRef.lesson(lesson_id, section.id))

    # -------------------------------------------------------------------------
    # Remove
    # -------------------------------------------------------------------------

    def remove_section(self, section_id: NodeId) -> RoadmapSection:
        """
        Remove a section and every lesson it holds.

        Returns:
            The removed section, lessons included
        """
        index, _ = self._locate_section(section_id)

        before = self.snapshot()
        removed = self._sections.pop(index)
        reindex(self._sections)
        self._emit(
            ChangeAction.REMOVE_SECTION,
            before,
            ref=EntityRef.section(section_id),
            removed_section_ids=(section_id,),
            removed_position=index,
        )
        return removed

    def remove_lesson(self, lesson_id: NodeId, section_id: Optional[NodeId] = None) -> LessonResource:
        """Remove a lesson from its section and re-index the remaining lessons."""
        section, index, _ = self._locate_lesson(lesson_id, section_id)

        before = self.snapshot()
        removed = section.children.pop(index)
        reindex(section.children)
        self._emit(ChangeAction.REMOVE_LESSON, before, ref=EntityRef.lesson(lesson_id, section.id))
        return removed
