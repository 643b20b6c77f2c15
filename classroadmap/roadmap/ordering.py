"""
Ordering and validation helpers shared by the roadmap store.

Sibling groups (sections in a roadmap, lessons in a section) keep their
``order`` equal to their list position. These helpers re-derive and check
that invariant.
"""

from collections import Counter
from typing import Iterable, Optional, Sequence

from classroadmap.errors import InvalidArgumentError
from classroadmap.schemas import RoadmapSection


def reindex(items: Sequence) -> None:
    """Set ``order`` on each item to its list position."""
    for position, item in enumerate(items):
        item.order = position


def is_contiguous(items: Sequence) -> bool:
    """True if the items' ``order`` values are exactly 0..n-1 in list order."""
    return all(item.order == position for position, item in enumerate(items))


def duplicate_ids(ids: Iterable) -> list:
    """Return ids that appear more than once, in first-seen order."""
    counts = Counter(ids)
    return [node_id for node_id, count in counts.items() if count > 1]


def insertion_index(at_index: Optional[int], length: int) -> int:
    """
    Resolve an insertion point.

    ``None`` appends. Negative values count from the end like list.insert.
    Anything past the end is clamped to an append.
    """
    if at_index is None:
        return length
    if at_index < 0:
        return max(length + at_index, 0)
    return min(at_index, length)


def check_move_index(to_index: int, length: int) -> None:
    """Reject a move target outside the sibling group."""
    if not 0 <= to_index < length:
        raise InvalidArgumentError(
            f"Move target {to_index} outside 0..{length - 1}",
            details={"to_index": to_index, "length": length},
        )


def sort_by_order(items: Sequence) -> list:
    """Stable sort by ``order`` so remote payloads can arrive in any list order."""
    return sorted(items, key=lambda item: item.order)


def validate_roadmap(sections: Sequence[RoadmapSection]) -> list[str]:
    """
    Check a roadmap against the ordering, uniqueness and parent invariants.

    Sections and lessons are expected to be sorted by ``order`` already.

    Returns:
        List of human-readable problems (empty if valid)
    """
    errors = []

    for node_id in duplicate_ids(section.id for section in sections):
        errors.append(f"Duplicate section id: {node_id!r}")

    if not is_contiguous(sections):
        orders = [section.order for section in sections]
        errors.append(f"Section order is not contiguous: {orders}")

    for section in sections:
        for node_id in duplicate_ids(lesson.id for lesson in section.children):
            errors.append(f"Duplicate lesson id {node_id!r} in section {section.id!r}")

        if not is_contiguous(section.children):
            orders = [lesson.order for lesson in section.children]
            errors.append(f"Lesson order in section {section.id!r} is not contiguous: {orders}")

        for lesson in section.children:
            if lesson.parent_section_id != section.id:
                errors.append(
                    f"Lesson {lesson.id!r} in section {section.id!r} points at "
                    f"parent {lesson.parent_section_id!r}"
                )

    return errors
