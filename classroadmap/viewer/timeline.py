"""
Timeline helpers - Display data for the roadmap sidebar and section detail.

Pure functions over RoadmapSection models so the Streamlit screen stays
thin and the labels are testable without a browser.
"""

from dataclasses import dataclass
from typing import Optional

from classroadmap.schemas import LessonResource, NodeId, RoadmapSection

CHAPTER_PREFIX = "Bài"
LESSON_UNIT = "bài học"
EMPTY_ROADMAP_TEXT = "Chưa có lộ trình"
EMPTY_SECTION_TEXT = "Chưa có bài học nào trong chương này"


@dataclass
class TimelineEntry:
    """Section with sidebar display metadata."""
    section_id: NodeId
    label: str
    title: str
    subtitle: str
    is_active: bool
    is_last: bool


@dataclass
class LessonCard:
    lesson: LessonResource
    label: str
    has_file: bool


def chapter_label(order: int) -> str:
    """Chapter label for a zero-based section position ("Bài 1" for 0)."""
    return f"{CHAPTER_PREFIX} {order + 1}"


def lesson_count_text(count: int) -> str:
    return f"{count} {LESSON_UNIT}"


def get_status_indicator(is_active: bool) -> str:
    """→ for the active section, ○ otherwise."""
    return "→" if is_active else "○"


def build_timeline(sections: list[RoadmapSection], active_id: Optional[NodeId]) -> list[TimelineEntry]:
    entries = []
    for position, section in enumerate(sections):
        subtitle = lesson_count_text(len(section.children))
        if section.description:
            subtitle = f"{subtitle} • {section.description}"
        entries.append(TimelineEntry(
            section_id=section.id,
            label=chapter_label(section.order),
            title=section.title,
            subtitle=subtitle,
            is_active=active_id is not None and section.id == active_id,
            is_last=position == len(sections) - 1,
        ))
    return entries


def build_lesson_cards(section: RoadmapSection) -> list[LessonCard]:
    return [
        LessonCard(
            lesson=lesson,
            label=f"{lesson.order + 1:02d}",
            has_file=lesson.file_ref is not None,
        )
        for lesson in section.children
    ]


def find_section(sections: list[RoadmapSection], section_id: Optional[NodeId]) -> Optional[RoadmapSection]:
    if section_id is None:
        return None
    return next((section for section in sections if section.id == section_id), None)
