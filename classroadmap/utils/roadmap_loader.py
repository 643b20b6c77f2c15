"""
Roadmap file loader for classroadmap.

Reads and writes roadmaps as YAML:

    sections:
      - id: 1                    # optional, generated from position
        title: Giới thiệu
        description: Tổng quan khóa học
        lessons:
          - title: Bài mở đầu
            file:
              file_name: intro.pdf
              file_url: files/intro.pdf
              file_type: application/pdf
"""

from pathlib import Path
from typing import Any, Optional

import yaml

from classroadmap.schemas import (
    FileRecord,
    LessonDraft,
    LessonResource,
    RoadmapSection,
    SectionDraft,
)


def _read_sections(path: Path) -> list[dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Roadmap file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    sections = data.get("sections", []) if isinstance(data, dict) else None
    if not isinstance(sections, list):
        raise ValueError(f"{path}: 'sections' must be a list")
    return sections


def _file_from_entry(entry: dict[str, Any]) -> Optional[FileRecord]:
    raw = entry.get("file")
    return FileRecord.model_validate(raw) if raw else None


def load_roadmap_file(path: Path) -> list[RoadmapSection]:
    """
    Load a roadmap with ids and contiguous orders filled in.

    Args:
        path: YAML file path

    Returns:
        Sections in file order, lessons in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the structure or a field is invalid
        yaml.YAMLError: If YAML parsing fails
    """
    sections = []
    for s_idx, entry in enumerate(_read_sections(path)):
        section_id = entry.get("id", f"section-{s_idx + 1}")
        lessons = [
            LessonResource(
                id=lesson.get("id", f"lesson-{l_idx + 1}"),
                title=lesson.get("title"),
                description=lesson.get("description", ""),
                order=l_idx,
                parent_section_id=section_id,
                background_image=lesson.get("background_image"),
                icon_image=lesson.get("icon_image"),
                file_ref=_file_from_entry(lesson),
            )
            for l_idx, lesson in enumerate(entry.get("lessons") or [])
        ]
        sections.append(RoadmapSection(
            id=section_id,
            title=entry.get("title"),
            description=entry.get("description", ""),
            order=s_idx,
            background_image=entry.get("background_image"),
            icon_image=entry.get("icon_image"),
            children=lessons,
        ))
    return sections


def load_roadmap_drafts(path: Path) -> list[tuple[SectionDraft, list[LessonDraft]]]:
    """
    Load a roadmap as creation drafts, ignoring any ids in the file.

    Relative ``upload`` paths are resolved against the file's directory.
    """
    base_dir = Path(path).parent
    drafts = []
    for entry in _read_sections(path):
        section = SectionDraft(
            title=entry.get("title"),
            description=entry.get("description", ""),
            background_image=entry.get("background_image"),
            icon_image=entry.get("icon_image"),
        )
        lessons = []
        for lesson in entry.get("lessons") or []:
            upload = lesson.get("upload")
            lessons.append(LessonDraft(
                title=lesson.get("title"),
                description=lesson.get("description", ""),
                background_image=lesson.get("background_image"),
                icon_image=lesson.get("icon_image"),
                file_ref=_file_from_entry(lesson),
                upload_path=base_dir / upload if upload else None,
            ))
        drafts.append((section, lessons))
    return drafts


def dump_roadmap(sections: list[RoadmapSection]) -> str:
    """Serialize a roadmap to the YAML layout read by load_roadmap_file."""
    data = {"sections": []}
    for section in sections:
        entry = section.model_dump(exclude={"order", "children"}, exclude_none=True)
        entry["lessons"] = []
        for lesson in section.children:
            item = lesson.model_dump(
                mode="json",
                exclude={"order", "parent_section_id", "file_ref"},
                exclude_none=True,
            )
            if lesson.file_ref is not None:
                item["file"] = lesson.file_ref.model_dump(mode="json", exclude_none=True)
            entry["lessons"].append(item)
        data["sections"].append(entry)
    return yaml.safe_dump(data, allow_unicode=True, sort_keys=False)
