#!/usr/bin/env python3
"""
seed_roadmap.py - Create a class roadmap from a YAML file.

Sends every section and lesson in the file through the CurriculumEditor,
so ids come from the configured backend (REST service or local SQLite).
Optionally exports the resulting roadmap back to YAML.

Usage:
  python scripts/seed_roadmap.py data/roadmap.yaml
  python scripts/seed_roadmap.py data/roadmap.yaml --class-id 42 --export out.yaml
  python scripts/seed_roadmap.py data/roadmap.yaml --db /tmp/roadmap.db
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Project root for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from classroadmap import CurriculumEditor, PersistenceError, RoadmapStore, SelectionController
from classroadmap.config import Settings, build_backend, configure_logging
from classroadmap.utils import dump_roadmap, load_roadmap_drafts

logger = logging.getLogger(__name__)


async def seed(editor: CurriculumEditor, path: Path) -> int:
    """Create all sections and lessons from ``path``. Returns lessons created."""
    created = 0
    await editor.refresh()
    for section_draft, lesson_drafts in load_roadmap_drafts(path):
        section = await editor.create_section(section_draft, select=False)
        logger.info(f"Created section {section.id}: {section.title}")
        for lesson_draft in lesson_drafts:
            lesson = await editor.create_lesson(section.id, lesson_draft)
            if lesson is not None:
                created += 1
                logger.info(f"  Created lesson {lesson.id}: {lesson.title}")
    return created


def main():
    parser = argparse.ArgumentParser(
        description="Seed a class roadmap from YAML",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/seed_roadmap.py data/roadmap.yaml                 # Use .env settings
  python scripts/seed_roadmap.py data/roadmap.yaml --db demo.db    # Force local SQLite
"""
    )
    parser.add_argument("input", type=Path, help="Roadmap YAML file")
    parser.add_argument("--class-id", type=str, default=None, help="Override ROADMAP_CLASS_ID")
    parser.add_argument("--db", type=Path, default=None, help="Seed a local SQLite file instead of the API")
    parser.add_argument("--export", type=Path, default=None, help="Write the seeded roadmap to this YAML file")

    args = parser.parse_args()

    settings = Settings.from_env()
    if args.class_id:
        settings.class_id = args.class_id
    if args.db:
        settings.api_base = None
        settings.db_path = args.db
    configure_logging(settings.log_level)

    backend, viewer = build_backend(settings)
    store = RoadmapStore()
    editor = CurriculumEditor(store, SelectionController(store), backend, viewer)

    logger.info(f"Seeding {args.input} into {settings.backend_mode} backend (class {settings.class_id})")
    try:
        created = asyncio.run(seed(editor, args.input))
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid roadmap file: {e}")
        return 1
    except PersistenceError as e:
        logger.error(f"Seeding failed: {e.message}")
        return 1

    logger.info(f"Done: {len(store)} sections, {created} lessons created")

    if args.export:
        args.export.write_text(dump_roadmap(store.sections), encoding="utf-8")
        logger.info(f"Exported roadmap to {args.export}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
