"""classroadmap utilities."""

from .roadmap_loader import load_roadmap_file, load_roadmap_drafts, dump_roadmap

__all__ = ["load_roadmap_file", "load_roadmap_drafts", "dump_roadmap"]
