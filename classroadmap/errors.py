"""
Exceptions raised by the roadmap core.

Every error carries a human-readable message and an optional ``details``
dict so the UI can show a dismissible notice without parsing strings.
"""

from typing import Any, Optional


class RoadmapError(Exception):
    """Base exception for all roadmap errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(RoadmapError):
    """Raised when an operation references an id absent from current state."""


class InvalidArgumentError(RoadmapError, ValueError):
    """Raised when a caller tries to change a protected field or passes a bad index."""


class InvalidStateError(RoadmapError):
    """Raised when loaded data would violate the roadmap invariants."""


class PersistenceError(RoadmapError):
    """Raised when the remote store rejects or fails a request."""


class ResourceUnavailableError(RoadmapError):
    """Raised when a lesson file cannot be opened."""
