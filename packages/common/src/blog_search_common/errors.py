"""Custom error types for the blog search system.

All errors follow the "fail fast" principle with explicit messages.
Degradation from full-text to substring search is NOT an error; it is
reported as a DegradedSearch event (see blog_search_storage.fallback).
"""

from typing import Any, Optional


class BlogSearchError(Exception):
    """Base exception for all blog search errors."""

    pass


class StorageError(BlogSearchError):
    """Error during database operations (pool creation, connectivity)."""

    pass


class SearchError(BlogSearchError):
    """Error during search operations (FTS or substring)."""

    pass


class SearchValidationError(SearchError):
    """Caller input rejected before any I/O.

    Attributes:
        reason: Machine-readable reason ("length" or "banned_pattern")
        message: Human-readable, actionable message
        details: Extra context (e.g. the banned pattern)
    """

    def __init__(
        self,
        reason: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.reason = reason
        self.message = message
        self.details = details or {}
        super().__init__(message)


class FatalSearchFailure(SearchError):
    """Both the indexed and the substring path failed for one entity.

    Attributes:
        entity: Entity type that failed (articles, activities, users, tags)
        operation: Operation that failed (count or fetch)
    """

    def __init__(self, entity: str, operation: str, message: str):
        self.entity = entity
        self.operation = operation
        super().__init__(f"{entity} {operation} failed: {message}")


class SigningError(BlogSearchError):
    """Avatar URL signing failed."""

    pass
