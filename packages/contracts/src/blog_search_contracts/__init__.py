"""Blog Search Contracts - Pure Pydantic schemas.

Version: 1.0.0

This package contains ONLY Pydantic schemas with no business logic.
Dependencies: pydantic only (no OpenTelemetry, no logging, no DB drivers).
"""

from blog_search_contracts.models import (
    # Enums
    EntityScope,
    EntityType,
    SortMode,
    # Hits
    ActivityHit,
    ArticleHit,
    RankedRow,
    TagHit,
    UserHit,
    # Aggregates
    ResultBucket,
    UnifiedSearchResult,
)

__version__ = "1.0.0"

__all__ = [
    # Enums
    "EntityScope",
    "EntityType",
    "SortMode",
    # Hits
    "RankedRow",
    "ArticleHit",
    "ActivityHit",
    "UserHit",
    "TagHit",
    # Aggregates
    "ResultBucket",
    "UnifiedSearchResult",
]
