"""Search query normalization.

normalize_query() is the only way callers obtain a SearchQuery. It is
strict on the text (length bounds, banned structural patterns) and lenient
on everything else: unknown scopes and sort modes fall back to defaults,
and page / page_size are clamped rather than rejected.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional, TypeVar

from blog_search_common import SearchValidationError
from blog_search_contracts import EntityScope, SortMode

MIN_QUERY_LENGTH = 1
MAX_QUERY_LENGTH = 100
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 10
DEFAULT_PAGE_SIZE = 10
DEFAULT_PAGE = 1
# Keeps OFFSET far inside int8 whatever the page size
MAX_PAGE = 10_000
MAX_TAG_IDS = 10
MAX_TAG_ID_LENGTH = 64

# Sequences with structural meaning in SQL; rejected, never stripped
BANNED_QUERY_PATTERN = re.compile(r"(--|/\*|\*/|;)")

EnumT = TypeVar("EnumT", bound=Enum)


@dataclass(frozen=True)
class SearchFilters:
    """Optional narrowing filters.

    Attributes:
        author_id: Restrict articles and activities to one author
        tag_ids: Articles must carry every one of these tags
        published_from: Lower bound on COALESCE(published_at, created_at)
        published_to: Upper bound on COALESCE(published_at, created_at)
    """

    author_id: Optional[str] = None
    tag_ids: tuple[str, ...] = ()
    published_from: Optional[datetime] = None
    published_to: Optional[datetime] = None


@dataclass(frozen=True)
class SearchQuery:
    """Normalized, bounded search request.

    Attributes:
        text: Trimmed query text (1-100 characters, no banned pattern)
        entity_scope: Which buckets get items
        page: 1-based page number
        page_size: Items per bucket page (1-10)
        sort_mode: relevance or latest
        filters: Optional narrowing filters
    """

    text: str
    entity_scope: EntityScope = EntityScope.ALL
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE
    sort_mode: SortMode = SortMode.RELEVANCE
    filters: SearchFilters = field(default_factory=SearchFilters)

    def __post_init__(self):
        """Validate invariants; normalize_query() always satisfies them."""
        if not MIN_QUERY_LENGTH <= len(self.text) <= MAX_QUERY_LENGTH:
            raise ValueError(f"text length must be in [1, 100], got {len(self.text)}")
        if self.text != self.text.strip():
            raise ValueError("text must be trimmed")
        if BANNED_QUERY_PATTERN.search(self.text):
            raise ValueError("text contains a banned pattern")
        if not DEFAULT_PAGE <= self.page <= MAX_PAGE:
            raise ValueError(f"page must be in [1, {MAX_PAGE}], got {self.page}")
        if not MIN_PAGE_SIZE <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be in [1, 10], got {self.page_size}")

    @property
    def offset(self) -> int:
        """Row offset of the requested page."""
        return (self.page - 1) * self.page_size


def sanitize_text(text: Any) -> str:
    """Trim and validate query text.

    Raises:
        SearchValidationError: On a length violation or a banned pattern
    """
    trimmed = text.strip() if isinstance(text, str) else ""

    if not MIN_QUERY_LENGTH <= len(trimmed) <= MAX_QUERY_LENGTH:
        raise SearchValidationError(
            "length",
            f"Search query must be between {MIN_QUERY_LENGTH} and "
            f"{MAX_QUERY_LENGTH} characters",
            {"length": len(trimmed)},
        )

    if BANNED_QUERY_PATTERN.search(trimmed):
        raise SearchValidationError(
            "banned_pattern",
            "Search query contains forbidden characters",
            {"pattern": BANNED_QUERY_PATTERN.pattern},
        )

    return trimmed


def _coerce_int(value: Any, default: int) -> int:
    """Truncate a numeric-ish value to int, or return default."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if isinstance(value, float):
        if not math.isfinite(value):
            return default
        return math.trunc(value)
    return default


def normalize_page(page: Any) -> int:
    """Page number: non-numeric -> 1, otherwise clamped to [1, MAX_PAGE]."""
    return min(MAX_PAGE, max(DEFAULT_PAGE, _coerce_int(page, DEFAULT_PAGE)))


def normalize_page_size(page_size: Any) -> int:
    """Page size: non-numeric -> 10, otherwise clamped to [1, 10]."""
    parsed = _coerce_int(page_size, DEFAULT_PAGE_SIZE)
    return min(MAX_PAGE_SIZE, max(MIN_PAGE_SIZE, parsed))


def _parse_enum(enum_cls: type[EnumT], value: Any, default: EnumT) -> EnumT:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def normalize_tag_ids(tag_ids: Optional[Iterable[str]]) -> tuple[str, ...]:
    """Deduplicate tag ids, dropping blanks and over-long ids; keep at most 10."""
    if not tag_ids:
        return ()
    if isinstance(tag_ids, str):
        tag_ids = [tag_ids]
    seen: dict[str, None] = {}
    for raw in tag_ids:
        if not isinstance(raw, str):
            continue
        for token in raw.split(","):
            token = token.strip()
            if token and len(token) <= MAX_TAG_ID_LENGTH:
                seen.setdefault(token, None)
    return tuple(seen)[:MAX_TAG_IDS]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_filters(
    author_id: Optional[str] = None,
    tag_ids: Optional[Iterable[str]] = None,
    published_from: Optional[datetime] = None,
    published_to: Optional[datetime] = None,
) -> SearchFilters:
    """Build SearchFilters; naive bounds are UTC, a reversed range is swapped."""
    published_from = _as_utc(published_from)
    published_to = _as_utc(published_to)
    if published_from and published_to and published_from > published_to:
        published_from, published_to = published_to, published_from

    author = author_id.strip() if isinstance(author_id, str) else None

    return SearchFilters(
        author_id=author or None,
        tag_ids=normalize_tag_ids(tag_ids),
        published_from=published_from,
        published_to=published_to,
    )


def normalize_query(
    text: Any,
    entity_scope: Any = None,
    page: Any = None,
    page_size: Any = None,
    sort_mode: Any = None,
    *,
    author_id: Optional[str] = None,
    tag_ids: Optional[Iterable[str]] = None,
    published_from: Optional[datetime] = None,
    published_to: Optional[datetime] = None,
) -> SearchQuery:
    """Validate and clamp raw caller input into a SearchQuery.

    Args:
        text: Free-text query (trimmed; 1-100 characters)
        entity_scope: all/articles/activities/users/tags (unknown -> all)
        page: Page number (clamped to 1-10000)
        page_size: Bucket size (clamped to [1, 10], non-numeric -> 10)
        sort_mode: relevance/latest (unknown -> relevance)

    Returns:
        SearchQuery whose fields are all within range

    Raises:
        SearchValidationError: If the text is empty, too long or contains
            "--", "/*", "*/" or ";"

    Example:
        >>> q = normalize_query("  react ", page_size=1000)
        >>> (q.text, q.page_size)
        ('react', 10)
    """
    return SearchQuery(
        text=sanitize_text(text),
        entity_scope=_parse_enum(EntityScope, entity_scope, EntityScope.ALL),
        page=normalize_page(page),
        page_size=normalize_page_size(page_size),
        sort_mode=_parse_enum(SortMode, sort_mode, SortMode.RELEVANCE),
        filters=normalize_filters(
            author_id=author_id,
            tag_ids=tag_ids,
            published_from=published_from,
            published_to=published_to,
        ),
    )
