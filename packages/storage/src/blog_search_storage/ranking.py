"""Composite relevance: text-match rank blended with recency decay.

    relevance = ts_rank * 0.7 + exp(-age_seconds / 2_592_000) * 0.3

2_592_000 s (30 days) is the decay scale, not a half-life. The same formula
is rendered in SQL for ordering and computed in Python for the reported
score, both against one bound "now" per request.

Score semantics:
- relevance: 0 for substring-mode rows, otherwise in [0, ~1]
- a NULL timestamp contributes no recency weight
- a future timestamp counts as age 0
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from blog_search_contracts import SortMode

RANK_WEIGHT = 0.7
TIME_WEIGHT = 0.3
DECAY_SECONDS = 2_592_000


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def decay_weight(timestamp: Optional[datetime], now: datetime) -> float:
    """exp(-age / DECAY_SECONDS) with age clamped at 0; 0.0 without a timestamp."""
    if timestamp is None:
        return 0.0
    age = (_as_utc(now) - _as_utc(timestamp)).total_seconds()
    return math.exp(-max(0.0, age) / DECAY_SECONDS)


def compute_relevance(
    text_rank: Optional[float],
    timestamp: Optional[datetime],
    now: datetime,
) -> float:
    """Composite relevance of one row.

    Args:
        text_rank: ts_rank of the row against the match expression
        timestamp: Entity timestamp (publish/creation/last-active time)
        now: Request clock

    Returns:
        Deterministic score for identical inputs

    Example:
        >>> now = datetime(2025, 1, 31, tzinfo=timezone.utc)
        >>> round(compute_relevance(0.5, now, now), 4)
        0.65
    """
    rank = max(0.0, float(text_rank or 0.0))
    return rank * RANK_WEIGHT + decay_weight(timestamp, now) * TIME_WEIGHT


@dataclass(frozen=True)
class RankExpressions:
    """SQL fragments for one indexed-mode query.

    Attributes:
        text_rank: ts_rank(...) expression
        relevance: Composite relevance expression
        order_by: ORDER BY body for the requested sort mode
    """

    text_rank: str
    relevance: str
    order_by: str


def build_rank_expressions(
    vector_column: str,
    match_sql: str,
    timestamp_column: str,
    id_column: str,
    now_param: str,
    sort_mode: SortMode,
) -> RankExpressions:
    """Render relevance and ordering for indexed mode.

    relevance sort: relevance DESC, timestamp DESC NULLS LAST
    latest sort:    timestamp DESC NULLS LAST, relevance DESC
    The id is the final tie-break so pages are stable.
    """
    text_rank = f"ts_rank({vector_column}, {match_sql})"
    age = f"GREATEST(EXTRACT(EPOCH FROM ({now_param}::timestamptz - {timestamp_column})), 0)"
    # GREATEST skips NULLs, so a missing timestamp is handled explicitly
    decay = (
        f"(CASE WHEN {timestamp_column} IS NULL THEN 0 "
        f"ELSE EXP(-{age} / {DECAY_SECONDS}) END)"
    )
    relevance = f"({text_rank} * {RANK_WEIGHT} + {decay} * {TIME_WEIGHT})"

    if sort_mode is SortMode.LATEST:
        order_by = (
            f"{timestamp_column} DESC NULLS LAST, {relevance} DESC, {id_column} DESC"
        )
    else:
        order_by = (
            f"{relevance} DESC, {timestamp_column} DESC NULLS LAST, {id_column} DESC"
        )

    return RankExpressions(text_rank=text_rank, relevance=relevance, order_by=order_by)


def substring_order_by(timestamp_column: str, id_column: str) -> str:
    """Substring mode has no textual rank: both sort modes order by time."""
    return f"{timestamp_column} DESC NULLS LAST, {id_column} DESC"
