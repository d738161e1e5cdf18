"""Per-entity search strategy base.

Each entity search exposes count() and fetch(), always used as a pair.
Both have two implementations sharing one base predicate builder:

- indexed mode: search_vector @@ plainto_tsquery(...), ranked by the
  composite relevance (see ranking.py)
- substring mode: ILIKE over the entity's primary text columns joined with
  OR, relevance 0, ordered by timestamp only

count() and fetch() run indexed mode under the degradation supervisor,
which switches to substring mode when the indexed query fails.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Generic, Mapping, Optional

import asyncpg
from blog_search_contracts import EntityType, RankedRow
from blog_search_contracts.models import HitT

from blog_search_storage.fallback import DegradationCallback, with_fallback
from blog_search_storage.match_expression import (
    build_like_pattern,
    build_match_expression,
)
from blog_search_storage.query import SearchQuery
from blog_search_storage.ranking import (
    build_rank_expressions,
    compute_relevance,
    substring_order_by,
)
from blog_search_storage.sql import SqlArgs


class SearchMode(str, Enum):
    """How rows are matched against the query text."""

    INDEXED = "indexed"
    SUBSTRING = "substring"


class EntitySearch(ABC, Generic[HitT]):
    """Count and fetch one entity type's matches.

    Subclasses declare their table layout as class attributes and implement
    row_to_hit(); visibility rules and filters go in base_predicates() so
    that both modes apply them identically.

    Attributes:
        pool: asyncpg pool (read-only use)
        on_degraded: Callback receiving DegradedSearch events
        timeout: Per-attempt timeout in seconds (None disables)
    """

    entity_type: ClassVar[EntityType]
    hit_model: ClassVar[type[RankedRow]]
    count_from: ClassVar[str]
    from_clause: ClassVar[str]
    id_column: ClassVar[str]
    vector_column: ClassVar[str]
    timestamp_column: ClassVar[str]
    substring_columns: ClassVar[tuple[str, ...]]
    select_columns: ClassVar[str]

    def __init__(
        self,
        pool: asyncpg.Pool,
        *,
        on_degraded: Optional[DegradationCallback] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.pool = pool
        self.on_degraded = on_degraded
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def base_predicates(self, query: SearchQuery, args: SqlArgs) -> list[str]:
        """Visibility predicate plus filters, shared by both modes."""
        return []

    @abstractmethod
    def row_to_hit(self, row: Mapping[str, Any], relevance: float) -> HitT:
        """Convert a database row to the entity's hit model."""

    # ------------------------------------------------------------------
    # SQL assembly
    # ------------------------------------------------------------------

    def _match_clause(
        self, query: SearchQuery, mode: SearchMode, args: SqlArgs
    ) -> tuple[str, Optional[str]]:
        if mode is SearchMode.INDEXED:
            match_sql = build_match_expression(query.text).to_sql(args)
            return f"{self.vector_column} @@ {match_sql}", match_sql

        pattern = args.add(build_like_pattern(query.text))
        matches = " OR ".join(
            f"{column} ILIKE {pattern} ESCAPE '\\'" for column in self.substring_columns
        )
        return f"({matches})", None

    def _where(
        self, query: SearchQuery, mode: SearchMode, args: SqlArgs
    ) -> tuple[str, Optional[str]]:
        predicates = self.base_predicates(query, args)
        match_clause, match_sql = self._match_clause(query, mode, args)
        predicates.append(match_clause)
        return " AND ".join(predicates), match_sql

    def build_count_sql(
        self, query: SearchQuery, mode: SearchMode
    ) -> tuple[str, list[Any]]:
        """SQL and bind values counting all visible matches."""
        args = SqlArgs()
        where, _ = self._where(query, mode, args)
        sql = f"SELECT COUNT(*) FROM {self.count_from} WHERE {where}"
        return sql, args.values

    def build_fetch_sql(
        self,
        query: SearchQuery,
        offset: int,
        limit: int,
        now: datetime,
        mode: SearchMode,
    ) -> tuple[str, list[Any]]:
        """SQL and bind values for one ordered page of matches."""
        args = SqlArgs()
        where, match_sql = self._where(query, mode, args)

        if mode is SearchMode.INDEXED:
            expressions = build_rank_expressions(
                vector_column=self.vector_column,
                match_sql=match_sql,
                timestamp_column=self.timestamp_column,
                id_column=self.id_column,
                now_param=args.add(now),
                sort_mode=query.sort_mode,
            )
            rank_select = expressions.text_rank
            order_by = expressions.order_by
        else:
            rank_select = "0::real"
            order_by = substring_order_by(self.timestamp_column, self.id_column)

        limit_param = args.add(limit)
        offset_param = args.add(offset)

        sql = f"""
        SELECT
            {self.select_columns},
            {self.timestamp_column} AS ranked_at,
            {rank_select} AS text_rank
        FROM {self.from_clause}
        WHERE {where}
        ORDER BY {order_by}
        LIMIT {limit_param}
        OFFSET {offset_param}
        """
        return sql, args.values

    # ------------------------------------------------------------------
    # Single-mode operations
    # ------------------------------------------------------------------

    async def count_in_mode(self, query: SearchQuery, mode: SearchMode) -> int:
        """Count matches using exactly one mode (no fallback)."""
        sql, values = self.build_count_sql(query, mode)
        async with self.pool.acquire() as conn:
            total = await conn.fetchval(sql, *values)
        return int(total or 0)

    async def fetch_in_mode(
        self,
        query: SearchQuery,
        offset: int,
        limit: int,
        now: datetime,
        mode: SearchMode,
    ) -> list[HitT]:
        """Fetch one page using exactly one mode (no fallback)."""
        sql, values = self.build_fetch_sql(query, offset, limit, now, mode)
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, *values)

        hits = []
        for row in rows:
            if mode is SearchMode.INDEXED:
                relevance = compute_relevance(row["text_rank"], row["ranked_at"], now)
            else:
                relevance = 0.0
            hits.append(self.row_to_hit(row, relevance))
        return hits

    # ------------------------------------------------------------------
    # Supervised operations
    # ------------------------------------------------------------------

    async def count(self, query: SearchQuery) -> int:
        """Total visible matches; indexed first, substring on failure."""
        return await with_fallback(
            lambda: self.count_in_mode(query, SearchMode.INDEXED),
            lambda: self.count_in_mode(query, SearchMode.SUBSTRING),
            f"{self.entity_type.value}-count",
            entity=self.entity_type.value,
            operation="count",
            on_degraded=self.on_degraded,
            timeout=self.timeout,
        )

    async def fetch(
        self,
        query: SearchQuery,
        offset: int,
        limit: int,
        now: datetime,
    ) -> list[HitT]:
        """One page of matches; indexed first, substring on failure."""
        return await with_fallback(
            lambda: self.fetch_in_mode(query, offset, limit, now, SearchMode.INDEXED),
            lambda: self.fetch_in_mode(query, offset, limit, now, SearchMode.SUBSTRING),
            f"{self.entity_type.value}-fetch",
            entity=self.entity_type.value,
            operation="fetch",
            on_degraded=self.on_degraded,
            timeout=self.timeout,
        )


def optional_str(value: Any) -> Optional[str]:
    """Stringify ids that may arrive as UUIDs; keep None."""
    return None if value is None else str(value)


