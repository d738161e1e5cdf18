"""Unified search across articles, activities, users and tags.

Provides:
- UnifiedSearchEngine: concurrent count + fetch per entity, one aggregate
- unified_search(): convenience wrapper over the process-wide pool

Flow of one search:
1. normalize_query() (validation errors are raised before any I/O)
2. count all four entity types and fetch the in-scope ones concurrently
3. assemble one ResultBucket per entity type (out-of-scope buckets carry
   their total but no items)
4. sign user avatars

Every count and fetch degrades independently (see fallback.py). If any of
them fails fatally the whole search fails and the siblings are cancelled.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional

import asyncpg
from blog_search_common import get_logger, get_settings, instrument_function
from blog_search_contracts import (
    EntityType,
    ResultBucket,
    UnifiedSearchResult,
)

from blog_search_storage.avatar_signer import AvatarSigner, PassthroughSigner
from blog_search_storage.connection import get_connection_pool
from blog_search_storage.enrichment import enrich_users
from blog_search_storage.entities import ENTITY_SEARCHES
from blog_search_storage.fallback import DegradationCallback, DegradedSearch
from blog_search_storage.query import SearchQuery, normalize_query

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def _gather_or_cancel(calls: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await all calls concurrently; on the first failure cancel the rest."""
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class UnifiedSearchEngine:
    """Runs unified searches against one connection pool.

    Example:
        >>> engine = UnifiedSearchEngine(pool, signer=signer)
        >>> result = await engine.search("react", entity_scope="articles")
        >>> result.articles.total, len(result.articles.items)
        (42, 10)

    Attributes:
        pool: asyncpg pool
        signer: Avatar signer for user hits
        on_degraded: Receives one DegradedSearch per degraded call
        timeout: Per-attempt timeout in seconds (None disables)
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        *,
        signer: Optional[AvatarSigner] = None,
        on_degraded: Optional[DegradationCallback] = None,
        timeout: Optional[float] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.pool = pool
        self.signer = signer or PassthroughSigner()
        self.on_degraded = on_degraded
        self.timeout = timeout
        self._clock = clock

    async def search(
        self,
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
    ) -> UnifiedSearchResult:
        """Normalize raw input and run the search.

        Raises:
            SearchValidationError: Rejected text (no query is issued)
            FatalSearchFailure: An entity failed in both modes
        """
        query = normalize_query(
            text,
            entity_scope,
            page,
            page_size,
            sort_mode,
            author_id=author_id,
            tag_ids=tag_ids,
            published_from=published_from,
            published_to=published_to,
        )
        return await self.execute(query)

    @instrument_function("unified_search")
    async def execute(self, query: SearchQuery) -> UnifiedSearchResult:
        """Run an already-normalized query."""
        start = time.perf_counter()
        now = self._clock()
        degradations: list[DegradedSearch] = []

        def record(event: DegradedSearch) -> None:
            degradations.append(event)
            if self.on_degraded is not None:
                self.on_degraded(event)

        searchers = {
            entity_type: search_cls(self.pool, on_degraded=record, timeout=self.timeout)
            for entity_type, search_cls in ENTITY_SEARCHES.items()
        }
        fetched_types = [t for t in searchers if query.entity_scope.includes(t)]

        calls = [searchers[t].count(query) for t in searchers]
        calls += [
            searchers[t].fetch(query, query.offset, query.page_size, now)
            for t in fetched_types
        ]

        try:
            results = await _gather_or_cancel(calls)
        except Exception as e:
            logger.error(
                "search_failed",
                query=query.text,
                entity_scope=query.entity_scope.value,
                error=str(e),
            )
            raise

        totals = dict(zip(searchers, results[: len(searchers)]))
        items = dict(zip(fetched_types, results[len(searchers) :]))

        if items.get(EntityType.USERS):
            items[EntityType.USERS] = await enrich_users(
                items[EntityType.USERS], self.signer
            )

        buckets = {
            entity_type: ResultBucket[searchers[entity_type].hit_model].build(
                items=items.get(entity_type, []),
                total=totals[entity_type],
                page=query.page,
                page_size=query.page_size,
            )
            for entity_type in searchers
        }

        result = UnifiedSearchResult(
            query=query.text,
            entity_scope=query.entity_scope,
            sort_mode=query.sort_mode,
            page=query.page,
            page_size=query.page_size,
            overall_total=sum(totals.values()),
            articles=buckets[EntityType.ARTICLES],
            activities=buckets[EntityType.ACTIVITIES],
            users=buckets[EntityType.USERS],
            tags=buckets[EntityType.TAGS],
        )

        logger.info(
            "search_completed",
            query=query.text,
            entity_scope=query.entity_scope.value,
            sort_mode=query.sort_mode.value,
            page=query.page,
            overall_total=result.overall_total,
            degraded=[event.label for event in degradations],
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return result


async def unified_search(
    text: Any,
    entity_scope: Any = None,
    page: Any = None,
    page_size: Any = None,
    sort_mode: Any = None,
    *,
    signer: Optional[AvatarSigner] = None,
    on_degraded: Optional[DegradationCallback] = None,
    **filters: Any,
) -> UnifiedSearchResult:
    """Search with the process-wide pool and settings.

    Example:
        >>> result = await unified_search("react hooks", page_size=5)
        >>> result.overall_total
        17
    """
    settings = get_settings()
    pool = await get_connection_pool()
    engine = UnifiedSearchEngine(
        pool,
        signer=signer,
        on_degraded=on_degraded,
        timeout=settings.search_timeout,
    )
    return await engine.search(
        text, entity_scope, page, page_size, sort_mode, **filters
    )
