"""Shared service layer for the Blog Search API.

Owns the process-wide UnifiedSearchEngine and wires its degradation
callback into Prometheus. Route handlers only call the functions here.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from blog_search_common import FatalSearchFailure, Settings, get_logger
from blog_search_contracts import UnifiedSearchResult
from blog_search_storage import (
    AvatarSigner,
    DegradedSearch,
    StorageAvatarSigner,
    UnifiedSearchEngine,
    check_connection_health,
)

from blog_search_api import metrics

if TYPE_CHECKING:
    from asyncpg import Pool

logger = get_logger(__name__)


@dataclass
class SearchOptions:
    """Raw search parameters as received over HTTP (normalized later)."""

    query: str
    entity_scope: Optional[str] = None
    page: Optional[str] = None
    page_size: Optional[str] = None
    sort_mode: Optional[str] = None
    author_id: Optional[str] = None
    tag_ids: list[str] = field(default_factory=list)
    published_from: Optional[datetime] = None
    published_to: Optional[datetime] = None


# Initialized by the application lifespan
_engine: Optional[UnifiedSearchEngine] = None
_signer: Optional[AvatarSigner] = None


def record_degradation(event: DegradedSearch) -> None:
    """Degradation callback: feeds blog_search_degradations_total."""
    metrics.track_degradation(event.entity, event.operation)


def init_engine(pool: Pool, settings: Settings) -> UnifiedSearchEngine:
    """Create the process-wide engine over an open pool."""
    global _engine, _signer

    _signer = StorageAvatarSigner.from_settings(settings)
    _engine = UnifiedSearchEngine(
        pool,
        signer=_signer,
        on_degraded=record_degradation,
        timeout=settings.search_timeout,
    )
    logger.info(
        "search_engine_initialized",
        timeout=settings.search_timeout,
        signer=type(_signer).__name__,
    )
    return _engine


def get_engine() -> UnifiedSearchEngine:
    """Return the engine, failing loudly when the lifespan has not run."""
    if _engine is None:
        raise RuntimeError("Search engine not initialized")
    return _engine


async def shutdown_engine() -> None:
    """Release the signer's HTTP client and forget the engine."""
    global _engine, _signer

    if isinstance(_signer, StorageAvatarSigner):
        await _signer.aclose()
    _engine = None
    _signer = None


async def search(options: SearchOptions) -> UnifiedSearchResult:
    """Run one unified search.

    Raises:
        SearchValidationError: Rejected query text
        FatalSearchFailure: An entity failed in both search modes
    """
    start = time.perf_counter()
    engine = get_engine()

    try:
        result = await engine.search(
            options.query,
            options.entity_scope,
            options.page,
            options.page_size,
            options.sort_mode,
            author_id=options.author_id,
            tag_ids=options.tag_ids,
            published_from=options.published_from,
            published_to=options.published_to,
        )
    except FatalSearchFailure as e:
        metrics.track_fatal_failure(e.entity, e.operation)
        raise

    metrics.track_search_results(result, duration=time.perf_counter() - start)
    return result


async def database_ready() -> bool:
    """True when the engine's pool answers SELECT 1."""
    if _engine is None:
        return False
    return await check_connection_health(_engine.pool)


def avatar_signing_enabled() -> bool:
    return isinstance(_signer, StorageAvatarSigner)
