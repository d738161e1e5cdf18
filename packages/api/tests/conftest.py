"""Test configuration for API tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from blog_search_api.main import create_app
from blog_search_contracts import (
    ActivityHit,
    ArticleHit,
    EntityScope,
    ResultBucket,
    SortMode,
    TagHit,
    UnifiedSearchResult,
    UserHit,
)

PUBLISHED = datetime(2025, 1, 30, 9, 0, tzinfo=timezone.utc)


def make_result(query: str = "react", page: int = 1, page_size: int = 10) -> UnifiedSearchResult:
    """One article, one user, empty activities and tags."""
    articles = ResultBucket[ArticleHit].build(
        items=[
            ArticleHit(
                id="a1",
                relevance=0.65,
                slug="react-hooks",
                title="React hooks in depth",
                published_at=PUBLISHED,
                created_at=PUBLISHED,
                author_id="u1",
                author_name="Ada",
            )
        ],
        total=12,
        page=page,
        page_size=page_size,
    )
    users = ResultBucket[UserHit].build(
        items=[UserHit(id="u1", relevance=0.4, name="Ada", avatar_url="https://cdn/a.png")],
        total=1,
        page=page,
        page_size=page_size,
    )
    return UnifiedSearchResult(
        query=query,
        entity_scope=EntityScope.ALL,
        sort_mode=SortMode.RELEVANCE,
        page=page,
        page_size=page_size,
        overall_total=13,
        articles=articles,
        activities=ResultBucket[ActivityHit].build(
            items=[], total=0, page=page, page_size=page_size
        ),
        users=users,
        tags=ResultBucket[TagHit].build(items=[], total=0, page=page, page_size=page_size),
    )


@pytest.fixture
def mock_engine():
    """Engine stand-in installed as the process-wide engine.

    ASGITransport does not run the lifespan, so the engine is patched in
    directly instead of being created from a pool.
    """
    engine = MagicMock()
    engine.search = AsyncMock(return_value=make_result())
    engine.pool = MagicMock()
    with patch("blog_search_api.service._engine", engine):
        yield engine


@pytest.fixture
def db_healthy():
    with patch(
        "blog_search_api.service.check_connection_health",
        AsyncMock(return_value=True),
    ) as health:
        yield health


@pytest.fixture
async def app_client(mock_engine) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with mocked dependencies."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
