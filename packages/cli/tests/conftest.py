"""Fixtures for CLI testing."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

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


@pytest.fixture(autouse=True)
def logging_setup():
    """Keep CLI invocations from rebinding the root logger to the runner's streams."""
    with patch("blog_search_cli.main.configure_logging_from_settings") as configure:
        yield configure


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


def build_result(page: int = 1, page_size: int = 10, empty: bool = False) -> UnifiedSearchResult:
    """Fake search result: one hit per entity type unless empty."""

    def bucket(model, items, total):
        if empty:
            items, total = [], 0
        return ResultBucket[model].build(
            items=items, total=total, page=page, page_size=page_size
        )

    articles = bucket(
        ArticleHit,
        [
            ArticleHit(
                id="a1",
                relevance=0.65,
                slug="react-hooks",
                title="React hooks in depth",
                excerpt="Everything about   useEffect\nand friends",
                published_at=PUBLISHED,
                created_at=PUBLISHED,
                author_id="u1",
                author_name="Ada",
            )
        ],
        12,
    )
    activities = bucket(
        ActivityHit,
        [
            ActivityHit(
                id="ac1",
                relevance=0.5,
                content="Shipped a react demo",
                created_at=PUBLISHED,
                author_id="u1",
            )
        ],
        1,
    )
    users = bucket(UserHit, [UserHit(id="u1", relevance=0.4, name="Ada", bio="Writes about react")], 1)
    tags = bucket(
        TagHit,
        [TagHit(id="t1", relevance=0.0, name="react", slug="react", posts_count=12)],
        1,
    )

    return UnifiedSearchResult(
        query="react",
        entity_scope=EntityScope.ALL,
        sort_mode=SortMode.RELEVANCE,
        page=page,
        page_size=page_size,
        overall_total=articles.total + activities.total + users.total + tags.total,
        articles=articles,
        activities=activities,
        users=users,
        tags=tags,
    )


@pytest.fixture
def search_result() -> UnifiedSearchResult:
    return build_result()


@pytest.fixture
def empty_result() -> UnifiedSearchResult:
    return build_result(empty=True)


@pytest.fixture
def result_factory():
    """Build fake results for a given page / page size."""
    return build_result
