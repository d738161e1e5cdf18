"""Tests for the unified search endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from blog_search_common import FatalSearchFailure, SearchValidationError


@pytest.mark.asyncio
async def test_search_returns_all_buckets(app_client, mock_engine):
    """Basic search returns the aggregate as JSON."""
    response = await app_client.get("/search", params={"q": "react"})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "react"
    assert data["overall_total"] == 13
    assert data["entity_scope"] == "all"
    assert data["sort_mode"] == "relevance"
    for name in ("articles", "activities", "users", "tags"):
        assert set(data[name]) == {"items", "total", "page", "page_size", "has_more"}
    assert data["articles"]["items"][0]["title"] == "React hooks in depth"
    assert data["articles"]["has_more"] is True
    assert data["users"]["items"][0]["avatar_url"] == "https://cdn/a.png"
    assert "email" not in data["users"]["items"][0]


@pytest.mark.asyncio
async def test_search_defaults_passed_through(app_client, mock_engine):
    await app_client.get("/search", params={"q": "react"})

    mock_engine.search.assert_awaited_once_with(
        "react",
        None,
        None,
        None,
        None,
        author_id=None,
        tag_ids=[],
        published_from=None,
        published_to=None,
    )


@pytest.mark.asyncio
async def test_search_raw_values_left_to_normalization(app_client, mock_engine):
    """Lenient parameters are forwarded untouched; the engine clamps them."""
    response = await app_client.get(
        "/search",
        params={
            "q": "react",
            "type": "articles",
            "page": "2",
            "page_size": "abc",
            "sort": "latest",
        },
    )

    assert response.status_code == 200
    args = mock_engine.search.await_args.args
    assert args == ("react", "articles", "2", "abc", "latest")


@pytest.mark.asyncio
async def test_search_filters(app_client, mock_engine):
    response = await app_client.get(
        "/search",
        params=[
            ("q", "rust"),
            ("author_id", "u1"),
            ("tag_ids", "t1"),
            ("tag_ids", "t2"),
            ("published_from", "2024-01-01T00:00:00Z"),
        ],
    )

    assert response.status_code == 200
    kwargs = mock_engine.search.await_args.kwargs
    assert kwargs["author_id"] == "u1"
    assert kwargs["tag_ids"] == ["t1", "t2"]
    assert kwargs["published_from"] == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert kwargs["published_to"] is None


@pytest.mark.asyncio
async def test_missing_query_rejected(app_client, mock_engine):
    response = await app_client.get("/search")

    assert response.status_code == 422
    mock_engine.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_validation_error_is_400(app_client, mock_engine):
    mock_engine.search.side_effect = SearchValidationError(
        "banned_pattern", "Search query contains forbidden characters"
    )

    response = await app_client.get("/search", params={"q": "react--drop"})

    assert response.status_code == 400
    assert response.json() == {
        "error": "validation_error",
        "reason": "banned_pattern",
        "message": "Search query contains forbidden characters",
    }


@pytest.mark.asyncio
async def test_fatal_failure_is_503_without_detail(app_client, mock_engine):
    mock_engine.search.side_effect = FatalSearchFailure(
        "users", "fetch", "password authentication failed"
    )

    response = await app_client.get("/search", params={"q": "react"})

    assert response.status_code == 503
    assert response.json() == {
        "error": "search_unavailable",
        "message": "Search is temporarily unavailable",
    }
    assert "password" not in response.text
