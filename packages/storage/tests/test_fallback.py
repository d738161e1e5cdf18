"""Tests for the degradation supervisor."""

import asyncio
from contextlib import contextmanager
from unittest.mock import patch

import pytest
import structlog
from structlog.testing import capture_logs

from blog_search_common import FatalSearchFailure
from blog_search_storage import fallback
from blog_search_storage.fallback import DegradedSearch, with_fallback


def _returning(value):
    async def call():
        return value

    return call


def _raising(error):
    async def call():
        raise error

    return call


def _sleeping(delay, value):
    async def call():
        await asyncio.sleep(delay)
        return value

    return call


def _not_called():
    async def call():
        raise AssertionError("fallback must not run")

    return call


class TestWithFallback:
    """Test with_fallback behavior."""

    @pytest.mark.asyncio
    async def test_primary_success_is_transparent(self):
        events = []

        result = await with_fallback(
            _returning(5),
            _not_called(),
            "articles-count",
            entity="articles",
            operation="count",
            on_degraded=events.append,
        )

        assert result == 5
        assert events == []

    @pytest.mark.asyncio
    async def test_primary_failure_uses_fallback(self):
        events = []

        result = await with_fallback(
            _raising(RuntimeError("tsvector missing")),
            _returning(3),
            "articles-count",
            entity="articles",
            operation="count",
            on_degraded=events.append,
        )

        assert result == 3
        assert events == [
            DegradedSearch(
                label="articles-count",
                entity="articles",
                operation="count",
                error="tsvector missing",
            )
        ]

    @pytest.mark.asyncio
    async def test_fallback_failure_is_fatal(self):
        root = ConnectionError("pool closed")

        with pytest.raises(FatalSearchFailure) as exc_info:
            await with_fallback(
                _raising(RuntimeError("index broken")),
                _raising(root),
                "users-fetch",
                entity="users",
                operation="fetch",
            )

        assert exc_info.value.entity == "users"
        assert exc_info.value.operation == "fetch"
        assert str(exc_info.value) == "users fetch failed: pool closed"
        assert exc_info.value.__cause__ is root

    @pytest.mark.asyncio
    async def test_primary_timeout_degrades(self):
        events = []

        result = await with_fallback(
            _sleeping(1.0, "slow"),
            _returning("fast"),
            "tags-fetch",
            entity="tags",
            operation="fetch",
            on_degraded=events.append,
            timeout=0.01,
        )

        assert result == "fast"
        assert events[0].error == "timed out after 0.01s"

    @pytest.mark.asyncio
    async def test_fallback_timeout_is_fatal(self):
        with pytest.raises(FatalSearchFailure, match="timed out"):
            await with_fallback(
                _sleeping(1.0, "slow"),
                _sleeping(1.0, "slower"),
                "tags-count",
                entity="tags",
                operation="count",
                timeout=0.01,
            )

    @pytest.mark.asyncio
    async def test_callback_error_does_not_break_search(self):
        def broken_callback(event):
            raise RuntimeError("metrics down")

        result = await with_fallback(
            _raising(RuntimeError("boom")),
            _returning(1),
            "activities-count",
            entity="activities",
            operation="count",
            on_degraded=broken_callback,
        )

        assert result == 1

    @pytest.mark.asyncio
    async def test_error_without_message_uses_type_name(self):
        events = []

        await with_fallback(
            _raising(KeyError()),
            _returning(0),
            "users-count",
            entity="users",
            operation="count",
            on_degraded=events.append,
        )

        assert events[0].error == "KeyError"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        """Test that cancelling the caller does not trigger the fallback."""
        started = asyncio.Event()

        async def primary():
            started.set()
            await asyncio.sleep(10)

        task = asyncio.ensure_future(
            with_fallback(
                primary,
                _not_called(),
                "articles-fetch",
                entity="articles",
                operation="fetch",
            )
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


@pytest.mark.asyncio
async def test_each_attempt_traced_with_its_mode():
    spans = []

    @contextmanager
    def recording_span(name, tracer_name="blog_search", **attributes):
        spans.append((name, attributes))
        yield None

    with patch("blog_search_storage.fallback.traced_span", recording_span):
        await with_fallback(
            _raising(RuntimeError("index missing")),
            _returning(3),
            "tags-count",
            entity="tag",
            operation="count",
        )

    assert spans == [
        ("tags-count", {"entity": "tag", "operation": "count", "mode": "indexed"}),
        ("tags-count", {"entity": "tag", "operation": "count", "mode": "substring"}),
    ]


@pytest.fixture
def fresh_logger(monkeypatch):
    """Module logger that has not cached an earlier configuration."""
    monkeypatch.setattr(
        fallback, "logger", structlog.get_logger("blog_search_storage.fallback")
    )


@pytest.mark.asyncio
async def test_degradation_logged_as_warning(fresh_logger):
    with capture_logs() as logs:
        await with_fallback(
            _raising(RuntimeError("index missing")),
            _returning(7),
            "articles-count",
            entity="article",
            operation="count",
        )

    assert logs == [
        {
            "event": "search_degraded",
            "log_level": "warning",
            "label": "articles-count",
            "entity": "article",
            "operation": "count",
            "error": "index missing",
        }
    ]


@pytest.mark.asyncio
async def test_fallback_failure_logged_as_error(fresh_logger):
    with capture_logs() as logs:
        with pytest.raises(FatalSearchFailure):
            await with_fallback(
                _raising(RuntimeError("index missing")),
                _raising(ConnectionError("pool closed")),
                "users-fetch",
                entity="user",
                operation="fetch",
            )

    assert [(entry["event"], entry["log_level"]) for entry in logs] == [
        ("search_degraded", "warning"),
        ("search_fallback_failed", "error"),
    ]
    assert logs[1]["label"] == "users-fetch"
    assert logs[1]["error"] == "pool closed"


@pytest.mark.asyncio
async def test_success_logs_nothing(fresh_logger):
    with capture_logs() as logs:
        await with_fallback(_returning(1), _not_called(), "tags-count", entity="tag", operation="count")

    assert logs == []
