"""Tests for tracing helpers."""

from unittest.mock import MagicMock, patch

import pytest

import blog_search_common.instrumentation as instrumentation
from blog_search_common.instrumentation import (
    get_tracer,
    init_telemetry,
    instrument_function,
    traced_span,
)


@pytest.fixture
def fresh_provider():
    """Forget the module's provider so initialization can be observed."""
    saved = instrumentation._tracer_provider
    instrumentation._tracer_provider = None
    yield
    instrumentation._tracer_provider = saved


@pytest.fixture
def fake_tracer():
    tracer = MagicMock()
    with patch("blog_search_common.instrumentation.get_tracer", return_value=tracer):
        yield tracer


def _span(tracer):
    return tracer.start_as_current_span.return_value.__enter__.return_value


class TestProvider:
    def test_init_installs_provider_once(self, fresh_provider):
        init_telemetry(service_name="blog-search-test")
        first = instrumentation._tracer_provider
        init_telemetry(service_name="other")

        assert first is not None
        assert instrumentation._tracer_provider is first

    def test_get_tracer_initializes_lazily(self, fresh_provider):
        tracer = get_tracer("blog_search_storage.fallback")

        assert instrumentation._tracer_provider is not None
        assert callable(tracer.start_as_current_span)


class TestInstrumentFunction:
    @pytest.mark.asyncio
    async def test_coroutine_wrapped_in_named_span(self, fake_tracer):
        @instrument_function("unified_search")
        async def search(text: str) -> str:
            return text.upper()

        assert await search("react") == "REACT"
        fake_tracer.start_as_current_span.assert_called_once_with("unified_search")

    def test_plain_function_span_named_after_function(self, fake_tracer):
        @instrument_function()
        def page_offset(page: int) -> int:
            return (page - 1) * 10

        assert page_offset(3) == 20
        fake_tracer.start_as_current_span.assert_called_once_with("page_offset")

    def test_wrapper_keeps_name_and_doc(self):
        @instrument_function("count_articles")
        def count() -> None:
            """Count matching articles."""

        assert count.__name__ == "count"
        assert count.__doc__ == "Count matching articles."

    @pytest.mark.asyncio
    async def test_coroutine_errors_propagate(self):
        @instrument_function()
        async def failing_fetch() -> None:
            raise LookupError("relation missing")

        with pytest.raises(LookupError, match="relation missing"):
            await failing_fetch()


class TestTracedSpan:
    def test_attributes_prefixed_and_none_skipped(self, fake_tracer):
        with traced_span("articles-count", entity="article", mode="indexed", author=None):
            pass

        span = _span(fake_tracer)
        fake_tracer.start_as_current_span.assert_called_once_with("articles-count")
        span.set_attribute.assert_any_call("search.entity", "article")
        span.set_attribute.assert_any_call("search.mode", "indexed")
        assert span.set_attribute.call_count == 2

    def test_error_marks_span_and_propagates(self, fake_tracer):
        with pytest.raises(RuntimeError, match="index missing"):
            with traced_span("users-fetch"):
                raise RuntimeError("index missing")

        _span(fake_tracer).set_status.assert_called_once()

    def test_real_tracer_span(self, fresh_provider):
        with traced_span("tags-count", entity="tag") as span:
            assert span is not None
