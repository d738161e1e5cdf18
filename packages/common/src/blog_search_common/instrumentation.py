"""OpenTelemetry tracing for search requests.

A unified search produces one "unified_search" span (instrument_function
on the engine) with one child span per entity operation attempt
(traced_span in the degradation supervisor), so a degraded request shows
both the failed indexed attempt and the substring attempt that replaced it.
"""

import inspect
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

_tracer_provider: Optional[TracerProvider] = None


def init_telemetry(service_name: str = "blog-search", console_export: bool = False) -> None:
    """Install the process tracer provider; later calls are no-ops.

    Spans are only exported when console_export is set (development).
    """
    global _tracer_provider

    if _tracer_provider is not None:
        return

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer_provider = provider


def get_tracer(name: str) -> trace.Tracer:
    if _tracer_provider is None:
        init_telemetry()
    return trace.get_tracer(name)


@contextmanager
def traced_span(name: str, tracer_name: str = "blog_search", **attributes: Any) -> Iterator[Any]:
    """Run a block inside a span carrying ``attributes``.

    An exception escaping the block marks the span as an error and is
    re-raised unchanged.

    Example:
        >>> with traced_span("articles-count", entity="article", mode="indexed"):
        ...     ...
    """
    tracer = get_tracer(tracer_name)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"search.{key}", value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


def instrument_function(span_name: Optional[str] = None) -> Callable:
    """Wrap a sync or async function in a span named after it (or span_name).

    The tracer is looked up per call so that a provider installed after
    import time is still used.
    """

    def decorator(func: Callable) -> Callable:
        name = span_name or func.__name__

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with get_tracer(func.__module__).start_as_current_span(name):
                    return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with get_tracer(func.__module__).start_as_current_span(name):
                return func(*args, **kwargs)

        return sync_wrapper

    return decorator
