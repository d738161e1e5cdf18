"""Degradation supervisor: full-text first, substring once, then give up.

One layer of resilience only. A failure of the indexed path is logged and
reported as a DegradedSearch event, then the substring path runs. A failure
of the substring path is a real outage and surfaces as FatalSearchFailure.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from blog_search_common import FatalSearchFailure, get_logger, traced_span

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DegradedSearch:
    """Indexed search failed and substring search took over.

    Attributes:
        label: Call-site label, e.g. "articles-count"
        entity: Entity type that degraded
        operation: "count" or "fetch"
        error: Message of the indexed-mode failure
    """

    label: str
    entity: str
    operation: str
    error: str


DegradationCallback = Callable[[DegradedSearch], None]


def _describe(error: BaseException, timeout: Optional[float]) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return f"timed out after {timeout}s"
    return str(error) or type(error).__name__


async def _run(
    call: Callable[[], Awaitable[T]],
    timeout: Optional[float],
    label: str,
    **attributes: str,
) -> T:
    with traced_span(label, tracer_name=__name__, **attributes):
        if timeout is None:
            return await call()
        return await asyncio.wait_for(call(), timeout=timeout)


async def with_fallback(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Awaitable[T]],
    label: str,
    *,
    entity: str,
    operation: str,
    on_degraded: Optional[DegradationCallback] = None,
    timeout: Optional[float] = None,
) -> T:
    """Run primary; on any error log, notify and return fallback's result.

    Args:
        primary: Indexed-mode coroutine factory
        fallback: Substring-mode coroutine factory
        label: Log label, e.g. "users-fetch"
        entity: Entity type (for the event and the fatal error)
        operation: "count" or "fetch"
        on_degraded: Side-channel callback receiving the DegradedSearch event
        timeout: Per-attempt timeout in seconds (None disables)

    Returns:
        Result of primary, or of fallback after a degradation

    Raises:
        FatalSearchFailure: If fallback fails too (chained to its error)
    """
    try:
        return await _run(
            primary, timeout, label, entity=entity, operation=operation, mode="indexed"
        )
    except Exception as e:
        event = DegradedSearch(
            label=label,
            entity=entity,
            operation=operation,
            error=_describe(e, timeout),
        )
        logger.warning(
            "search_degraded",
            label=label,
            entity=entity,
            operation=operation,
            error=event.error,
        )
        if on_degraded is not None:
            try:
                on_degraded(event)
            except Exception as callback_error:
                logger.error(
                    "degradation_callback_failed",
                    label=label,
                    error=str(callback_error),
                )

    try:
        return await _run(
            fallback, timeout, label, entity=entity, operation=operation, mode="substring"
        )
    except Exception as e:
        message = _describe(e, timeout)
        logger.error(
            "search_fallback_failed",
            label=label,
            entity=entity,
            operation=operation,
            error=message,
        )
        raise FatalSearchFailure(entity, operation, message) from e
