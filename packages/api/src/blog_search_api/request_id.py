"""X-Request-ID propagation for search requests.

Each HTTP request gets an id that is echoed on the response and bound into
the structlog context, so every event logged while serving the request
(degradations, signing failures, fatal failures) carries it.
"""

from __future__ import annotations

import re
import uuid
from typing import Awaitable, Callable, Optional

from blog_search_common import bind_log_context, clear_log_context

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_MAX_LENGTH = 64

# Client ids end up in log lines
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9_-]{1,%d}$" % REQUEST_ID_MAX_LENGTH)

ASGIApp = Callable[[dict, Callable, Callable], Awaitable[None]]


def sanitize_request_id(raw: Optional[str]) -> str:
    """Return the client id when it is safe to log, else a fresh UUID."""
    candidate = (raw or "").strip()
    if _SAFE_REQUEST_ID.match(candidate):
        return candidate
    return str(uuid.uuid4())


def _header(scope: dict, name: str) -> Optional[str]:
    wanted = name.lower().encode()
    for key, value in scope.get("headers", []):
        if key.lower() == wanted:
            return value.decode("utf-8", errors="replace")
    return None


class RequestIDMiddleware:
    """Raw ASGI middleware; leaves streaming responses untouched."""

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER) -> None:
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = sanitize_request_id(_header(scope, self.header_name))
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((self.header_name.encode(), request_id.encode()))
                message["headers"] = headers
            await send(message)

        clear_log_context()
        bind_log_context(request_id=request_id)
        try:
            await self.app(scope, receive, send_with_id)
        finally:
            clear_log_context()
