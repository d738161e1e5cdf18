"""Blog Search Common - Shared utilities.

Version: 1.0.0

This package provides:
- Settings (pydantic-settings)
- Structured logging (structlog)
- OpenTelemetry instrumentation helpers
- Custom error types
"""

from blog_search_common.config import Settings, get_settings
from blog_search_common.errors import (
    BlogSearchError,
    FatalSearchFailure,
    SearchError,
    SearchValidationError,
    SigningError,
    StorageError,
)
from blog_search_common.instrumentation import (
    get_tracer,
    init_telemetry,
    instrument_function,
    traced_span,
)
from blog_search_common.logging_config import (
    bind_log_context,
    clear_log_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
)

__version__ = "1.0.0"

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "bind_log_context",
    "clear_log_context",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    # Instrumentation
    "init_telemetry",
    "get_tracer",
    "instrument_function",
    "traced_span",
    # Errors
    "BlogSearchError",
    "StorageError",
    "SearchError",
    "SearchValidationError",
    "FatalSearchFailure",
    "SigningError",
]
