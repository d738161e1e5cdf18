"""Pydantic schemas for API responses not covered by the contracts package.

The search endpoint returns blog_search_contracts.UnifiedSearchResult as is.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body for 400 and 503 responses."""

    error: str = Field(..., description="validation_error or search_unavailable")
    message: str = Field(..., description="Human-readable message")
    reason: Optional[str] = Field(
        None, description="Validation reason (length, banned_pattern)"
    )


class HealthCheck(BaseModel):
    """Health check response."""

    status: str = Field(..., description="healthy or degraded")
    version: str = Field(..., description="API version")
    database: str = Field(..., description="connected or disconnected")
    avatar_signing: str = Field(..., description="enabled or passthrough")
