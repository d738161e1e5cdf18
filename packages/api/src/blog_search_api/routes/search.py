"""Unified search endpoint.

GET /search?q=react&type=articles&page=2&page_size=5&sort=latest
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from blog_search_api import service
from blog_search_api.schemas import ErrorResponse
from blog_search_contracts import UnifiedSearchResult

router = APIRouter()


@router.get(
    "",
    response_model=UnifiedSearchResult,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def search(
    q: str = Query(..., description="Search text (1-100 characters)"),
    entity_type: Optional[str] = Query(
        None, alias="type", description="all, articles, activities, users or tags"
    ),
    page: Optional[str] = Query(None, description="1-based page (clamped to 1-10000)"),
    page_size: Optional[str] = Query(
        None, description="Items per bucket (clamped to 1-10)"
    ),
    sort: Optional[str] = Query(None, description="relevance or latest"),
    author_id: Optional[str] = Query(None, description="Restrict to one author"),
    tag_ids: Optional[list[str]] = Query(
        None,
        description="Articles must carry all tags (repeat or comma-separate)",
    ),
    published_from: Optional[datetime] = Query(None, description="Earliest publish time"),
    published_to: Optional[datetime] = Query(None, description="Latest publish time"),
) -> UnifiedSearchResult:
    """Search articles, activities, users and tags in one request.

    Parameters
    ----------
    q : str
        Query text; "--", "/*", "*/" and ";" are rejected with 400
    type : str, optional
        Entity scope; unknown values mean all
    page, page_size : str, optional
        Lenient pagination; non-numeric values fall back to defaults

    Returns
    -------
    UnifiedSearchResult
        Four buckets, each with its own total; only in-scope buckets carry items.
    """
    options = service.SearchOptions(
        query=q,
        entity_scope=entity_type,
        page=page,
        page_size=page_size,
        sort_mode=sort,
        author_id=author_id,
        tag_ids=tag_ids or [],
        published_from=published_from,
        published_to=published_to,
    )
    return await service.search(options)
