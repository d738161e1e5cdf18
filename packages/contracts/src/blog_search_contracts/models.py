"""Pydantic models for the blog search system.

These schemas define the contract between all packages.
Row fields match the PostgreSQL schema in packages/storage/schema.sql.
"""

from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EntityType(str, Enum):
    """Searchable entity types, one result bucket each."""

    ARTICLES = "articles"
    ACTIVITIES = "activities"
    USERS = "users"
    TAGS = "tags"


class EntityScope(str, Enum):
    """Which buckets a search populates with items."""

    ALL = "all"
    ARTICLES = "articles"
    ACTIVITIES = "activities"
    USERS = "users"
    TAGS = "tags"

    def includes(self, entity_type: EntityType) -> bool:
        """Return True when items of entity_type are fetched under this scope."""
        return self is EntityScope.ALL or self.value == entity_type.value


class SortMode(str, Enum):
    """Result ordering inside a bucket."""

    RELEVANCE = "relevance"
    LATEST = "latest"


class RankedRow(BaseModel):
    """Base for every bucket item.

    relevance is 0 for rows found by substring matching.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    relevance: float = Field(0.0, ge=0.0)


class ArticleHit(RankedRow):
    """Published article matched by a search.

    Matches PostgreSQL table: articles
    """

    slug: str
    title: str
    excerpt: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime
    cover_image: Optional[str] = None
    author_id: str
    author_name: Optional[str] = None


class ActivityHit(RankedRow):
    """Short-form activity post matched by a search.

    Matches PostgreSQL table: activities
    """

    content: str
    image_urls: list[str] = Field(default_factory=list)
    created_at: datetime
    author_id: str
    author_name: Optional[str] = None


class UserHit(RankedRow):
    """Active user profile matched by a search.

    avatar_url holds the stored reference until enrichment replaces it
    with a signed URL.
    """

    name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class TagHit(RankedRow):
    """Tag matched by a search."""

    name: str
    slug: str
    description: Optional[str] = None
    color: Optional[str] = None
    posts_count: int = 0


HitT = TypeVar("HitT", bound=RankedRow)


class ResultBucket(BaseModel, Generic[HitT]):
    """One entity type's independently paginated slice of the result.

    Invariants:
        has_more == (total > page * page_size)
        len(items) <= page_size
    """

    items: list[HitT] = Field(default_factory=list)
    total: int = Field(0, ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    has_more: bool = False

    @model_validator(mode="after")
    def check_invariants(self) -> "ResultBucket[HitT]":
        """Reject buckets whose pagination fields disagree."""
        if self.has_more != (self.total > self.page * self.page_size):
            raise ValueError(
                f"has_more={self.has_more} inconsistent with "
                f"total={self.total}, page={self.page}, page_size={self.page_size}"
            )
        if len(self.items) > self.page_size:
            raise ValueError(
                f"bucket holds {len(self.items)} items, page_size is {self.page_size}"
            )
        return self

    @classmethod
    def build(
        cls,
        items: list[HitT],
        total: int,
        page: int,
        page_size: int,
    ) -> "ResultBucket[HitT]":
        """Create a bucket, deriving has_more from the counts."""
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            has_more=total > page * page_size,
        )


class UnifiedSearchResult(BaseModel):
    """Aggregate response of one unified search.

    overall_total is the sum of the four bucket totals, including buckets
    that were not populated with items because of entity_scope.
    """

    query: str
    entity_scope: EntityScope
    sort_mode: SortMode
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, le=10)
    overall_total: int = Field(0, ge=0)
    articles: ResultBucket[ArticleHit]
    activities: ResultBucket[ActivityHit]
    users: ResultBucket[UserHit]
    tags: ResultBucket[TagHit]

    @model_validator(mode="after")
    def check_overall_total(self) -> "UnifiedSearchResult":
        """overall_total must equal the sum of bucket totals."""
        expected = (
            self.articles.total
            + self.activities.total
            + self.users.total
            + self.tags.total
        )
        if self.overall_total != expected:
            raise ValueError(
                f"overall_total={self.overall_total} but buckets sum to {expected}"
            )
        return self

    def bucket(self, entity_type: EntityType) -> ResultBucket:
        """Return the bucket for an entity type."""
        return getattr(self, entity_type.value)
