"""Entity searches: articles, activities, users and tags.

Table layout (see schema.sql):
- articles a     published = true; timestamp COALESCE(published_at, created_at)
- activities ac  deleted_at IS NULL; timestamp created_at
- users u        status = 'ACTIVE'; timestamp COALESCE(last_active_at, created_at)
- tags t         always visible; timestamp created_at
"""

from typing import Any, Mapping

from blog_search_contracts import (
    ActivityHit,
    ArticleHit,
    EntityType,
    TagHit,
    UserHit,
)

from blog_search_storage.entity_search import EntitySearch, optional_str
from blog_search_storage.query import SearchQuery
from blog_search_storage.sql import SqlArgs


class ArticleSearch(EntitySearch[ArticleHit]):
    """Published articles, filterable by author, tags and publish window."""

    entity_type = EntityType.ARTICLES
    hit_model = ArticleHit
    count_from = "articles a"
    from_clause = "articles a LEFT JOIN users au ON au.id = a.author_id"
    id_column = "a.id"
    vector_column = "a.search_vector"
    timestamp_column = "COALESCE(a.published_at, a.created_at)"
    substring_columns = ("a.title", "COALESCE(a.excerpt, '')", "a.content")
    select_columns = (
        "a.id, a.slug, a.title, a.excerpt, a.published_at, a.created_at, "
        "a.cover_image, a.author_id, au.name AS author_name"
    )

    def base_predicates(self, query: SearchQuery, args: SqlArgs) -> list[str]:
        filters = query.filters
        predicates = ["a.published = true"]

        if filters.author_id:
            predicates.append(f"a.author_id = {args.add(filters.author_id)}")

        if filters.published_from:
            predicates.append(
                f"{self.timestamp_column} >= {args.add(filters.published_from)}"
            )
        if filters.published_to:
            predicates.append(
                f"{self.timestamp_column} <= {args.add(filters.published_to)}"
            )

        if filters.tag_ids:
            # Article must carry every requested tag
            tag_param = args.add(list(filters.tag_ids))
            count_param = args.add(len(filters.tag_ids))
            predicates.append(
                "a.id IN ("
                "SELECT at.article_id FROM article_tags at "
                f"WHERE at.tag_id = ANY({tag_param}::text[]) "
                "GROUP BY at.article_id "
                f"HAVING COUNT(DISTINCT at.tag_id) = {count_param})"
            )

        return predicates

    def row_to_hit(self, row: Mapping[str, Any], relevance: float) -> ArticleHit:
        return ArticleHit(
            id=str(row["id"]),
            relevance=relevance,
            slug=row["slug"],
            title=row["title"],
            excerpt=row["excerpt"],
            published_at=row["published_at"],
            created_at=row["created_at"],
            cover_image=row["cover_image"],
            author_id=str(row["author_id"]),
            author_name=row["author_name"],
        )


class ActivitySearch(EntitySearch[ActivityHit]):
    """Short-form posts that have not been soft-deleted."""

    entity_type = EntityType.ACTIVITIES
    hit_model = ActivityHit
    count_from = "activities ac"
    from_clause = "activities ac LEFT JOIN users au ON au.id = ac.author_id"
    id_column = "ac.id"
    vector_column = "ac.search_vector"
    timestamp_column = "ac.created_at"
    substring_columns = ("ac.content",)
    select_columns = (
        "ac.id, ac.content, ac.image_urls, ac.created_at, ac.author_id, "
        "au.name AS author_name"
    )

    def base_predicates(self, query: SearchQuery, args: SqlArgs) -> list[str]:
        predicates = ["ac.deleted_at IS NULL"]
        if query.filters.author_id:
            predicates.append(f"ac.author_id = {args.add(query.filters.author_id)}")
        return predicates

    def row_to_hit(self, row: Mapping[str, Any], relevance: float) -> ActivityHit:
        return ActivityHit(
            id=str(row["id"]),
            relevance=relevance,
            content=row["content"],
            image_urls=list(row["image_urls"] or []),
            created_at=row["created_at"],
            author_id=str(row["author_id"]),
            author_name=row["author_name"],
        )


class UserSearch(EntitySearch[UserHit]):
    """Active users. Email is matched in substring mode but never returned."""

    entity_type = EntityType.USERS
    hit_model = UserHit
    count_from = "users u"
    from_clause = "users u"
    id_column = "u.id"
    vector_column = "u.search_vector"
    timestamp_column = "COALESCE(u.last_active_at, u.created_at)"
    substring_columns = (
        "COALESCE(u.name, '')",
        "u.email",
        "COALESCE(u.bio, '')",
    )
    select_columns = "u.id, u.name, u.avatar_url, u.bio"

    def base_predicates(self, query: SearchQuery, args: SqlArgs) -> list[str]:
        return ["u.status = 'ACTIVE'"]

    def row_to_hit(self, row: Mapping[str, Any], relevance: float) -> UserHit:
        return UserHit(
            id=str(row["id"]),
            relevance=relevance,
            name=row["name"],
            avatar_url=optional_str(row["avatar_url"]),
            bio=row["bio"],
        )


class TagSearch(EntitySearch[TagHit]):
    """Tags; no visibility rule."""

    entity_type = EntityType.TAGS
    hit_model = TagHit
    count_from = "tags t"
    from_clause = "tags t"
    id_column = "t.id"
    vector_column = "t.search_vector"
    timestamp_column = "t.created_at"
    substring_columns = ("t.name", "t.slug", "COALESCE(t.description, '')")
    select_columns = "t.id, t.name, t.slug, t.description, t.color, t.posts_count"

    def row_to_hit(self, row: Mapping[str, Any], relevance: float) -> TagHit:
        return TagHit(
            id=str(row["id"]),
            relevance=relevance,
            name=row["name"],
            slug=row["slug"],
            description=row["description"],
            color=row["color"],
            posts_count=row["posts_count"] or 0,
        )


# Fixed order: the aggregate and its logs always list entities this way
ENTITY_SEARCHES: dict[EntityType, type[EntitySearch]] = {
    EntityType.ARTICLES: ArticleSearch,
    EntityType.ACTIVITIES: ActivitySearch,
    EntityType.USERS: UserSearch,
    EntityType.TAGS: TagSearch,
}
