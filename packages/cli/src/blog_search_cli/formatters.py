"""Output formatters for CLI results.

Provides two output formats:
- markdown: Human-readable, one section per entity bucket
- json: The UnifiedSearchResult as machine-parseable JSON
"""

from blog_search_contracts import (
    ActivityHit,
    ArticleHit,
    EntityType,
    RankedRow,
    TagHit,
    UnifiedSearchResult,
    UserHit,
)

SNIPPET_LENGTH = 200

SECTION_TITLES = {
    EntityType.ARTICLES: "Articles",
    EntityType.ACTIVITIES: "Activities",
    EntityType.USERS: "Users",
    EntityType.TAGS: "Tags",
}


def _snippet(text: str | None) -> str:
    if not text:
        return ""
    flat = " ".join(text.split())
    if len(flat) > SNIPPET_LENGTH:
        return flat[:SNIPPET_LENGTH] + "..."
    return flat


def format_hit_markdown(hit: RankedRow, position: int, show_content: bool = True) -> str:
    """Format a single hit as a markdown list entry.

    Args:
        hit: Article, activity, user or tag hit
        position: 1-based position within the overall result list
        show_content: Whether to include excerpts, bios and descriptions

    Returns:
        Markdown-formatted string
    """
    score = f"relevance: {hit.relevance:.2f}"

    if isinstance(hit, ArticleHit):
        when = (hit.published_at or hit.created_at).date().isoformat()
        author = f" by {hit.author_name}" if hit.author_name else ""
        line = f"{position}. **{hit.title}**{author} ({when}, {score}) `/{hit.slug}`"
        body = hit.excerpt
    elif isinstance(hit, ActivityHit):
        author = hit.author_name or hit.author_id
        when = hit.created_at.date().isoformat()
        line = f"{position}. {author} ({when}, {score})"
        body = hit.content
    elif isinstance(hit, UserHit):
        line = f"{position}. **{hit.name or hit.id}** ({score})"
        body = hit.bio
    elif isinstance(hit, TagHit):
        line = f"{position}. #{hit.name} ({hit.posts_count} posts, {score})"
        body = hit.description
    else:
        line = f"{position}. {hit.id} ({score})"
        body = None

    snippet = _snippet(body) if show_content else ""
    if snippet:
        line += f"\n   > {snippet}"
    return line


def format_results_markdown(
    result: UnifiedSearchResult,
    show_content: bool = True,
) -> str:
    """Format a unified search result as markdown.

    Buckets without items are listed with their total only.
    """
    if result.overall_total == 0:
        return f"No results found for: **{result.query}**"

    lines = [
        f'# Search Results for: "{result.query}"',
        "",
        f"Found {result.overall_total} matches "
        f"(page {result.page}, {result.page_size} per type, sort: {result.sort_mode.value})",
    ]

    for entity_type, title in SECTION_TITLES.items():
        bucket = result.bucket(entity_type)
        lines.append("")
        lines.append(f"## {title} ({bucket.total})")

        if not bucket.items:
            continue

        start = (result.page - 1) * result.page_size
        for index, hit in enumerate(bucket.items, start=start + 1):
            lines.append(format_hit_markdown(hit, index, show_content))
        if bucket.has_more:
            lines.append(f"_More on page {result.page + 1}_")

    return "\n".join(lines)


def format_results_json(result: UnifiedSearchResult) -> str:
    """Format a unified search result as a JSON string."""
    return result.model_dump_json(indent=2)
