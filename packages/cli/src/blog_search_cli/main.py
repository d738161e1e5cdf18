"""Blog Search CLI - Main entry point.

Provides the `blog-search` command-line interface.

Usage:
    blog-search query "react hooks" --type articles --page-size 5 --format markdown
"""

import asyncio
import logging
import sys
from datetime import datetime
from enum import Enum
from typing import Optional

import typer
from blog_search_common import (
    FatalSearchFailure,
    SearchValidationError,
    configure_logging_from_settings,
    get_settings,
)
from blog_search_contracts import UnifiedSearchResult
from blog_search_storage import (
    DatabaseConfig,
    StorageAvatarSigner,
    UnifiedSearchEngine,
    check_connection_health,
    close_connection_pool,
    get_connection_pool,
)

from blog_search_cli.formatters import format_results_json, format_results_markdown


class OutputFormat(str, Enum):
    """Output format options."""

    markdown = "markdown"
    json = "json"


class Scope(str, Enum):
    """Entity scope options."""

    all = "all"
    articles = "articles"
    activities = "activities"
    users = "users"
    tags = "tags"


class Sort(str, Enum):
    """Sort options."""

    relevance = "relevance"
    latest = "latest"


# Create the Typer app
app = typer.Typer(
    name="blog-search",
    help="Search blog articles, activities, users and tags.",
    add_completion=False,
)


async def run_query(
    query_text: str,
    scope: Scope,
    page: int,
    page_size: int,
    sort: Sort,
    author_id: Optional[str] = None,
    tag_ids: Optional[list[str]] = None,
    published_from: Optional[datetime] = None,
    published_to: Optional[datetime] = None,
) -> UnifiedSearchResult:
    """Execute one unified search against the configured database.

    Returns:
        UnifiedSearchResult

    Raises:
        SearchValidationError: Rejected query text
        FatalSearchFailure: An entity failed in both search modes
    """
    settings = get_settings()
    pool = await get_connection_pool(DatabaseConfig.from_settings())
    signer = StorageAvatarSigner.from_settings(settings)

    try:
        engine = UnifiedSearchEngine(
            pool, signer=signer, timeout=settings.search_timeout
        )
        return await engine.search(
            query_text,
            scope.value,
            page,
            page_size,
            sort.value,
            author_id=author_id,
            tag_ids=tag_ids,
            published_from=published_from,
            published_to=published_to,
        )
    finally:
        if isinstance(signer, StorageAvatarSigner):
            await signer.aclose()
        await close_connection_pool()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at the configured level instead of WARNING"
    ),
):
    """Configure logging before any command runs."""
    configure_logging_from_settings(stream=sys.stderr)
    if not verbose:
        logging.getLogger().setLevel(logging.WARNING)


@app.command()
def query(
    query_text: str = typer.Argument(..., help="The text to search for"),
    scope: Scope = typer.Option(Scope.all, "--type", "-t", help="Entity scope"),
    page: int = typer.Option(1, "--page", "-p", help="Page number (clamped to 1-10000)"),
    page_size: int = typer.Option(
        10, "--page-size", "-n", help="Items per entity type (clamped to 1-10)"
    ),
    sort: Sort = typer.Option(Sort.relevance, "--sort", "-s", help="Sort mode"),
    author: Optional[str] = typer.Option(
        None, "--author", "-a", help="Restrict articles and activities to one author id"
    ),
    tags: Optional[list[str]] = typer.Option(
        None, "--tag", help="Articles must carry this tag id (repeatable)"
    ),
    published_from: Optional[datetime] = typer.Option(
        None, "--from", help="Earliest article publish time"
    ),
    published_to: Optional[datetime] = typer.Option(
        None, "--to", help="Latest article publish time"
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.markdown,
        "--format",
        "-f",
        help="Output format",
    ),
    no_content: bool = typer.Option(
        False,
        "--no-content",
        help="Hide excerpts and bios in markdown output",
    ),
):
    """Search all entity types at once.

    Examples:

        blog-search query "react hooks"

        blog-search query "react" --type articles --sort latest

        blog-search query "rust" --tag t_rust --tag t_wasm --format json
    """
    try:
        result = asyncio.run(
            run_query(
                query_text,
                scope,
                page,
                page_size,
                sort,
                author_id=author,
                tag_ids=tags,
                published_from=published_from,
                published_to=published_to,
            )
        )
    except SearchValidationError as e:
        typer.echo(f"Invalid query ({e.reason}): {e.message}", err=True)
        raise typer.Exit(2)
    except FatalSearchFailure as e:
        typer.echo(f"Search unavailable: {e}", err=True)
        raise typer.Exit(1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if format == OutputFormat.json:
        output = format_results_json(result)
    else:
        output = format_results_markdown(result, show_content=not no_content)

    typer.echo(output)


@app.command()
def check():
    """Check database connectivity."""

    async def probe() -> bool:
        try:
            pool = await get_connection_pool(DatabaseConfig.from_settings())
            return await check_connection_health(pool)
        finally:
            await close_connection_pool()

    try:
        healthy = asyncio.run(probe())
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not healthy:
        typer.echo("Database: unreachable", err=True)
        raise typer.Exit(1)
    typer.echo("Database: connected")


if __name__ == "__main__":
    app()
