"""Blog Search Storage - PostgreSQL search layer.

Version: 1.0.0

This package provides:
- Database connection management (asyncpg pooling)
- Query normalization (SearchQuery, normalize_query)
- Tokenized full-text match expressions and ILIKE patterns
- Composite relevance scoring (text rank + recency decay)
- Per-entity searches (articles, activities, users, tags)
- Degradation supervisor (full-text -> substring -> fatal)
- Avatar signing and user enrichment
- Unified concurrent search (UnifiedSearchEngine, unified_search)

Read-only: nothing in this package writes to the database.
"""

from blog_search_storage.avatar_signer import (
    AvatarSigner,
    PassthroughSigner,
    StorageAvatarSigner,
    StorageTarget,
    parse_storage_target,
)
from blog_search_storage.connection import (
    DatabaseConfig,
    check_connection_health,
    close_connection_pool,
    get_connection_pool,
)
from blog_search_storage.enrichment import enrich_users
from blog_search_storage.entities import (
    ENTITY_SEARCHES,
    ActivitySearch,
    ArticleSearch,
    TagSearch,
    UserSearch,
)
from blog_search_storage.entity_search import EntitySearch, SearchMode
from blog_search_storage.fallback import (
    DegradationCallback,
    DegradedSearch,
    with_fallback,
)
from blog_search_storage.match_expression import (
    MatchExpression,
    build_like_pattern,
    build_match_expression,
    escape_like,
)
from blog_search_storage.query import (
    SearchFilters,
    SearchQuery,
    normalize_query,
)
from blog_search_storage.ranking import compute_relevance, decay_weight
from blog_search_storage.tokenizer import tokenize_text
from blog_search_storage.unified_search import UnifiedSearchEngine, unified_search

__version__ = "1.0.0"

__all__ = [
    # Connection
    "DatabaseConfig",
    "get_connection_pool",
    "close_connection_pool",
    "check_connection_health",
    # Query
    "SearchFilters",
    "SearchQuery",
    "normalize_query",
    # Matching and ranking
    "tokenize_text",
    "MatchExpression",
    "build_match_expression",
    "build_like_pattern",
    "escape_like",
    "compute_relevance",
    "decay_weight",
    # Entity searches
    "EntitySearch",
    "SearchMode",
    "ArticleSearch",
    "ActivitySearch",
    "UserSearch",
    "TagSearch",
    "ENTITY_SEARCHES",
    # Degradation
    "DegradedSearch",
    "DegradationCallback",
    "with_fallback",
    # Avatars
    "AvatarSigner",
    "PassthroughSigner",
    "StorageAvatarSigner",
    "StorageTarget",
    "parse_storage_target",
    "enrich_users",
    # Orchestration
    "UnifiedSearchEngine",
    "unified_search",
]
