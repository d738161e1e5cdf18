"""Full-text match expressions and substring patterns.

Both search modes start from the caller's text:
- indexed mode probes search_vector with plainto_tsquery over the
  tokenized text (same tokenizer as the write path)
- substring mode matches raw columns with ILIKE over an escaped pattern
"""

from dataclasses import dataclass

from blog_search_storage.sql import SqlArgs
from blog_search_storage.tokenizer import tokenize_text

# Language-agnostic: titles, bios and tag names mix natural language,
# code identifiers and CJK, where stemming hurts recall.
DEFAULT_TS_CONFIG = "simple"

_ALLOWED_TS_CONFIGS = frozenset({"simple", "english"})


@dataclass(frozen=True)
class MatchExpression:
    """Compiled tsquery input for one entity search call.

    Attributes:
        tokens: Tokenized query text (bound as a parameter, never inlined)
        config: Text search configuration name (inlined from a whitelist)
    """

    tokens: str
    config: str = DEFAULT_TS_CONFIG

    def __post_init__(self):
        if self.config not in _ALLOWED_TS_CONFIGS:
            raise ValueError(f"Unsupported text search config: {self.config}")

    def to_sql(self, args: SqlArgs) -> str:
        """Render the tsquery expression, binding the tokens in args."""
        param = args.add(self.tokens)
        return f"plainto_tsquery('{self.config}'::regconfig, {param}::text)"


def build_match_expression(
    text: str, config: str = DEFAULT_TS_CONFIG
) -> MatchExpression:
    """Tokenize query text into a MatchExpression.

    Example:
        >>> build_match_expression("React Hooks").tokens
        'react hooks'
    """
    return MatchExpression(tokens=tokenize_text(text), config=config)


def escape_like(text: str) -> str:
    """Escape ILIKE wildcards so the text matches literally (ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_like_pattern(text: str) -> str:
    """Contains-pattern for ILIKE ... ESCAPE '\\'.

    Example:
        >>> build_like_pattern("50%_off")
        '%50\\\\%\\\\_off%'
    """
    return f"%{escape_like(text)}%"
