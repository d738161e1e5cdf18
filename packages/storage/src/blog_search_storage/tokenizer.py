"""Application-side tokenizer shared by the write path and the query path.

Stored search vectors are built as to_tsvector('simple', tokenize_text(...))
by the content writers; queries must go through the very same function or
recall silently drops. Do not add a second tokenizer anywhere.

Rules:
- NFKC normalisation, then case folding
- Latin/Cyrillic/... words are runs of word characters; identifier joiners
  ("next.js", "e-mail") and trailing "+"/"#" ("c++", "c#") stay in the token
- CJK ideographs, kana and hangul are emitted one character per token,
  because the "simple" configuration cannot segment them
"""

import re
import unicodedata
from typing import Optional

_CJK_RANGES = (
    "\u3040-\u30ff"  # hiragana, katakana
    "\u3400-\u4dbf"  # CJK extension A
    "\u4e00-\u9fff"  # CJK unified ideographs
    "\uf900-\ufaff"  # CJK compatibility ideographs
    "\uac00-\ud7af"  # hangul syllables
)

# Word characters that are not CJK
_WORD_CHAR = rf"[^\W{_CJK_RANGES}]"

_TOKEN_RE = re.compile(
    rf"[{_CJK_RANGES}]|{_WORD_CHAR}+(?:[.\-]{_WORD_CHAR}+)*[+#]*"
)


def iter_tokens(text: Optional[str]) -> list[str]:
    """Split text into normalised tokens (see module docstring)."""
    if not text:
        return []
    normalized = unicodedata.normalize("NFKC", text).casefold()
    return _TOKEN_RE.findall(normalized)


def tokenize_text(text: Optional[str]) -> str:
    """Return the space-joined token string fed to to_tsvector / plainto_tsquery.

    Args:
        text: Raw text (title, bio, query, ...). None is treated as empty.

    Returns:
        Tokens joined by single spaces, "" when nothing is left

    Example:
        >>> tokenize_text("Next.js 15 新特性")
        'next.js 15 新 特 性'
    """
    return " ".join(iter_tokens(text))
