"""Positional-parameter bookkeeping for hand-written asyncpg SQL."""

from typing import Any


class SqlArgs:
    """Collects bind values and hands out their $n placeholders.

    User-controlled values only ever enter SQL through add(); identifiers
    and numeric constants are the only things formatted into the text.

    Example:
        >>> args = SqlArgs()
        >>> f"author_id = {args.add('u1')}"
        'author_id = $1'
        >>> args.values
        ['u1']
    """

    def __init__(self) -> None:
        self.values: list[Any] = []

    def add(self, value: Any) -> str:
        """Register a bind value and return its placeholder."""
        self.values.append(value)
        return f"${len(self.values)}"
