"""Ordinal -> source token lookup for the vector index.

Keyed by index ordinal rather than by vector value: float vectors are not
reliable equality keys, while ordinals are stable once assigned.  Two
ordinals may carry identical vectors and different tokens; both entries are
kept.
"""

from __future__ import annotations

import operator
from collections.abc import Iterator, Sequence

from keyplane.core.errors import InternalError, OutOfRangeError


class TokenMap:
    """Append-only list of token texts indexed by vector ordinal."""

    def __init__(self) -> None:
        self._tokens: list[str] = []

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __contains__(self, ordinal: object) -> bool:
        try:
            position = operator.index(ordinal)  # type: ignore[arg-type]
        except TypeError:
            return False
        return 0 <= position < len(self._tokens)

    def __getitem__(self, ordinal: int) -> str:
        if ordinal not in self:
            raise OutOfRangeError.for_ordinal(int(ordinal), len(self._tokens))
        return self._tokens[operator.index(ordinal)]

    def get(self, ordinal: int) -> str | None:
        """Token for *ordinal*, or None when there is no entry."""
        if ordinal not in self:
            return None
        return self._tokens[operator.index(ordinal)]

    def extend(self, ordinals: range, tokens: Sequence[str]) -> None:
        """Record tokens for ordinals just assigned by the index.

        *ordinals* must continue exactly where the map ends.
        """
        if len(ordinals) != len(tokens):
            raise InternalError.unexpected(
                "ordinal/token count mismatch",
                ordinals=len(ordinals),
                tokens=len(tokens),
            )
        if len(ordinals) and ordinals.start != len(self._tokens):
            raise InternalError.unexpected(
                "token map out of step with index",
                expected_start=len(self._tokens),
                got_start=ordinals.start,
            )
        self._tokens.extend(tokens)
