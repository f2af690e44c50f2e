"""
Identifier parsing and first-match-wins lookup.

Matching is a linear scan per requested identifier. Collections are a few
thousand hectare cells at most; revisit with an index if that changes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import UINT64_MAX, CollectionSnapshot, Match


class InvalidInputError(ValueError):
    def __init__(self, tokens: Sequence[str]) -> None:
        self.tokens = list(tokens)
        super().__init__(f"Invalid raster identifiers: {', '.join(repr(t) for t in self.tokens)}")


def split_tokens(raw: str | None) -> list[str]:
    # An absent parameter still yields one empty token.
    return (raw or "").split(",")


def parse_uint64(token: str) -> int | None:
    """
    Parse a decimal unsigned 64-bit integer.

    No sign, no surrounding whitespace, no underscores.
    """
    if not token or not token.isascii() or not token.isdigit():
        return None
    value = int(token)
    if value > UINT64_MAX:
        return None
    return value


def parse_identifiers(tokens: Iterable[str], *, strict: bool = False) -> list[int]:
    """
    Turn caller tokens into raster identifiers, keeping order and duplicates.

    Non-strict mode coerces unparsable tokens to 0, which can match a cell whose
    RasterID really is 0. Strict mode rejects them instead.
    """
    ids: list[int] = []
    invalid: list[str] = []
    for token in tokens:
        value = parse_uint64(token)
        if value is None:
            invalid.append(token)
            value = 0
        ids.append(value)

    if strict and invalid:
        raise InvalidInputError(invalid)
    return ids


def find_first(snapshot: CollectionSnapshot, raster_id: int) -> Match | None:
    for record in snapshot.records:
        if record.raster_id == raster_id:
            return Match(index=record.index, raster_id=raster_id, record=record)
    return None


def match(snapshot: CollectionSnapshot, raster_ids: Iterable[int]) -> list[Match]:
    """
    Locate each requested identifier in caller order.

    Unmatched identifiers are skipped without a placeholder. A repeated
    identifier matches (the same record) again.
    """
    matches: list[Match] = []
    for raster_id in raster_ids:
        found = find_first(snapshot, raster_id)
        if found is not None:
            matches.append(found)
    return matches
