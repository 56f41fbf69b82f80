"""Keep/drop selection over a multiset of rolled values."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum


class SelectionKind(str, Enum):
    KEEP_HIGHEST = "kh"
    KEEP_LOWEST = "kl"
    DROP_HIGHEST = "dh"
    DROP_LOWEST = "dl"


@dataclass(frozen=True)
class Selection:
    kind: SelectionKind
    n: int

    def __str__(self) -> str:
        return f"{self.kind.value}{self.n}"


def select(rolls: Sequence[int], selection: Selection | None) -> list[int]:
    """Return the rolls that count toward the total.

    Never raises: an ``n`` larger than the number of rolls degrades to all
    (keep) or none (drop) of them.
    """
    if selection is None:
        return list(rolls)

    ordered = sorted(rolls)
    n = max(selection.n, 0)

    if selection.kind is SelectionKind.KEEP_HIGHEST:
        return ordered[max(0, len(ordered) - n):]
    if selection.kind is SelectionKind.KEEP_LOWEST:
        return ordered[:n]
    if selection.kind is SelectionKind.DROP_HIGHEST:
        return ordered[: max(0, len(ordered) - n)]
    return ordered[n:]


def dropped(rolls: Sequence[int], selection: Selection | None) -> list[int]:
    """The complement of :func:`select`, ascending."""
    if selection is None:
        return []
    remaining = sorted(rolls)
    for value in select(rolls, selection):
        remaining.remove(value)
    return remaining
