"""Random sources for dice evaluation."""

from __future__ import annotations

import random
from typing import Protocol


class RandomSource(Protocol):
    """The subset of ``random.Random`` the engine draws from."""

    def randint(self, a: int, b: int) -> int: ...

    def randrange(self, start: int, stop: int) -> int: ...

    def random(self) -> float: ...


# Uniform, not necessarily unpredictable. Seeded random.Random works in tests.
_system_rng = random.SystemRandom()


def default_rng() -> RandomSource:
    return _system_rng
