"""Uniform random choice of the next braincell holder."""

import random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


class UniformSelector:
    """Pick one item uniformly at random.

    Wraps its own :class:`random.Random` so tests (or a configured seed) can make
    the choice reproducible without touching the global generator.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random(seed)

    def choose(self, candidates: Sequence[T]) -> Optional[T]:
        """Return one of ``candidates``, or None when there are none."""
        if not candidates:
            return None
        return candidates[self._rng.randrange(len(candidates))]
