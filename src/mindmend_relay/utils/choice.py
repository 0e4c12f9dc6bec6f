"""Seeded uniform choice among candidates."""
from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


class CandidatePicker:
    """Pick uniformly from a candidate list.

    Uses its own ``random.Random`` so a seed makes the sequence of picks
    reproducible without touching the global random state.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def pick(self, candidates: Sequence[T]) -> T:
        """Return one candidate, each with equal probability.

        Raises:
            ValueError: If there are no candidates
        """
        if not candidates:
            raise ValueError("No candidates to pick from")
        return candidates[self._rng.randrange(len(candidates))]
