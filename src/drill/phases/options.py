"""
Multiple-choice option set for the Solution phase.

The candidate set is the primary translation plus the first three
distractors (fewer when the corpus supplies fewer), permuted with a
Fisher-Yates shuffle. Built once per phase activation.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

MAX_DISTRACTORS = 3

T = TypeVar("T")


@dataclass(frozen=True)
class OptionSet:
    """Shuffled options and the position of the primary translation."""

    options: tuple[str, ...]
    correct_index: int

    def __len__(self) -> int:
        return len(self.options)

    def is_correct(self, index: int) -> bool:
        return index == self.correct_index


def fisher_yates(items: Sequence[T], rng: random.Random) -> list[T]:
    """Uniform random permutation of items (input is not modified)."""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def build_options(primary: str, distractors: Sequence[str], rng: random.Random | None = None) -> OptionSet:
    rng = rng or random.Random()
    candidates = [primary, *list(distractors)[:MAX_DISTRACTORS]]

    # Track the primary by position so a distractor equal to it cannot steal the index
    positions = fisher_yates(range(len(candidates)), rng)
    return OptionSet(
        options=tuple(candidates[p] for p in positions),
        correct_index=positions.index(0),
    )
