"""
Batch planner.

Partitions the corpus texts into contiguous batches by phrase count.

Rules (greedy, left to right, single pass):
- a batch never exceeds max_phrases
- the next text joins the current batch whenever the union stays within
  max_phrases (extending is always preferred over starting a new batch)
- otherwise the batch is closed; if it is still under min_phrases it is
  closed anyway (allowed under-minimum batch, e.g. the corpus remainder)
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

MIN_BATCH_PHRASES = 6
MAX_BATCH_PHRASES = 10

Batch = list[int]


def plan_batches(
    phrase_counts: Sequence[int],
    min_phrases: int = MIN_BATCH_PHRASES,
    max_phrases: int = MAX_BATCH_PHRASES,
) -> list[Batch]:
    """
    Build the batch plan for a corpus.

    Args:
        phrase_counts: Phrase count per text, in corpus order (text 1 first)
        min_phrases: Size a batch should reach before it is closed
        max_phrases: Hard ceiling on a batch's phrase total

    Returns:
        Batches of 1-based text numbers, e.g. [[1, 2], [3]]
    """
    if any(c < 1 for c in phrase_counts):
        raise ValueError("every text must hold at least one phrase")

    batches: list[Batch] = []
    current: Batch = []
    total = 0

    for number, count in enumerate(phrase_counts, start=1):
        if current and total + count > max_phrases:
            if total < min_phrases:
                logger.debug(
                    f"Batch planner: closing {current} under minimum ({total} phrases), "
                    f"text {number} would exceed {max_phrases}"
                )
            batches.append(current)
            current, total = [], 0

        current.append(number)
        total += count

    if current:
        batches.append(current)

    return batches


def batch_total(batch: Sequence[int], phrase_counts: Sequence[int]) -> int:
    """Phrase total of one batch."""
    return sum(phrase_counts[n - 1] for n in batch)


def validate_plan(batches: Sequence[Sequence[int]], phrase_counts: Sequence[int]) -> bool:
    """Caller-side post-condition: exact, ordered partition of 1..n with matching totals."""
    flattened = [n for batch in batches for n in batch]
    if flattened != list(range(1, len(phrase_counts) + 1)):
        return False
    if any(not batch for batch in batches):
        return False
    return sum(batch_total(b, phrase_counts) for b in batches) == sum(phrase_counts)
