"""
Unit tests for the batch planner.
"""

import pytest

from src.drill.batching import batch_total, plan_batches, validate_plan


class TestPlanBatches:
    def test_worked_trace_splits_at_ceiling(self):
        """4+5 fits, adding 3 would reach 12 so [3] becomes an under-minimum last batch."""
        assert plan_batches([4, 5, 3]) == [[1, 2], [3]]

    def test_four_texts(self):
        assert plan_batches([4, 5, 3, 8]) == [[1, 2], [3], [4]]

    def test_extends_while_under_ceiling(self):
        assert plan_batches([2, 2, 2, 2, 2]) == [[1, 2, 3, 4, 5]]

    def test_closes_at_exact_ceiling(self):
        assert plan_batches([6, 4, 3, 3]) == [[1, 2], [3, 4]]

    def test_single_text(self):
        assert plan_batches([3]) == [[1]]

    def test_oversized_text_is_its_own_batch(self):
        assert plan_batches([3, 12, 2]) == [[1], [2], [3]]

    def test_custom_bounds(self):
        assert plan_batches([1, 1, 1, 1], min_phrases=1, max_phrases=2) == [[1, 2], [3, 4]]

    def test_rejects_empty_text(self):
        with pytest.raises(ValueError):
            plan_batches([3, 0, 2])

    def test_deterministic(self):
        counts = [3, 4, 2, 6, 1, 5, 5, 2]
        assert plan_batches(counts) == plan_batches(counts)

    @pytest.mark.parametrize(
        "counts",
        [
            [4, 5, 3, 8],
            [1] * 23,
            [7, 7, 7],
            [10, 1, 9, 2, 8],
            [5, 5, 5, 5, 5, 1],
        ],
    )
    def test_partition_properties(self, counts):
        plan = plan_batches(counts)

        assert validate_plan(plan, counts)
        totals = [batch_total(batch, counts) for batch in plan]
        assert all(total <= 10 for total in totals)
        for index, batch in enumerate(plan[:-1]):
            if totals[index] < 6:
                # under-minimum only when the next text would break the ceiling
                next_count = counts[batch[-1]]
                assert totals[index] + next_count > 10


class TestValidatePlan:
    def test_detects_gap(self):
        assert not validate_plan([[1], [3]], [2, 2, 2])

    def test_detects_duplicate(self):
        assert not validate_plan([[1, 2], [2, 3]], [2, 2, 2])

    def test_detects_empty_batch(self):
        assert not validate_plan([[1, 2], [], [3]], [2, 2, 2])

    def test_accepts_exact_partition(self):
        assert validate_plan([[1, 2], [3]], [4, 5, 3])
