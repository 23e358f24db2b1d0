"""
Unit tests for Solution option shuffling.
"""

import random
from collections import Counter

from src.drill.phases.options import MAX_DISTRACTORS, build_options, fisher_yates


class TestFisherYates:
    def test_is_permutation(self):
        items = list(range(10))
        shuffled = fisher_yates(items, random.Random(7))

        assert sorted(shuffled) == items
        assert items == list(range(10))

    def test_seeded_rng_is_reproducible(self):
        assert fisher_yates("abcdef", random.Random(3)) == fisher_yates("abcdef", random.Random(3))

    def test_every_position_reachable(self):
        rng = random.Random(11)
        first = Counter(fisher_yates(["a", "b", "c", "d"], rng)[0] for _ in range(400))
        assert set(first) == {"a", "b", "c", "d"}

    def test_short_inputs(self):
        assert fisher_yates([], random.Random(1)) == []
        assert fisher_yates(["only"], random.Random(1)) == ["only"]


class TestBuildOptions:
    def test_primary_plus_three_distractors(self):
        option_set = build_options("yes", ["no", "maybe", "never", "ignored"], random.Random(5))

        assert len(option_set) == 1 + MAX_DISTRACTORS
        assert set(option_set.options) == {"yes", "no", "maybe", "never"}
        assert option_set.options[option_set.correct_index] == "yes"

    def test_fewer_distractors_gives_smaller_set(self):
        option_set = build_options("yes", ["no"], random.Random(5))

        assert len(option_set) == 2
        assert option_set.options[option_set.correct_index] == "yes"

    def test_no_distractors(self):
        option_set = build_options("yes", [], random.Random(5))
        assert option_set.options == ("yes",)
        assert option_set.correct_index == 0

    def test_is_correct(self):
        option_set = build_options("yes", ["no", "maybe"], random.Random(2))
        wrong = [i for i in range(len(option_set)) if i != option_set.correct_index]

        assert option_set.is_correct(option_set.correct_index)
        assert not any(option_set.is_correct(i) for i in wrong)

    def test_correct_index_varies_with_rng(self):
        rng = random.Random(42)
        indices = {build_options("yes", ["a", "b", "c"], rng).correct_index for _ in range(200)}
        assert indices == {0, 1, 2, 3}

    def test_distractor_equal_to_primary(self):
        rng = random.Random(9)
        for _ in range(50):
            option_set = build_options("same", ["same", "other"], rng)
            assert option_set.options[option_set.correct_index] == "same"
            assert option_set.options.count("same") == 2
