"""
End-to-end game sessions on a virtual clock with in-memory storage.
"""

import json

import pytest

from config import Settings
from src.drill.events import Topic
from src.drill.game import build_game
from src.drill.phases import PhaseName


@pytest.fixture
def settings(tmp_path):
    return Settings(
        learner_id="tester",
        progress_dir=tmp_path / "progress",
        random_seed=7,
        countdown_seconds=5,
        max_lives=3,
    )


@pytest.fixture
def make_game(settings, memory_backend, scheduler, corpus_factory):
    def make(counts=(2, 1), **overrides):
        game_settings = settings.model_copy(update=overrides) if overrides else settings
        return build_game(
            game_settings,
            backend=memory_backend,
            scheduler=scheduler,
            corpus_data=corpus_factory(list(counts), units_per_phrase=1),
        )
    return make


def current_phase(game):
    phase = game.orchestrator.current_phase
    return phase.name if phase else None


def pick(game, correct=True):
    """Select an option in the Solution phase and submit it."""
    settings = game.settings
    game.scheduler.advance(settings.activation_grace_ms)
    phase = game.orchestrator.current_phase
    target = phase.option_set.correct_index
    if not correct:
        target = (target + 1) % len(phase.option_set)
    while phase.selected_index != target:
        game.press_space()
    game.press_enter()
    game.scheduler.advance(settings.feedback_ms)


def master_next_phrase(game):
    if game.orchestrator.awaiting_cover:
        game.press_enter()
    assert current_phase(game) == PhaseName.PRESENTATION
    game.press_enter()
    pick(game)


class TestGameSession:
    def test_start(self, make_game):
        game = make_game()
        events = []
        game.channel.subscribe(Topic.ENERGY_DISPLAY, events.append)
        game.channel.subscribe(Topic.SHOW_TEXT_COVER, events.append)

        game.start()

        assert game.started
        assert events[0] == 100.0
        assert events[1]["textId"] == "text_1"
        assert game.progress.current_session is not None
        assert game.analytics.corpus_id == "test_corpus"

    def test_start_is_idempotent(self, make_game):
        game = make_game()
        game.start()
        game.start()
        assert game.orchestrator.challenges_created == 1

    def test_play_to_exhaustion(self, make_game, memory_backend):
        game = make_game()
        game.start()

        for _ in range(10):
            if game.finished:
                break
            master_next_phrase(game)

        assert game.finished
        assert not game.game_over
        assert game.progress.summary()["masteredPhrases"] == 3

        assert game.end() is True
        document = json.loads(memory_backend.read("progress_tester"))
        assert document["gamesPlayed"] == 1
        stats = json.loads(memory_backend.read("stats_test_corpus"))
        assert len(stats["gamesHistory"]) == 1
        assert "text_1 L1 R1 p1(M) p2(M)" in game.analytics.text_stats_display()

    def test_resume_in_next_game(self, make_game, scheduler, memory_backend, corpus_factory, settings):
        game = make_game(counts=(1, 1, 1), batch_min_phrases=1, batch_max_phrases=2)
        game.start()
        master_next_phrase(game)
        master_next_phrase(game)
        game.end()

        again = build_game(
            settings.model_copy(update={"batch_min_phrases": 1, "batch_max_phrases": 2}),
            backend=memory_backend,
            scheduler=scheduler,
            corpus_data=corpus_factory([1, 1, 1], units_per_phrase=1),
        )
        cover = []
        again.channel.subscribe(Topic.SHOW_TEXT_COVER, cover.append)
        again.start()

        assert again.orchestrator.current_batch == [3]
        assert cover[0]["textId"] == "text_3"

    def test_end_rules(self, make_game):
        game = make_game()
        assert game.end() is False

        game.start()
        assert game.end() is True
        assert game.end() is False


class TestLivesAndTime:
    def test_game_over_halts(self, make_game):
        game = make_game(max_lives=1)
        seen = []
        game.channel.subscribe(Topic.GAME_OVER, lambda _: seen.append(Topic.GAME_OVER))
        game.channel.subscribe(Topic.SHOW_CHOICES, lambda _: seen.append(Topic.SHOW_CHOICES))
        game.start()
        game.press_enter()
        game.press_enter()
        pick(game, correct=False)

        assert game.game_over
        assert seen[-1] == Topic.GAME_OVER
        assert game.finished
        assert game.orchestrator.current_phase is None

        game.press_enter()
        game.scheduler.advance(10_000)
        assert game.orchestrator.current_phase is None

    def test_countdown_timeout_moves_on(self, make_game):
        game = make_game()
        game.start()
        game.press_enter()
        game.press_enter()
        assert current_phase(game) == PhaseName.SOLUTION

        settings = game.settings
        game.scheduler.advance(settings.countdown_seconds * 1000)
        assert game.energy.current_lives == settings.max_lives

        game.scheduler.advance(settings.timeout_overlay_ms)
        assert game.energy.current_lives == settings.max_lives - 1

        game.scheduler.advance(settings.feedback_ms)
        assert game.orchestrator.current_phrase_id == "text_1_p2"
        assert current_phase(game) == PhaseName.PRESENTATION
        assert game.countdown.remaining == settings.countdown_seconds
