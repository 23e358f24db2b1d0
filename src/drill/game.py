"""
Game session wiring.

build_game() constructs every component in dependency order on one channel
and one scheduler and returns a Game facade for a driver (the terminal UI
or a test) to push input into.
"""

from __future__ import annotations

import random
import time
from typing import Any, Optional

from loguru import logger

from config import Settings, get_settings
from src.drill.analytics import GameAnalytics
from src.drill.corpus import CorpusProvider
from src.drill.countdown import Countdown
from src.drill.energy import EnergyBar
from src.drill.events import EventChannel, Topic
from src.drill.mastery import UserProgress
from src.drill.orchestrator import ChallengeManager
from src.drill.phases.base import PhaseContext
from src.drill.progress_store import JsonFileBackend, ProgressBackend
from src.drill.scheduling import TaskScheduler


class Game:
    """One play session over a corpus for one learner."""

    def __init__(
        self,
        settings: Settings,
        channel: EventChannel,
        scheduler: TaskScheduler,
        corpus: CorpusProvider,
        progress: UserProgress,
        analytics: GameAnalytics,
        countdown: Countdown,
        energy: EnergyBar,
        orchestrator: ChallengeManager,
        corpus_data: Optional[dict[str, Any]] = None,
    ):
        self.settings = settings
        self.channel = channel
        self.scheduler = scheduler
        self.corpus = corpus
        self.progress = progress
        self.analytics = analytics
        self.countdown = countdown
        self.energy = energy
        self.orchestrator = orchestrator
        self.corpus_data = corpus_data

        self.started = False
        self.ended = False
        self.game_over = False

        channel.subscribe(Topic.GAME_OVER, self._on_game_over)

    @property
    def finished(self) -> bool:
        return self.orchestrator.finished or self.game_over

    def start(self) -> None:
        """Load progress and corpus, open a session and ask for the first challenge."""
        if self.started:
            return
        self.started = True

        if not self.progress.ready:
            self.progress.load()
        if not self.corpus.loaded:
            if self.corpus_data is not None:
                self.corpus.load_data(self.corpus_data)
            else:
                self.corpus.load(self.settings.corpus_path)

        self.progress.start_session()
        self.channel.emit(Topic.GAME_STARTED)
        self.channel.emit(Topic.ENERGY_INITIALIZE)
        self.orchestrator.start()

    def press_enter(self) -> None:
        self.channel.emit(Topic.ENTER_PRESSED)

    def press_space(self) -> None:
        self.channel.emit(Topic.SPACE_PRESSED)

    def end(self) -> bool:
        """Close the session and save progress and statistics. Returns the progress save result."""
        if self.ended or not self.started:
            return False
        self.ended = True

        self.orchestrator.halt()
        saved = self.progress.end_session()
        self.channel.emit(Topic.GAME_ENDED)
        logger.info(f"Game: session ended (progress saved: {saved})")
        return saved

    def _on_game_over(self, _: Any = None) -> None:
        logger.info("Game: out of lives")
        self.game_over = True
        self.orchestrator.halt()


def build_game(
    settings: Optional[Settings] = None,
    backend: Optional[ProgressBackend] = None,
    scheduler: Optional[TaskScheduler] = None,
    rng: Optional[random.Random] = None,
    corpus_data: Optional[dict[str, Any]] = None,
) -> Game:
    """
    Assemble a game.

    Args:
        settings: Configuration (defaults to get_settings())
        backend: Progress storage (defaults to JSON files in settings.progress_dir)
        scheduler: Task scheduler (defaults to a real monotonic clock)
        rng: Random source for option shuffling (defaults to settings.random_seed)
        corpus_data: Already-parsed corpus document used instead of settings.corpus_path
    """
    settings = settings or get_settings()
    backend = backend or JsonFileBackend(settings.progress_dir)
    scheduler = scheduler or TaskScheduler(clock=time.monotonic)
    rng = rng or random.Random(settings.random_seed)

    channel = EventChannel()
    corpus = CorpusProvider(channel, settings.corpus_path)
    progress = UserProgress(channel, backend, settings.learner_id)
    analytics = GameAnalytics(channel, backend)
    countdown = Countdown(channel, scheduler, settings.countdown_seconds, settings.reveal_penalty_seconds)
    energy = EnergyBar(channel, settings.max_lives)

    timing = settings.get_timing_config()
    phase_context = PhaseContext(
        channel=channel,
        scheduler=scheduler,
        activation_grace_ms=timing["activation_grace_ms"],
        feedback_ms=timing["feedback_ms"],
        timeout_overlay_ms=timing["timeout_overlay_ms"],
        rng=rng,
    )
    orchestrator = ChallengeManager(
        channel,
        scheduler,
        corpus,
        progress,
        phase_context=phase_context,
        min_phrases=settings.batch_min_phrases,
        max_phrases=settings.batch_max_phrases,
        feedback_ms=settings.feedback_ms,
    )

    return Game(
        settings=settings,
        channel=channel,
        scheduler=scheduler,
        corpus=corpus,
        progress=progress,
        analytics=analytics,
        countdown=countdown,
        energy=energy,
        orchestrator=orchestrator,
        corpus_data=corpus_data,
    )
