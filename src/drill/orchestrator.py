"""
Challenge orchestrator.

Top-level state machine of a game:
- waits for the corpus and the mastery store (either order), then builds or
  reuses the batch plan and restores the cursor from the resume position
- picks the next non-mastered phrase of the current text, shows a text
  cover before the first one, and runs the level's phase recipe
- interprets phase outcomes, records them in the mastery store and drives
  the countdown (start / pause / resume / stop)
- on completion advances phrase -> text -> batch level -> next batch until
  the plan is exhausted

Cursor: current_batch (text numbers), current_level, current_text_index
(0-based over the corpus), current_phrase_index (0-based within the text).
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from src.drill.batching import MAX_BATCH_PHRASES, MIN_BATCH_PHRASES, plan_batches, validate_plan
from src.drill.corpus import CorpusProvider, PhraseData
from src.drill.events import EventChannel, Topic
from src.drill.mastery import UserProgress
from src.drill.models import Level
from src.drill.phases import (
    REVISION_PHASES,
    TEMPLATES,
    TEXT_COVER_TEMPLATE,
    PhaseName,
    create_phase,
    recipe_for,
)
from src.drill.phases.base import Outcome, Phase, PhaseContext, PhaseResult
from src.drill.scheduling import ScheduledTask, TaskScheduler

OWNER = "challenge"


class ChallengeManager:
    """Sequences phrases through their phase recipes, batch by batch."""

    def __init__(
        self,
        channel: EventChannel,
        scheduler: TaskScheduler,
        corpus: CorpusProvider,
        progress: UserProgress,
        phase_context: Optional[PhaseContext] = None,
        min_phrases: int = MIN_BATCH_PHRASES,
        max_phrases: int = MAX_BATCH_PHRASES,
        feedback_ms: int = 1000,
    ):
        self.channel = channel
        self.scheduler = scheduler
        self.corpus = corpus
        self.progress = progress
        self.phase_context = phase_context or PhaseContext(channel=channel, scheduler=scheduler)
        self.min_phrases = min_phrases
        self.max_phrases = max_phrases
        self.feedback_ms = feedback_ms

        # Readiness
        self.corpus_ready = corpus.loaded
        self.progress_ready = progress.ready
        self.initialized = False
        self._start_requested = False

        # Cursor
        self.batch_plan: list[list[int]] = []
        self.current_batch: list[int] = []
        self.current_level = Level.LEVEL_1
        self.current_text_index = 0
        self.current_phrase_index = 0

        # Current challenge
        self.current_phrase_id: Optional[str] = None
        self.current_phrase: Optional[PhraseData] = None
        self.current_recipe: list[PhaseName] = []
        self.current_phase_index = -1
        self.current_phase: Optional[Phase] = None
        self.timer_was_started = False
        self.awaiting_cover = False
        self.challenges_created = 0

        self.finished = False
        self.halted = False
        self._cover_pending = True
        self._requested_phrase_id: Optional[str] = None
        self._completion_task: Optional[ScheduledTask] = None

        channel.subscribe(Topic.CORPUS_READY, self._on_corpus_ready)
        channel.subscribe(Topic.PROGRESS_READY, self._on_progress_ready)
        channel.subscribe(Topic.PHRASE_DATA_READY, self._on_phrase_data)
        channel.subscribe(Topic.PHASE_COMPLETED, self._on_phase_completed)
        channel.subscribe(Topic.WRONG_ANSWER, self._on_wrong_answer)
        channel.subscribe(Topic.UNIT_REVEALED, self._on_unit_revealed)
        channel.subscribe(Topic.TEXT_COVER_CONTINUE, lambda _: self.continue_from_cover())
        channel.subscribe(Topic.ENTER_PRESSED, self._on_cover_key)
        channel.subscribe(Topic.SPACE_PRESSED, self._on_cover_key)

        self._try_initialize()

    # =========================================================================
    # Startup
    # =========================================================================

    def _on_corpus_ready(self, _: Any = None) -> None:
        self.corpus_ready = True
        self._try_initialize()

    def _on_progress_ready(self, _: Any = None) -> None:
        self.progress_ready = True
        self._try_initialize()

    def _try_initialize(self) -> None:
        if self.initialized or not (self.corpus_ready and self.progress_ready):
            return

        self.progress.bind_corpus(self.corpus.text_phrase_ids())

        plan = self.progress.get_batch_structure()
        if plan is None:
            plan = self._generate_plan()
        self.batch_plan = plan

        position = self.progress.get_resume_position()
        batch = position.batch
        if batch not in plan:
            batch = self._batch_containing(batch[0] if batch else 1)
            if self.progress.has_resume_position:
                logger.warning(f"ChallengeManager: resume batch {position.batch} is not in the plan, using {batch}")
            else:
                logger.debug(f"ChallengeManager: first game, starting at batch {batch}")

        self.current_level = position.level
        self._enter_batch(batch)
        self.initialized = True
        logger.info(
            f"ChallengeManager: ready at batch {self.current_batch} {self.current_level.value} "
            f"({len(plan)} batches)"
        )

        if self._start_requested:
            self._start_requested = False
            self.start()

    def _generate_plan(self) -> list[list[int]]:
        counts = self.corpus.phrase_counts()
        plan = plan_batches(counts, self.min_phrases, self.max_phrases)
        if not validate_plan(plan, counts):
            logger.error(f"ChallengeManager: generated plan {plan} does not partition the corpus")
        if not self.progress.set_batch_structure(plan):
            logger.warning("ChallengeManager: batch plan could not be persisted, continuing in memory")
        logger.info(f"ChallengeManager: generated batch plan {plan}")
        return plan

    def _batch_containing(self, text_number: int) -> list[int]:
        for batch in self.batch_plan:
            if text_number in batch:
                return list(batch)
        return list(self.batch_plan[0])

    def _enter_batch(self, batch: list[int]) -> None:
        self.current_batch = list(batch)
        self.current_text_index = batch[0] - 1
        self.current_phrase_index = 0
        self._cover_pending = True

    def start(self) -> None:
        """Begin (or resume) issuing challenges; deferred until both dependencies are ready."""
        if not self.initialized:
            logger.warning("ChallengeManager: start requested before corpus and progress are ready, deferring")
            self._start_requested = True
            return
        if self.finished:
            logger.info("ChallengeManager: all batches are already exhausted")
            self.channel.emit(Topic.CONTENT_EXHAUSTED, {"batch": self.current_batch})
            return
        if self.current_phase is not None or self.awaiting_cover or self._completion_task is not None:
            logger.debug("ChallengeManager: a challenge is already running")
            return

        self.halted = False
        self._emit_stage_started(level_up=False)
        self._next_challenge()

    def halt(self) -> None:
        """Stop issuing challenges and tear down the active phase."""
        logger.info("ChallengeManager: halted")
        self.halted = True
        self.awaiting_cover = False
        self._cleanup_phase()
        if self._completion_task is not None:
            self._completion_task.cancel()
            self._completion_task = None
        self.channel.emit(Topic.TIMER_STOP)

    # =========================================================================
    # Cursor
    # =========================================================================

    @property
    def current_text_id(self) -> Optional[str]:
        text_ids = self.corpus.text_ids()
        if 0 <= self.current_text_index < len(text_ids):
            return text_ids[self.current_text_index]
        return None

    def get_current_phrase_id(self) -> Optional[str]:
        """First non-mastered phrase at or after the cursor in the current text, or None."""
        text_id = self.current_text_id
        if text_id is None:
            return None

        phrase_ids = self.corpus.phrase_ids_for_text(text_id)
        for index in range(self.current_phrase_index, len(phrase_ids)):
            if not self.progress.is_phrase_mastered(phrase_ids[index]):
                self.current_phrase_index = index
                return phrase_ids[index]
        return None

    def _next_challenge(self) -> None:
        while not (self.halted or self.finished):
            text_id = self.current_text_id
            if text_id is not None and not self.progress.is_text_complete(text_id, self.current_level):
                phrase_id = self.get_current_phrase_id()
                if phrase_id is not None:
                    self.create_challenge(phrase_id)
                    return
                self._mark_text_complete(text_id)

            if self.current_text_index + 1 < self.current_batch[-1]:
                self.current_text_index += 1
                self.current_phrase_index = 0
                self._cover_pending = True
                continue

            if not self._advance_batch():
                return

    def _mark_text_complete(self, text_id: str) -> None:
        logger.info(f"ChallengeManager: {text_id} complete at {self.current_level.value}")
        if not self.progress.mark_text_complete(text_id, self.current_level):
            logger.warning(f"ChallengeManager: completion of {text_id} is not durable")
        self.channel.emit(Topic.ROUND_COMPLETED, {"textId": text_id, "level": self.current_level.number})

    def _advance_batch(self) -> bool:
        """Move past a finished batch. False when the plan is exhausted."""
        if not self.progress.is_batch_complete(self.current_batch, self.current_level):
            logger.warning(
                f"ChallengeManager: batch {self.current_batch} ran out of texts but is not marked complete "
                f"at {self.current_level.value}"
            )

        if self.current_level is Level.LEVEL_1:
            self.current_level = Level.LEVEL_2
            self._enter_batch(self.current_batch)
            self.progress.update_current_position(self.current_batch, self.current_level)
            logger.info(f"ChallengeManager: batch {self.current_batch} moves to LEVEL_2")
            self._emit_stage_started(level_up=True)
            return True

        plan = self.progress.get_batch_structure()
        if plan is None or self.current_batch not in plan:
            logger.warning(f"ChallengeManager: batch {self.current_batch} not found in the stored plan, regenerating")
            plan = self._generate_plan()
        self.batch_plan = plan

        position = plan.index(self.current_batch) if self.current_batch in plan else -1
        if position + 1 >= len(plan):
            self.finished = True
            logger.info("ChallengeManager: all batches complete, content exhausted")
            self.channel.emit(Topic.CONTENT_EXHAUSTED, {"batch": self.current_batch})
            return False

        self.current_level = Level.LEVEL_1
        self._enter_batch(plan[position + 1])
        self.progress.update_current_position(self.current_batch, self.current_level)
        logger.info(f"ChallengeManager: advancing to batch {self.current_batch}")
        self._emit_stage_started(level_up=False)
        return True

    def _emit_stage_started(self, level_up: bool) -> None:
        text_ids = self.corpus.text_ids()
        self.channel.emit(
            Topic.STAGE_STARTED,
            {
                "batch": list(self.current_batch),
                "level": self.current_level.value,
                "texts": [text_ids[n - 1] for n in self.current_batch if n - 1 < len(text_ids)],
                "levelUp": level_up,
            },
        )

    # =========================================================================
    # Challenge lifecycle
    # =========================================================================

    def create_challenge(self, phrase_id: str) -> None:
        self.challenges_created += 1
        self.current_phrase_id = phrase_id
        self._cleanup_phase()

        if self._cover_pending:
            self._cover_pending = False
            self._show_text_cover()
            return
        self._assemble_recipe()

    def _show_text_cover(self) -> None:
        text_id = self.current_text_id
        title = next((t.title for t in self.corpus.texts() if t.text_id == text_id), "")
        self.awaiting_cover = True
        logger.debug(f"ChallengeManager: text cover for {text_id}")
        self.channel.emit(Topic.LOAD_TEMPLATE, TEXT_COVER_TEMPLATE)
        self.channel.emit(
            Topic.SHOW_TEXT_COVER,
            {"textId": text_id, "title": title, "batch": list(self.current_batch), "level": self.current_level.value},
        )

    def _on_cover_key(self, _: Any = None) -> None:
        if self.awaiting_cover:
            self.continue_from_cover()

    def continue_from_cover(self) -> None:
        if not self.awaiting_cover or self.halted:
            return
        self.awaiting_cover = False
        self._assemble_recipe()

    def _assemble_recipe(self) -> None:
        self.channel.emit(Topic.TIMER_RESET)
        self.timer_was_started = False
        self.current_recipe = recipe_for(self.current_level)
        self.current_phase_index = -1
        self.current_phrase = None
        self._requested_phrase_id = self.current_phrase_id
        self.channel.emit(Topic.REQUEST_PHRASE_DATA, self.current_phrase_id)

    def _on_phrase_data(self, phrase: PhraseData) -> None:
        if self._requested_phrase_id is None or phrase.phrase_id != self._requested_phrase_id:
            logger.debug(f"ChallengeManager: ignoring unrequested phrase data {phrase.phrase_id}")
            return
        self._requested_phrase_id = None
        self.current_phrase = phrase
        self.activate_phase(0)

    def activate_phase(self, index: int) -> None:
        name = self.current_recipe[index]
        previous = self.current_recipe[self.current_phase_index] if self.current_phase_index >= 0 else None

        self._cleanup_phase()
        self.current_phase_index = index
        self.channel.emit(Topic.LOAD_TEMPLATE, TEMPLATES[name])

        phase = create_phase(name, self.phase_context)
        self.current_phase = phase
        logger.debug(f"ChallengeManager: {self.current_phrase_id} -> {name.value}")
        phase.start(self._phase_data(name))
        self._apply_timer_policy(name, previous)

    def _phase_data(self, name: PhaseName) -> dict[str, Any]:
        phrase = self.current_phrase
        if name is PhaseName.PRESENTATION:
            return {"phrase_target": phrase.phrase_target}
        if name in (PhaseName.REVISION, PhaseName.RETRIEVAL):
            return {"phrase_target": phrase.phrase_target, "semantic_units": list(phrase.semantic_units)}
        if name is PhaseName.SOLUTION:
            return {
                "phrase_target": phrase.phrase_target,
                "primary_translation": phrase.primary_translation,
                "distractors": list(phrase.distractors),
            }
        return {}

    def _apply_timer_policy(self, name: PhaseName, previous: Optional[PhaseName]) -> None:
        if self.current_level is Level.LEVEL_1:
            if name is PhaseName.SOLUTION and not self.timer_was_started:
                self._start_timer()
            return

        if name is PhaseName.RETRIEVAL:
            if self.timer_was_started:
                self.channel.emit(Topic.TIMER_RESUME)
            else:
                self._start_timer()
        elif name is PhaseName.READY_OR_NOT:
            if previous is PhaseName.RETRIEVAL and self.timer_was_started:
                self.channel.emit(Topic.TIMER_PAUSE)
        elif name is PhaseName.SOLUTION:
            if self.timer_was_started:
                self.channel.emit(Topic.TIMER_RESUME)
            else:
                self._start_timer()

    def _start_timer(self) -> None:
        self.timer_was_started = True
        self.channel.emit(Topic.TIMER_START)

    def _cleanup_phase(self) -> None:
        if self.current_phase is not None:
            self.current_phase.cleanup()
            self.current_phase = None

    # =========================================================================
    # Phase outcomes
    # =========================================================================

    def _on_phase_completed(self, result: PhaseResult) -> None:
        if self.current_phase is None or result.phase != self.current_phase.name:
            logger.debug(f"ChallengeManager: ignoring stale completion from {result.phase}")
            return

        phrase_id = self.current_phrase_id
        outcome = result.outcome

        if outcome is Outcome.SKIP_TO_SOLUTION:
            self.progress.record_attempt_outcome(phrase_id, skipped=True)
            self.jump_to_phase(PhaseName.SOLUTION)
        elif outcome in (Outcome.PROCEED_TO_REVISION, Outcome.COMPLETED, Outcome.PROCEED_TO_SOLUTION):
            self.proceed_to_next_phase()
        elif outcome is Outcome.RETURN_TO_REVISION:
            self.jump_to_phase(REVISION_PHASES[self.current_level])
        elif outcome is Outcome.CORRECT:
            self.channel.emit(Topic.TIMER_STOP)
            self.progress.record_attempt_outcome(phrase_id, correct=True)
            self.progress.evaluate_mastery(phrase_id, self.current_level)
            self.complete_challenge()
        elif outcome is Outcome.TIMEOUT:
            self.channel.emit(Topic.TIMER_STOP)
            self._cleanup_phase()
            self.progress.evaluate_mastery(phrase_id, self.current_level)
            self.channel.emit(Topic.LIFE_LOST)
            self._completion_task = self.scheduler.call_later(
                self.feedback_ms, self._complete_after_timeout, owner=OWNER
            )
        else:
            logger.warning(f"ChallengeManager: unhandled outcome {outcome}")

    def _complete_after_timeout(self) -> None:
        self._completion_task = None
        if self.halted:
            return
        self.complete_challenge()

    def proceed_to_next_phase(self) -> None:
        next_index = self.current_phase_index + 1
        if next_index >= len(self.current_recipe):
            self.complete_challenge()
            return
        self.activate_phase(next_index)

    def jump_to_phase(self, name: PhaseName) -> None:
        self.activate_phase(self.current_recipe.index(name))

    def _on_wrong_answer(self, _: Any = None) -> None:
        if self.current_phrase_id is None:
            return
        self.progress.record_attempt_outcome(self.current_phrase_id, incorrect_count=1)
        self.channel.emit(Topic.LIFE_LOST)

    def _on_unit_revealed(self, unit_index: int) -> None:
        if self.current_phrase_id is None:
            return
        self.progress.record_attempt_outcome(self.current_phrase_id, peeked_unit=unit_index)
        self.channel.emit(Topic.TIMER_PENALTY)

    def complete_challenge(self) -> None:
        """Finish the current phrase and move the cursor on."""
        self._cleanup_phase()
        logger.debug(f"ChallengeManager: challenge for {self.current_phrase_id} complete")
        self.current_phrase_index += 1
        self._next_challenge()
