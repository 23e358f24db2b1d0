"""
Solution phase: multiple choice over the primary translation and up to three
distractors.

- Space cycles the highlighted option (wraps around)
- Enter submits the highlighted option
    correct   -> feedback for feedback_ms, then outcome "correct"
    incorrect -> feedback for feedback_ms, WRONG_ANSWER, back to selection
                 at the same highlighted index
- countdown expiry -> timeout overlay for timeout_overlay_ms, then outcome
  "timeout"; input is ignored meanwhile
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from src.drill.events import Topic

from . import PhaseName, register
from .base import Outcome, PhaseContext, PhaseRuntime
from .options import OptionSet, build_options


@register(PhaseName.SOLUTION)
class Solution:
    name: str

    def __init__(self, context: PhaseContext):
        self.context = context
        self.runtime = PhaseRuntime(context, PhaseName.SOLUTION.value)
        self.is_active = False
        self.selected_index = 0
        self.phrase_target = ""
        self.option_set: Optional[OptionSet] = None
        self._busy = False
        self._pending_correct = False

    @property
    def options(self) -> list[str]:
        return list(self.option_set.options) if self.option_set else []

    def start(self, data: dict[str, Any]) -> None:
        self.is_active = False
        self._busy = False
        self._pending_correct = False
        self.selected_index = 0
        self.phrase_target = data.get("phrase_target", "")
        self.option_set = build_options(
            data.get("primary_translation", ""),
            data.get("distractors", ()),
            self.context.rng,
        )

        self.runtime.subscribe(Topic.SPACE_PRESSED, self._on_space)
        self.runtime.subscribe(Topic.ENTER_PRESSED, self._on_enter)
        self.runtime.subscribe(Topic.TIMER_EXPIRED, self._on_timer_expired)
        self.runtime.later(self.context.activation_grace_ms, self._activate)

    def _activate(self) -> None:
        self.is_active = True
        self.runtime.channel.emit(Topic.HIGHLIGHT_TEXT, {"phrase": self.phrase_target, "unit": None})
        self._render()

    def _render(self, feedback: Optional[str] = None) -> None:
        self.runtime.channel.emit(
            Topic.SHOW_CHOICES,
            {"options": self.options, "highlighted": self.selected_index, "feedback": feedback},
        )

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def _on_space(self, _: Any = None) -> None:
        if not self.is_active or self._busy:
            return
        self.selected_index = (self.selected_index + 1) % len(self.option_set)
        self._render()

    def _on_enter(self, _: Any = None) -> None:
        if not self.is_active or self._busy:
            return

        correct = self.option_set.is_correct(self.selected_index)
        logger.debug(f"Solution: submitted option {self.selected_index} ({'correct' if correct else 'incorrect'})")
        self._busy = True
        self._pending_correct = correct
        self._render(feedback="correct" if correct else "incorrect")
        self.runtime.later(self.context.feedback_ms, self._after_correct if correct else self._after_incorrect)

    def _after_correct(self) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.runtime.complete(Outcome.CORRECT)

    def _after_incorrect(self) -> None:
        if not self.is_active:
            return
        self._busy = False
        self.runtime.channel.emit(Topic.WRONG_ANSWER)
        if not self.is_active:
            # a lost life can end the game and tear this phase down
            return
        self._render()

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------

    def _on_timer_expired(self, _: Any = None) -> None:
        if not self.is_active or self._pending_correct:
            return

        logger.debug("Solution: countdown expired")
        self.runtime.cancel_pending()
        if self._busy:
            # incorrect feedback was still showing
            self.runtime.channel.emit(Topic.WRONG_ANSWER)
        self._busy = True
        self.runtime.channel.emit(
            Topic.SHOW_OVERLAY,
            {"kind": "timeout", "duration_ms": self.context.timeout_overlay_ms},
        )
        self.runtime.later(self.context.timeout_overlay_ms, self._after_timeout)

    def _after_timeout(self) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.runtime.complete(Outcome.TIMEOUT)

    def cleanup(self) -> None:
        self.is_active = False
        self.runtime.release()
