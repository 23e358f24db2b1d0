"""
Presentation phase.

- Shows the target phrase.
- Enter skips straight to the Solution (the only path to mastery).
- Space proceeds to the level's revision-equivalent phase.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from src.drill.events import Topic

from . import PhaseName, register
from .base import Outcome, PhaseContext, PhaseRuntime


@register(PhaseName.PRESENTATION)
class Presentation:
    """Active immediately; one key press decides the path."""

    name: str

    def __init__(self, context: PhaseContext):
        self.runtime = PhaseRuntime(context, PhaseName.PRESENTATION.value)
        self.is_active = False
        self.phrase_target = ""

    def start(self, data: dict[str, Any]) -> None:
        self.phrase_target = data.get("phrase_target", "")
        self.runtime.subscribe(Topic.ENTER_PRESSED, self._on_enter)
        self.runtime.subscribe(Topic.SPACE_PRESSED, self._on_space)
        self.is_active = True

        logger.debug(f"Presentation: showing '{self.phrase_target}'")
        self.runtime.channel.emit(Topic.HIGHLIGHT_TEXT, {"phrase": self.phrase_target, "unit": None})

    def _on_enter(self, _: Any = None) -> None:
        self._complete(Outcome.SKIP_TO_SOLUTION)

    def _on_space(self, _: Any = None) -> None:
        self._complete(Outcome.PROCEED_TO_REVISION)

    def _complete(self, outcome: Outcome) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.runtime.complete(outcome)

    def cleanup(self) -> None:
        self.is_active = False
        self.runtime.release()
