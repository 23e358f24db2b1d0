"""
ReadyOrNot checkpoint: Enter goes on to the Solution, Space goes back to
revision. Input is ignored until the activation grace period has passed.
"""

from __future__ import annotations

from typing import Any

from src.drill.events import Topic

from . import PhaseName, register
from .base import Outcome, PhaseContext, PhaseRuntime


@register(PhaseName.READY_OR_NOT)
class ReadyOrNot:
    name: str

    def __init__(self, context: PhaseContext):
        self.context = context
        self.runtime = PhaseRuntime(context, PhaseName.READY_OR_NOT.value)
        self.is_active = False

    def start(self, data: dict[str, Any]) -> None:
        self.is_active = False
        self.runtime.subscribe(Topic.ENTER_PRESSED, lambda _: self._complete(Outcome.PROCEED_TO_SOLUTION))
        self.runtime.subscribe(Topic.SPACE_PRESSED, lambda _: self._complete(Outcome.RETURN_TO_REVISION))
        self.runtime.later(self.context.activation_grace_ms, self._activate)

    def _activate(self) -> None:
        self.is_active = True

    def _complete(self, outcome: Outcome) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.runtime.complete(outcome)

    def cleanup(self) -> None:
        self.is_active = False
        self.runtime.release()
