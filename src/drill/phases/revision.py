"""
Revision phase (LEVEL_1).

Walks the semantic units one Space press at a time, starting before the
first unit. Each step highlights the unit and shows its translations; the
press after the last unit completes the phase.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from src.drill.events import Topic

from . import PhaseName, register
from .base import Outcome, PhaseContext, PhaseRuntime


@register(PhaseName.REVISION)
class Revision:
    name: str

    def __init__(self, context: PhaseContext):
        self.context = context
        self.runtime = PhaseRuntime(context, PhaseName.REVISION.value)
        self.is_active = False
        self.current_unit = -1
        self.phrase_target = ""
        self.semantic_units: list = []

    def start(self, data: dict[str, Any]) -> None:
        self.is_active = False
        self.current_unit = -1
        self.phrase_target = data.get("phrase_target", "")
        self.semantic_units = list(data.get("semantic_units", ()))

        self.runtime.subscribe(Topic.SPACE_PRESSED, self._on_space)
        self.runtime.later(self.context.activation_grace_ms, self._activate)
        logger.debug(f"Revision: {len(self.semantic_units)} units")

    def _activate(self) -> None:
        self.is_active = True
        self.runtime.channel.emit(Topic.HIGHLIGHT_TEXT, {"phrase": self.phrase_target, "unit": None})
        self.runtime.channel.emit(
            Topic.SHOW_TRANSLATIONS,
            {"unit": None, "translations": [], "hint": "Press Space to step through the translations"},
        )

    def _on_space(self, _: Any = None) -> None:
        if not self.is_active:
            return

        self.current_unit += 1
        if self.current_unit >= len(self.semantic_units):
            self.is_active = False
            self.runtime.complete(Outcome.COMPLETED)
            return

        unit = self.semantic_units[self.current_unit]
        self.runtime.channel.emit(
            Topic.HIGHLIGHT_TEXT,
            {"phrase": self.phrase_target, "unit": unit.unit_target, "index": self.current_unit},
        )
        self.runtime.channel.emit(
            Topic.SHOW_TRANSLATIONS,
            {"unit": unit.unit_target, "translations": list(unit.translations), "hidden": False},
        )

    def cleanup(self) -> None:
        self.is_active = False
        self.runtime.release()
