"""
Retrieval phase (LEVEL_2).

Like Revision, but each unit is shown with its translations hidden:
- Enter reveals the current unit's translations (announced as UNIT_REVEALED,
  which costs countdown time)
- Space hides them and moves on; past the last unit the phase completes
- countdown expiry while active completes the phase
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from src.drill.events import Topic

from . import PhaseName, register
from .base import Outcome, PhaseContext, PhaseRuntime


@register(PhaseName.RETRIEVAL)
class Retrieval:
    name: str

    def __init__(self, context: PhaseContext):
        self.runtime = PhaseRuntime(context, PhaseName.RETRIEVAL.value)
        self.is_active = False
        self.current_unit = 0
        self.translations_visible = False
        self.phrase_target = ""
        self.semantic_units: list = []
        self.revealed: set[int] = set()

    def start(self, data: dict[str, Any]) -> None:
        self.current_unit = 0
        self.translations_visible = False
        self.revealed = set()
        self.phrase_target = data.get("phrase_target", "")
        self.semantic_units = list(data.get("semantic_units", ()))

        self.runtime.subscribe(Topic.SPACE_PRESSED, self._on_space)
        self.runtime.subscribe(Topic.ENTER_PRESSED, self._on_enter)
        self.runtime.subscribe(Topic.TIMER_EXPIRED, self._on_timer_expired)
        self.is_active = True

        logger.debug(f"Retrieval: {len(self.semantic_units)} units")
        if not self.semantic_units:
            self.runtime.later(0, self._complete)
            return
        self._show_unit()

    def _show_unit(self) -> None:
        unit = self.semantic_units[self.current_unit]
        channel = self.runtime.channel
        channel.emit(
            Topic.HIGHLIGHT_TEXT,
            {"phrase": self.phrase_target, "unit": unit.unit_target, "index": self.current_unit},
        )
        channel.emit(
            Topic.SHOW_TRANSLATIONS,
            {
                "unit": unit.unit_target,
                "translations": list(unit.translations) if self.translations_visible else [],
                "hidden": not self.translations_visible,
            },
        )

    def _on_enter(self, _: Any = None) -> None:
        if not self.is_active or self.translations_visible:
            return
        self.translations_visible = True
        self.revealed.add(self.current_unit)
        self.runtime.channel.emit(Topic.UNIT_REVEALED, self.current_unit)
        self._show_unit()

    def _on_space(self, _: Any = None) -> None:
        if not self.is_active:
            return
        self.translations_visible = False
        self.current_unit += 1
        if self.current_unit >= len(self.semantic_units):
            self._complete()
            return
        self._show_unit()

    def _on_timer_expired(self, _: Any = None) -> None:
        if not self.is_active:
            return
        logger.debug("Retrieval: countdown expired")
        self._complete()

    def _complete(self) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.runtime.complete(Outcome.COMPLETED)

    def cleanup(self) -> None:
        self.is_active = False
        self.runtime.release()
