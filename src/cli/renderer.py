"""
Rich terminal view of a game.

Subscribes to the ui:*, timer and energy topics and prints what a player
needs to see; it never changes game state.
"""

from __future__ import annotations

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from src.drill.events import EventChannel, Topic
from src.drill.phases import TEMPLATES, PhaseName

STYLES = {
    "phrase": "bold white",
    "unit": "bold black on yellow",
    "translation": "cyan",
    "hidden": "dim italic",
    "selected": "bold reverse",
    "correct": "bold green",
    "incorrect": "bold red",
    "hint": "dim",
}

HINTS = {
    TEMPLATES[PhaseName.PRESENTATION]: "Enter = straight to the answer   Space = study the phrase first",
    TEMPLATES[PhaseName.READY_OR_NOT]: "Ready?   Enter = answer   Space = study again",
}


def highlight(phrase: str, unit: Optional[str]) -> Text:
    """Phrase with the first occurrence of unit highlighted."""
    text = Text(phrase, style=STYLES["phrase"])
    if unit:
        start = phrase.find(unit)
        if start >= 0:
            text.stylize(STYLES["unit"], start, start + len(unit))
    return text


class TerminalRenderer:
    """Prints channel UI updates to a Rich console."""

    def __init__(self, channel: EventChannel, console: Optional[Console] = None):
        self.channel = channel
        self.console = console or Console()
        self.remaining: Optional[int] = None
        self.energy: Optional[float] = None

        channel.subscribe(Topic.LOAD_TEMPLATE, self._on_template)
        channel.subscribe(Topic.SHOW_TEXT_COVER, self._on_text_cover)
        channel.subscribe(Topic.HIGHLIGHT_TEXT, self._on_highlight)
        channel.subscribe(Topic.SHOW_TRANSLATIONS, self._on_translations)
        channel.subscribe(Topic.SHOW_CHOICES, self._on_choices)
        channel.subscribe(Topic.SHOW_OVERLAY, self._on_overlay)
        channel.subscribe(Topic.TIMER_TICK, self._on_tick)
        channel.subscribe(Topic.ENERGY_DISPLAY, self._on_energy)
        channel.subscribe(Topic.STAGE_STARTED, self._on_stage)
        channel.subscribe(Topic.CONTENT_EXHAUSTED, self._on_exhausted)
        channel.subscribe(Topic.GAME_OVER, self._on_game_over)

    def status_line(self) -> str:
        parts = []
        if self.remaining is not None:
            parts.append(f"[yellow]{self.remaining}s[/yellow]")
        if self.energy is not None:
            parts.append(f"[red]energy {self.energy:.0f}%[/red]")
        parts.append("[dim]<Enter> / s=Space / q=quit[/dim]")
        return "  ".join(parts) + " > "

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_template(self, template: str) -> None:
        hint = HINTS.get(template)
        if hint:
            self.console.print(Text(hint, style=STYLES["hint"]))

    def _on_text_cover(self, cover: dict[str, Any]) -> None:
        body = Text(cover.get("title") or cover.get("textId", ""), style="bold")
        body.append(f"\n{cover.get('level', '')}  batch {cover.get('batch', [])}", style=STYLES["hint"])
        body.append("\n\nPress Enter to begin", style=STYLES["hint"])
        self.console.print(Panel(body, title=cover.get("textId", ""), box=box.ROUNDED, border_style="cyan"))

    def _on_highlight(self, data: dict[str, Any]) -> None:
        self.console.print(highlight(data.get("phrase", ""), data.get("unit")))

    def _on_translations(self, data: dict[str, Any]) -> None:
        if data.get("hint"):
            self.console.print(Text(data["hint"], style=STYLES["hint"]))
        elif data.get("hidden"):
            self.console.print(Text("  (Enter reveals the translations)", style=STYLES["hidden"]))
        for translation in data.get("translations", []):
            self.console.print(Text(f"  - {translation}", style=STYLES["translation"]))

    def _on_choices(self, data: dict[str, Any]) -> None:
        feedback = data.get("feedback")
        for index, option in enumerate(data.get("options", [])):
            style = ""
            marker = "  "
            if index == data.get("highlighted"):
                marker = "> "
                style = STYLES[feedback] if feedback else STYLES["selected"]
            self.console.print(Text(f"{marker}{index + 1}. {option}", style=style))
        if feedback == "correct":
            self.console.print(Text("Correct!", style=STYLES["correct"]))
        elif feedback == "incorrect":
            self.console.print(Text("Not quite.", style=STYLES["incorrect"]))

    def _on_overlay(self, data: dict[str, Any]) -> None:
        if data.get("kind") == "timeout":
            self.console.print(Panel("Time is up", style=STYLES["incorrect"], box=box.HEAVY))

    def _on_tick(self, remaining: int) -> None:
        self.remaining = remaining

    def _on_energy(self, percentage: float) -> None:
        self.energy = percentage

    def _on_stage(self, stage: dict[str, Any]) -> None:
        texts = ", ".join(stage.get("texts", []))
        self.console.rule(f"[bold]{stage.get('level', '')}[/bold]  {texts}")

    def _on_exhausted(self, _: Any = None) -> None:
        self.console.print(Panel("Every batch is complete. Well done!", style=STYLES["correct"], box=box.DOUBLE))

    def _on_game_over(self, _: Any = None) -> None:
        self.console.print(Panel("Out of energy - game over", style=STYLES["incorrect"], box=box.DOUBLE))
