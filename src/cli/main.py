"""
Typer CLI for the phrase drill game.

Commands:
    drill play              - Play in the terminal (resumes saved progress)
    drill plan              - Show the batch plan for the corpus
    drill progress          - Show the learner's progress and statistics
    drill reset             - Wipe the learner's progress

Usage:
    drill --help
    drill play --learner alice
    drill plan --corpus data/corpus/fr_en_001.json
    drill reset --yes
"""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from config import Settings, get_settings
from src.cli.renderer import TerminalRenderer
from src.drill import countdown
from src.drill.analytics import GameAnalytics
from src.drill.batching import batch_total, plan_batches
from src.drill.corpus import CorpusProvider
from src.drill.errors import DrillError
from src.drill.events import EventChannel
from src.drill.game import build_game
from src.drill.mastery import UserProgress
from src.drill.progress_store import JsonFileBackend
from src.drill.scheduling import TaskScheduler

app = typer.Typer(
    help="phrase-drill: batch-paced phrase mastery game for the terminal",
    no_args_is_help=True,
)

console = Console()

SPACE_INPUTS = {"s", "space"}
QUIT_INPUTS = {"q", "quit", "exit"}


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
):
    """Configure logging for every command."""
    configure_logging(log_level or get_settings().log_level)


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )


def _settings(
    learner: Optional[str] = None,
    corpus: Optional[Path] = None,
    seed: Optional[int] = None,
) -> Settings:
    """Settings with command-line overrides applied."""
    update = {}
    if learner:
        update["learner_id"] = learner
    if corpus:
        update["corpus_path"] = corpus
    if seed is not None:
        update["random_seed"] = seed
    settings = get_settings()
    return settings.model_copy(update=update) if update else settings


def _load_store(settings: Settings) -> tuple[CorpusProvider, UserProgress, GameAnalytics]:
    """Load corpus, progress and statistics without starting a game."""
    channel = EventChannel()
    backend = JsonFileBackend(settings.progress_dir)
    corpus = CorpusProvider(channel, settings.corpus_path)
    progress = UserProgress(channel, backend, settings.learner_id)
    analytics = GameAnalytics(channel, backend)

    progress.load()
    corpus.load()
    progress.bind_corpus(corpus.text_phrase_ids())
    return corpus, progress, analytics


# ========================================
# PLAY
# ========================================


def settle(scheduler: TaskScheduler) -> None:
    """Run deferred work (grace periods, feedback delays) until only the countdown is pending."""
    while True:
        scheduler.run_pending()
        due = scheduler.next_due(exclude_owner=countdown.OWNER)
        if due is None:
            return
        delay_ms = due - scheduler.now_ms()
        if delay_ms > 0:
            time.sleep(delay_ms / 1000.0)


@app.command("play")
def play(
    learner: Optional[str] = typer.Option(None, "--learner", "-l", help="Learner id (progress document key)"),
    corpus: Optional[Path] = typer.Option(None, "--corpus", "-c", help="Corpus JSON file"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for answer shuffling"),
) -> None:
    """Play in the terminal: Enter = empty line, Space = 's', quit = 'q'."""
    settings = _settings(learner, corpus, seed)
    game = build_game(settings)
    renderer = TerminalRenderer(game.channel, console)

    try:
        game.start()
    except DrillError as e:
        rprint(f"[red]✗[/red] Could not start the game: {e}")
        raise typer.Exit(code=1)

    try:
        while not game.finished:
            settle(game.scheduler)
            if game.finished:
                break

            raw = console.input(renderer.status_line())
            game.scheduler.run_pending()
            choice = raw.strip().lower()

            if choice in QUIT_INPUTS:
                break
            if choice in SPACE_INPUTS or (raw and not raw.strip()):
                game.press_space()
            elif choice == "":
                game.press_enter()
            else:
                rprint("[dim]Empty line = Enter, 's' = Space, 'q' = quit[/dim]")

        settle(game.scheduler)
    except (KeyboardInterrupt, EOFError):
        console.print()
    finally:
        saved = game.end()

    if not saved:
        rprint("[yellow]⚠[/yellow] Progress could not be saved")
    _print_summary(game.progress.summary(), game.analytics.text_stats_display())


# ========================================
# INSPECTION COMMANDS
# ========================================


@app.command("plan")
def show_plan(
    corpus: Optional[Path] = typer.Option(None, "--corpus", "-c", help="Corpus JSON file"),
) -> None:
    """Show how the corpus texts are grouped into batches."""
    settings = _settings(corpus=corpus)
    provider = CorpusProvider(EventChannel(), settings.corpus_path)
    try:
        provider.load()
    except DrillError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    counts = provider.phrase_counts()
    text_ids = provider.text_ids()
    plan = plan_batches(counts, settings.batch_min_phrases, settings.batch_max_phrases)

    table = Table(title=f"Batch plan for {provider.corpus_id}")
    table.add_column("Batch", style="cyan", justify="right")
    table.add_column("Texts", style="green")
    table.add_column("Phrases", justify="right")

    for number, batch in enumerate(plan, start=1):
        total = batch_total(batch, counts)
        style = "" if total >= settings.batch_min_phrases else "yellow"
        table.add_row(str(number), ", ".join(text_ids[n - 1] for n in batch), f"[{style}]{total}[/{style}]" if style else str(total))

    console.print(table)


@app.command("progress")
def show_progress(
    learner: Optional[str] = typer.Option(None, "--learner", "-l", help="Learner id"),
    corpus: Optional[Path] = typer.Option(None, "--corpus", "-c", help="Corpus JSON file"),
) -> None:
    """Show mastery progress and per-text statistics."""
    settings = _settings(learner, corpus)
    try:
        _, progress, analytics = _load_store(settings)
    except DrillError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    _print_summary(progress.summary(), analytics.text_stats_display())


@app.command("reset")
def reset(
    learner: Optional[str] = typer.Option(None, "--learner", "-l", help="Learner id"),
    corpus: Optional[Path] = typer.Option(None, "--corpus", "-c", help="Corpus JSON file"),
    stats: bool = typer.Option(False, "--stats", help="Also delete the corpus statistics"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Wipe the learner's progress document."""
    settings = _settings(learner, corpus)
    if not yes and not Confirm.ask(f"[yellow]Reset all progress for '{settings.learner_id}'?[/yellow]", default=False):
        rprint("[dim]Nothing changed[/dim]")
        return

    try:
        provider, progress, analytics = _load_store(settings)
    except DrillError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    if not progress.reset_progress():
        rprint("[red]✗[/red] Progress could not be saved")
        raise typer.Exit(code=1)
    if stats:
        analytics.backend.delete(analytics.key)
    rprint(f"[green]✓[/green] Progress for '{settings.learner_id}' reset ({provider.corpus_id})")


def _print_summary(summary: dict, stats_display: str) -> None:
    table = Table(title="Progress")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Games played", str(summary["gamesPlayed"]))
    table.add_row("Phrases mastered", f"{summary['masteredPhrases']} / {summary['totalPhrases']} ({summary['masteredPercentage']}%)")
    table.add_row("Texts", str(summary["totalTexts"]))
    table.add_row("Resume at", f"batch {summary['currentBatch']} {summary['currentLevel']}")
    console.print(table)

    if stats_display:
        rprint("[bold]Text statistics[/bold]")
        for line in stats_display.split("; "):
            rprint(f"  {line}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
