"""
Phase state machines for one phrase challenge.

Each phase (Presentation, Revision, Retrieval, ReadyOrNot, Solution) has its
own module with:
- start(data): take the phase's data subset and begin listening for input
- cleanup(): drop every subscription and pending delay (idempotent)
- a completion outcome emitted as a PhaseResult on Topic.PHASE_COMPLETED

Phases are registered by name and instantiated fresh for every activation.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from src.drill.models import Level

if TYPE_CHECKING:
    from .base import Phase, PhaseContext


class PhaseName(str, Enum):
    """Phases that can appear in a recipe."""

    PRESENTATION = "Presentation"
    REVISION = "Revision"
    RETRIEVAL = "Retrieval"
    READY_OR_NOT = "ReadyOrNot"
    SOLUTION = "Solution"


# Fixed recipe per level
RECIPES: dict[Level, tuple[PhaseName, ...]] = {
    Level.LEVEL_1: (PhaseName.PRESENTATION, PhaseName.REVISION, PhaseName.READY_OR_NOT, PhaseName.SOLUTION),
    Level.LEVEL_2: (PhaseName.PRESENTATION, PhaseName.RETRIEVAL, PhaseName.READY_OR_NOT, PhaseName.SOLUTION),
}

# Revision-equivalent phase of each level (target of returnToRevision)
REVISION_PHASES: dict[Level, PhaseName] = {
    Level.LEVEL_1: PhaseName.REVISION,
    Level.LEVEL_2: PhaseName.RETRIEVAL,
}

GAME_TEMPLATE = "templates/screens/game.html"
TEXT_COVER_TEMPLATE = "templates/screens/text-cover.html"

TEMPLATES: dict[PhaseName, str] = {
    PhaseName.PRESENTATION: "templates/phrase_challenges/presentation.html",
    PhaseName.REVISION: GAME_TEMPLATE,
    PhaseName.RETRIEVAL: GAME_TEMPLATE,
    PhaseName.READY_OR_NOT: "templates/phrase_challenges/ready-or-not.html",
    PhaseName.SOLUTION: GAME_TEMPLATE,
}


# Phase registry - populated by @register decorator
PHASES: dict[PhaseName, type] = {}


def register(name: PhaseName):
    """Decorator to register a phase class under its recipe name."""
    def decorator(cls):
        cls.name = name
        PHASES[name] = cls
        return cls
    return decorator


def recipe_for(level: Level) -> list[PhaseName]:
    return list(RECIPES[level])


def create_phase(name: str | PhaseName, context: PhaseContext) -> Phase:
    """Instantiate a fresh phase for one activation."""
    phase_name = PhaseName(name)
    try:
        cls = PHASES[phase_name]
    except KeyError:
        raise ValueError(f"No phase registered for {phase_name.value}") from None
    return cls(context)


# Import phases to trigger registration
from . import presentation  # noqa: E402
from . import revision  # noqa: E402
from . import retrieval  # noqa: E402
from . import ready_or_not  # noqa: E402
from . import solution  # noqa: E402

__all__ = [
    "GAME_TEMPLATE",
    "PHASES",
    "PhaseName",
    "RECIPES",
    "REVISION_PHASES",
    "TEMPLATES",
    "TEXT_COVER_TEMPLATE",
    "create_phase",
    "recipe_for",
    "register",
]
