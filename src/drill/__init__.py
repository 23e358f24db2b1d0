"""
Phrase drill engine.

Modules:
- events: in-process publish/subscribe channel
- scheduling: cancellable deferred callbacks
- corpus: corpus loading and phrase lookups
- batching: batch planner
- mastery: learner progress store
- orchestrator: challenge sequencing across phases, texts and batches
- phases: the five phase state machines
- game: wiring of all of the above
"""

from src.drill.errors import CorpusError, DrillError, PersistenceError
from src.drill.models import Level

__all__ = [
    "CorpusError",
    "DrillError",
    "Level",
    "PersistenceError",
]
