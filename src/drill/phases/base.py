"""
Shared types for phase state machines.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from src.drill.events import EventChannel, Handler, Topic
from src.drill.scheduling import ScheduledTask, TaskScheduler


class Outcome(str, Enum):
    """Named results a phase completes with."""

    SKIP_TO_SOLUTION = "skipToSolution"
    PROCEED_TO_REVISION = "proceedToRevision"
    COMPLETED = "completed"
    PROCEED_TO_SOLUTION = "proceedToSolution"
    RETURN_TO_REVISION = "returnToRevision"
    CORRECT = "correct"
    TIMEOUT = "timeout"


@dataclass
class PhaseResult:
    """Payload of Topic.PHASE_COMPLETED."""

    phase: str
    outcome: Outcome


@dataclass
class PhaseContext:
    """Collaborators and timings handed to every phase."""

    channel: EventChannel
    scheduler: TaskScheduler
    activation_grace_ms: int = 100
    feedback_ms: int = 1000
    timeout_overlay_ms: int = 2000
    rng: random.Random = field(default_factory=random.Random)


class Phase(Protocol):
    """Protocol for phase state machines."""

    name: str
    is_active: bool

    def start(self, data: dict[str, Any]) -> None:
        """Begin the phase with its data subset."""
        ...

    def cleanup(self) -> None:
        """Unsubscribe and cancel pending delays. Safe to call repeatedly."""
        ...


class PhaseRuntime:
    """
    Subscriptions and deferred tasks owned by one phase activation.

    release() undoes both, so a callback scheduled by a phase can never run
    after that phase was cleaned up.
    """

    def __init__(self, context: PhaseContext, owner: str):
        self.context = context
        self.owner = owner
        self._subscriptions: list[tuple[Topic, Handler]] = []
        self._tasks: list[ScheduledTask] = []

    @property
    def channel(self) -> EventChannel:
        return self.context.channel

    def subscribe(self, topic: Topic, handler: Handler) -> None:
        self.channel.subscribe(topic, handler)
        self._subscriptions.append((topic, handler))

    def later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        self._tasks = [t for t in self._tasks if t.active]
        task = self.context.scheduler.call_later(delay_ms, callback, owner=self.owner)
        self._tasks.append(task)
        return task

    def cancel_pending(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks = []

    def release(self) -> None:
        for topic, handler in self._subscriptions:
            self.channel.unsubscribe(topic, handler)
        self._subscriptions = []
        self.cancel_pending()

    def complete(self, outcome: Outcome) -> None:
        logger.debug(f"{self.owner}: completed with {outcome.value}")
        self.channel.emit(Topic.PHASE_COMPLETED, PhaseResult(phase=self.owner, outcome=outcome))
