"""
Cancellable deferred callbacks.

The game has no threads: every delay (activation grace, answer feedback,
countdown ticks, overlays) is a ScheduledTask on one TaskScheduler. The
owner of a task keeps the handle and cancels it on cleanup; a cancelled
task never runs.

Two clock modes:
- virtual (clock=None): time only moves through advance(); used by tests
- real (clock=time.monotonic): the driver calls run_pending() whenever it
  gets control back (e.g. after reading a key)
"""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger


@dataclass(order=True)
class ScheduledTask:
    """Handle for one deferred callback."""

    due_ms: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    owner: str | None = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)
    done: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        """True while the task is still waiting to run."""
        return not (self.cancelled or self.done)


class TaskScheduler:
    """Single-threaded timer queue with explicit cancellation."""

    def __init__(self, clock: Callable[[], float] | None = None):
        """
        Args:
            clock: Seconds-returning clock (e.g. time.monotonic). None selects
                a virtual millisecond clock starting at 0.
        """
        self._clock = clock
        self._virtual_now = 0.0
        self._queue: list[ScheduledTask] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        if self._clock is None:
            return self._virtual_now
        return self._clock() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None], owner: str | None = None) -> ScheduledTask:
        """Schedule callback to run delay_ms from now."""
        task = ScheduledTask(
            due_ms=self.now_ms() + max(0.0, float(delay_ms)),
            seq=next(self._seq),
            callback=callback,
            owner=owner,
        )
        heapq.heappush(self._queue, task)
        return task

    def run_pending(self) -> int:
        """Run every task that is due now. Returns the number of tasks run."""
        return self._run_until(self.now_ms())

    def advance(self, delta_ms: float) -> int:
        """Move the virtual clock forward, running tasks as they fall due."""
        if self._clock is not None:
            raise RuntimeError("advance() is only available on a virtual clock")
        target = self._virtual_now + max(0.0, float(delta_ms))
        ran = self._run_until(target)
        self._virtual_now = target
        return ran

    def _run_until(self, limit_ms: float) -> int:
        ran = 0
        while self._queue and self._queue[0].due_ms <= limit_ms:
            task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            if self._clock is None:
                self._virtual_now = max(self._virtual_now, task.due_ms)
            task.done = True
            try:
                task.callback()
            except Exception:
                logger.exception(f"TaskScheduler: deferred callback (owner={task.owner}) raised")
            ran += 1
        return ran

    def has_pending(self, owner: str | None = None) -> bool:
        """True if an active task (optionally of one owner) is queued."""
        return any(t.active and (owner is None or t.owner == owner) for t in self._queue)

    def next_due(self, exclude_owner: str | None = None) -> float | None:
        """Due time (ms) of the earliest active task, ignoring one owner."""
        due = [t.due_ms for t in self._queue if t.active and (exclude_owner is None or t.owner != exclude_owner)]
        return min(due) if due else None

    def cancel_all(self, owner: str | None = None) -> None:
        for task in self._queue:
            if owner is None or task.owner == owner:
                task.cancel()
