"""
Countdown timer collaborator.

Listens for start/pause/resume/reset/stop and reveal penalties on the
channel, ticks once per second on the scheduler, and announces expiry.
"""

from __future__ import annotations

from loguru import logger

from src.drill.events import EventChannel, Topic
from src.drill.scheduling import ScheduledTask, TaskScheduler

TICK_MS = 1000
OWNER = "countdown"


class Countdown:
    """Per-challenge countdown driven by one-second ticks."""

    def __init__(
        self,
        channel: EventChannel,
        scheduler: TaskScheduler,
        duration_seconds: int = 15,
        penalty_seconds: int = 3,
    ):
        self.channel = channel
        self.scheduler = scheduler
        self.duration_seconds = duration_seconds
        self.penalty_seconds = penalty_seconds
        self.remaining = duration_seconds
        self._tick_task: ScheduledTask | None = None

        channel.subscribe(Topic.TIMER_START, lambda _: self.start())
        channel.subscribe(Topic.TIMER_PAUSE, lambda _: self.pause())
        channel.subscribe(Topic.TIMER_RESUME, lambda _: self.resume())
        channel.subscribe(Topic.TIMER_RESET, lambda _: self.reset())
        channel.subscribe(Topic.TIMER_STOP, lambda _: self.stop())
        channel.subscribe(Topic.TIMER_PENALTY, self._on_penalty)

    @property
    def running(self) -> bool:
        return self._tick_task is not None and self._tick_task.active

    def start(self) -> None:
        if self.remaining <= 0:
            logger.debug("Countdown: already expired, start ignored until reset")
            return
        logger.debug(f"Countdown: starting from {self.remaining}")
        self.channel.emit(Topic.TIMER_TICK, self.remaining)
        self._schedule_tick()

    def pause(self) -> None:
        logger.debug("Countdown: paused")
        self._cancel_tick()

    def resume(self) -> None:
        if self.remaining <= 0:
            logger.debug("Countdown: already expired, resume ignored until reset")
            return
        logger.debug(f"Countdown: resuming at {self.remaining}")
        self._schedule_tick()

    def reset(self) -> None:
        self._cancel_tick()
        self.remaining = self.duration_seconds

    def stop(self) -> None:
        """Stop ticking without restoring the duration."""
        self._cancel_tick()

    def _on_penalty(self, seconds: int | None) -> None:
        if self.remaining <= 0:
            return
        penalty = self.penalty_seconds if seconds is None else seconds
        self.remaining = max(0, self.remaining - penalty)
        logger.debug(f"Countdown: penalty of {penalty}s, {self.remaining}s left")
        self.channel.emit(Topic.TIMER_TICK, self.remaining)
        if self.remaining == 0:
            self._expire()

    def _schedule_tick(self) -> None:
        self._cancel_tick()
        self._tick_task = self.scheduler.call_later(TICK_MS, self._tick, owner=OWNER)

    def _cancel_tick(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    def _tick(self) -> None:
        self._tick_task = None
        self.remaining -= 1
        self.channel.emit(Topic.TIMER_TICK, max(0, self.remaining))

        if self.remaining <= 0:
            self._expire()
        else:
            self._schedule_tick()

    def _expire(self) -> None:
        """Stop at zero and announce expiry; start/resume stay no-ops until reset()."""
        self._cancel_tick()
        self.remaining = 0
        logger.debug("Countdown: expired")
        self.channel.emit(Topic.TIMER_EXPIRED)
