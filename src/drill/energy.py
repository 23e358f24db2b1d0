"""
Life counter collaborator.
"""

from __future__ import annotations

from loguru import logger

from src.drill.events import EventChannel, Topic


class EnergyBar:
    """Tracks remaining lives; announces game over when they run out."""

    def __init__(self, channel: EventChannel, max_lives: int = 10):
        self.channel = channel
        self.max_lives = max_lives
        self.current_lives = max_lives

        channel.subscribe(Topic.ENERGY_INITIALIZE, lambda _: self.initialize())
        channel.subscribe(Topic.LIFE_LOST, lambda _: self.lose_life())

    @property
    def percentage(self) -> float:
        return self.current_lives / self.max_lives * 100

    def initialize(self) -> None:
        self.current_lives = self.max_lives
        self.channel.emit(Topic.ENERGY_DISPLAY, self.percentage)

    def lose_life(self) -> None:
        if self.current_lives <= 0:
            return

        self.current_lives -= 1
        logger.debug(f"EnergyBar: life lost, {self.current_lives} left")
        self.channel.emit(Topic.ENERGY_DISPLAY, self.percentage)

        if self.current_lives == 0:
            logger.info("EnergyBar: no lives remaining")
            self.channel.emit(Topic.GAME_OVER)
