"""
Unit tests for the life counter.
"""

from src.drill.energy import EnergyBar
from src.drill.events import Topic


class TestEnergyBar:
    def test_initialize_reports_full(self, channel, recorder):
        EnergyBar(channel, max_lives=4)
        channel.emit(Topic.ENERGY_INITIALIZE)

        assert recorder.payloads(Topic.ENERGY_DISPLAY) == [100.0]

    def test_life_lost_reports_percentage(self, channel, recorder):
        energy = EnergyBar(channel, max_lives=4)
        channel.emit(Topic.LIFE_LOST)

        assert energy.current_lives == 3
        assert recorder.payloads(Topic.ENERGY_DISPLAY) == [75.0]

    def test_game_over_once_and_never_negative(self, channel, recorder):
        energy = EnergyBar(channel, max_lives=2)
        for _ in range(5):
            channel.emit(Topic.LIFE_LOST)

        assert energy.current_lives == 0
        assert recorder.count(Topic.GAME_OVER) == 1
        assert recorder.payloads(Topic.ENERGY_DISPLAY) == [50.0, 0.0]
