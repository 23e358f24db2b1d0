"""
Unit tests for settings.
"""

import pytest
from pydantic import ValidationError

from config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEARNER_ID", raising=False)
        settings = Settings(_env_file=None)

        assert settings.learner_id == "local"
        assert settings.batch_min_phrases == 6
        assert settings.batch_max_phrases == 10
        assert settings.countdown_seconds == 15
        assert settings.corpus_path.name == "fr_en_001.json"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEARNER_ID", "alice")
        monkeypatch.setenv("MAX_LIVES", "4")

        settings = Settings(_env_file=None)
        assert settings.learner_id == "alice"
        assert settings.max_lives == 4

    def test_rejects_invalid_values(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_lives=0)
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_timing_config(self):
        timing = Settings(_env_file=None, feedback_ms=250).get_timing_config()
        assert timing["feedback_ms"] == 250
        assert set(timing) == {
            "activation_grace_ms",
            "feedback_ms",
            "timeout_overlay_ms",
            "countdown_seconds",
            "reveal_penalty_seconds",
        }
