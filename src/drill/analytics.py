"""
Game analytics tracker.

Pure observer of the event channel. Keeps, per corpus:
- textStats: text -> level -> rounds completed and per-phrase attempt results
- stageState: batch and level currently being played
- gamesHistory: one record per finished game
- lastStage: where the last game ended

The document is saved as stats_<corpusId> through the progress backend when
a game ends.
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from src.drill.corpus import text_id_for_phrase, text_number
from src.drill.errors import PersistenceError
from src.drill.events import EventChannel, Topic
from src.drill.models import MASTERED
from src.drill.progress_store import ProgressBackend, dump_document, load_document

LEVEL_NUMBERS = (1, 2)


def empty_stats(corpus_id: str) -> dict[str, Any]:
    return {
        "gameId": corpus_id,
        "textStats": {},
        "stageState": {"batch": [], "level": None, "activeTexts": []},
        "gamesHistory": [],
        "lastStage": {"batch": [], "level": None, "texts": []},
    }


class GameAnalytics:
    """Observes gameplay events and accumulates per-corpus statistics."""

    def __init__(self, channel: EventChannel, backend: ProgressBackend):
        self.channel = channel
        self.backend = backend
        self.corpus_id: Optional[str] = None
        self.stats: dict[str, Any] = empty_stats("corpus")
        self.current_game: Optional[dict[str, int]] = None

        channel.subscribe(Topic.CORPUS_READY, self._on_corpus_ready)
        channel.subscribe(Topic.GAME_STARTED, lambda _: self.on_game_started())
        channel.subscribe(Topic.GAME_ENDED, lambda _: self.on_game_ended())
        channel.subscribe(Topic.ATTEMPT_RECORDED, self._on_attempt_recorded)
        channel.subscribe(Topic.STAGE_STARTED, self.on_stage_started)
        channel.subscribe(Topic.ROUND_COMPLETED, self.on_round_completed)

    @property
    def key(self) -> str:
        return f"stats_{self.corpus_id or 'corpus'}"

    # =========================================================================
    # Event Handlers
    # =========================================================================

    def _on_corpus_ready(self, metadata: Optional[dict[str, Any]]) -> None:
        self.corpus_id = str((metadata or {}).get("gameId", "corpus"))
        self.stats = empty_stats(self.corpus_id)
        self.load_existing()

    def load_existing(self) -> None:
        """Merge previously saved statistics for the current corpus."""
        try:
            stored = load_document(self.backend.read(self.key))
        except PersistenceError as e:
            logger.error(f"GameAnalytics: could not read {self.key}: {e}")
            return

        if not stored or "textStats" not in stored:
            logger.debug(f"GameAnalytics: no saved statistics for {self.key}")
            return

        for field_name in ("textStats", "stageState", "gamesHistory", "lastStage"):
            if field_name in stored:
                self.stats[field_name] = stored[field_name]
        logger.info(f"GameAnalytics: loaded statistics for {len(self.stats['textStats'])} texts")

    def on_game_started(self) -> None:
        self.current_game = {
            "gameNumber": len(self.stats["gamesHistory"]) + 1,
            "stages": 0,
            "textsPlayed": 0,
            "levelUps": 0,
        }
        logger.debug(f"GameAnalytics: game {self.current_game['gameNumber']} started")

    def on_game_ended(self) -> bool:
        """Archive the running game and save. Returns the save result."""
        if self.current_game is None:
            return False

        self.stats["gamesHistory"].append(dict(self.current_game))
        stage = self.stats["stageState"]
        self.stats["lastStage"] = {
            "batch": list(stage.get("batch", [])),
            "level": stage.get("level"),
            "texts": list(stage.get("activeTexts", [])),
        }
        self.current_game = None
        logger.info(f"GameAnalytics: archived game {len(self.stats['gamesHistory'])}")
        return self.save()

    def on_stage_started(self, stage: dict[str, Any]) -> None:
        texts = list(stage.get("texts", []))
        self.stats["stageState"] = {
            "batch": list(stage.get("batch", [])),
            "level": stage.get("level"),
            "activeTexts": texts,
        }
        if self.current_game is not None:
            self.current_game["stages"] += 1
            self.current_game["textsPlayed"] = len(texts)
            if stage.get("levelUp"):
                self.current_game["levelUps"] += 1

    def on_round_completed(self, round_data: dict[str, Any]) -> None:
        entry = self._level_entry(round_data["textId"], int(round_data["level"]))
        entry["rounds"] += 1
        logger.debug(f"GameAnalytics: {round_data['textId']} level{round_data['level']} round {entry['rounds']}")

    def _on_attempt_recorded(self, data: dict[str, Any]) -> None:
        played = data.get("playedLevel")
        if played is None:
            played = self._stage_level_number()
        self.record_attempt(data["phraseId"], int(played), data.get("resultingLevel"))

    # =========================================================================
    # Tracking
    # =========================================================================

    def record_attempt(self, phrase_id: str, played_level: int, resulting_level: Any) -> None:
        entry = self._level_entry(text_id_for_phrase(phrase_id), played_level)
        result = "M" if resulting_level == MASTERED else resulting_level
        entry["attempts"].setdefault(phrase_id, []).append(result)

    def _level_entry(self, text_id: str, level: int) -> dict[str, Any]:
        text_stats = self.stats["textStats"].setdefault(text_id, {})
        return text_stats.setdefault(f"level{level}", {"rounds": 0, "attempts": {}})

    def _stage_level_number(self) -> int:
        return 2 if self.stats["stageState"].get("level") == "LEVEL_2" else 1

    def text_stats_display(self) -> str:
        """
        Compact per-text summary, e.g.

            text_1 L1 R2 p1(1,1) p2(M); text_2 L1 R1 p1(1)

        Levels with no completed round are omitted.
        """
        displays = []
        for text_id in sorted(self.stats["textStats"], key=text_number):
            levels = []
            for level in LEVEL_NUMBERS:
                entry = self.stats["textStats"][text_id].get(f"level{level}")
                if not entry or entry["rounds"] == 0:
                    continue
                parts = [f"L{level} R{entry['rounds']}"]
                for phrase_id in sorted(entry["attempts"], key=_phrase_suffix_number):
                    results = ",".join(str(r) for r in entry["attempts"][phrase_id])
                    parts.append(f"{phrase_id.rsplit('_', 1)[-1]}({results})")
                levels.append(" ".join(parts))
            if levels:
                displays.append(f"{text_id} {', '.join(levels)}")
        return "; ".join(displays)

    def debug_info(self) -> dict[str, Any]:
        return {
            "gamesPlayed": len(self.stats["gamesHistory"]),
            "currentGame": self.current_game,
            "lastStage": self.stats["lastStage"],
            "stageState": self.stats["stageState"],
            "textStatsDisplay": self.text_stats_display(),
        }

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self) -> bool:
        try:
            self.backend.write(self.key, dump_document(self.stats))
        except PersistenceError as e:
            logger.error(f"GameAnalytics: could not save {self.key}: {e}")
            return False
        logger.debug(f"GameAnalytics: saved {self.key}")
        return True


def _phrase_suffix_number(phrase_id: str) -> int:
    suffix = phrase_id.rsplit("_", 1)[-1]
    return int(suffix[1:]) if suffix[1:].isdigit() else 10**9
