"""
Mastery store: the learner's persisted progress document.

Owns, and persists as one JSON document per learner:
- phraseProgress: per-phrase mastery level and append-only attempt history
- batchStructure: the batch plan (generated once, then reused)
- batchCompletionState: per level, text id -> completed in this batch pass
- currentPosition: resume batch and level
- gamesPlayed / sessions: finished game sessions

Every mutating call ends by writing the whole document, reading it back and
comparing. A failed write is retried once; a second failure is reported by
returning False and the game carries on with in-memory state.

Mastery rule: a visit that skipped straight to the solution and answered
correctly with no wrong picks marks the phrase "mastered". Mastery is never
revoked.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Optional

from loguru import logger

from src.drill.corpus import text_id_for_phrase
from src.drill.errors import PersistenceError
from src.drill.events import EventChannel, Topic
from src.drill.models import MASTERED, AttemptRecord, Level, PhraseProgress, ResumePosition, SessionChallenge
from src.drill.progress_store import ProgressBackend, dump_document, load_document

SAVE_ATTEMPTS = 2


def default_document() -> dict[str, Any]:
    return {
        "batchStructure": None,
        "batchCompletionState": {"level1": {}, "level2": {}},
        "currentPosition": None,
        "phraseProgress": {},
        "gamesPlayed": 0,
        "sessions": [],
    }


class UserProgress:
    """Mastery store for one learner."""

    def __init__(self, channel: EventChannel, backend: ProgressBackend, learner_id: str = "local"):
        self.channel = channel
        self.backend = backend
        self.key = f"progress_{learner_id}"

        self.data: dict[str, Any] = default_document()
        self.ready = False
        self.current_session: Optional[dict[str, Any]] = None

        self._open_challenges: dict[str, SessionChallenge] = {}
        self._text_phrases: dict[str, list[str]] = {}

    # =========================================================================
    # Startup
    # =========================================================================

    def load(self) -> None:
        """Load the learner document (or start a fresh one) and announce readiness."""
        try:
            stored = load_document(self.backend.read(self.key))
        except PersistenceError as e:
            logger.error(f"UserProgress: could not read {self.key}, continuing without saved progress: {e}")
            stored = None

        document = default_document()
        if stored is not None:
            document.update({k: v for k, v in stored.items() if k in document})
            completion = document.get("batchCompletionState") or {}
            document["batchCompletionState"] = {
                "level1": dict(completion.get("level1") or {}),
                "level2": dict(completion.get("level2") or {}),
            }
            logger.info(f"UserProgress: loaded {self.key} ({len(document['phraseProgress'])} phrases tracked)")
        else:
            logger.info(f"UserProgress: no saved progress for {self.key}, starting fresh")

        self.data = document
        self.ready = True
        self.channel.emit(Topic.PROGRESS_READY, self.key)

    def bind_corpus(self, text_phrase_ids: dict[str, list[str]]) -> None:
        """
        Attach the corpus structure (ordered text id -> phrase ids).

        Creates missing phrase entries and drops a stored batch plan that no
        longer covers the corpus texts.
        """
        self._text_phrases = {text_id: list(ids) for text_id, ids in text_phrase_ids.items()}

        progress = self.data["phraseProgress"]
        for phrase_ids in self._text_phrases.values():
            for phrase_id in phrase_ids:
                progress.setdefault(phrase_id, PhraseProgress().to_dict())

        plan = self.data.get("batchStructure")
        if plan is not None:
            numbers = [n for batch in plan for n in batch]
            if numbers != list(range(1, len(self._text_phrases) + 1)):
                logger.warning(
                    f"UserProgress: stored batch plan covers {len(numbers)} texts, corpus has "
                    f"{len(self._text_phrases)}; discarding it"
                )
                self.data["batchStructure"] = None

    @property
    def is_bound(self) -> bool:
        return bool(self._text_phrases)

    def text_ids(self) -> list[str]:
        return list(self._text_phrases)

    def text_id_for_number(self, number: int) -> Optional[str]:
        ids = self.text_ids()
        return ids[number - 1] if 1 <= number <= len(ids) else None

    # =========================================================================
    # Batch plan & completion
    # =========================================================================

    def get_batch_structure(self) -> Optional[list[list[int]]]:
        plan = self.data.get("batchStructure")
        if plan is None:
            return None
        return [list(batch) for batch in plan]

    def set_batch_structure(self, batches: Sequence[Sequence[int]]) -> bool:
        """Persist a new plan with a fresh completion state; verify it reads back equal."""
        if not self.ready:
            logger.warning("UserProgress: set_batch_structure called before progress finished loading")
            return False
        if not self.is_bound:
            logger.warning("UserProgress: set_batch_structure called before a corpus was bound")
            return False

        plan = [list(batch) for batch in batches]
        self.data["batchStructure"] = plan
        self.data["batchCompletionState"] = self._fresh_completion_state()

        if not self._persist():
            return False

        try:
            stored = load_document(self.backend.read(self.key)) or {}
        except PersistenceError as e:
            logger.error(f"UserProgress: could not read back the batch plan for {self.key}: {e}")
            return False
        if stored.get("batchStructure") != plan:
            logger.error("UserProgress: batch plan read back differs from the plan that was saved")
            return False
        logger.info(f"UserProgress: saved batch plan with {len(plan)} batches")
        return True

    def clear_batch_structure(self) -> bool:
        self.data["batchStructure"] = None
        self.data["batchCompletionState"] = self._fresh_completion_state()
        return self._persist()

    def _fresh_completion_state(self) -> dict[str, dict[str, bool]]:
        return {level.completion_key: {tid: False for tid in self._text_phrases} for level in Level}

    def mark_text_complete(self, text_id: str, level: Level) -> bool:
        self.data["batchCompletionState"][level.completion_key][text_id] = True
        return self._persist()

    def is_text_complete(self, text_id: str, level: Level) -> bool:
        return bool(self.data["batchCompletionState"][level.completion_key].get(text_id, False))

    def is_batch_complete(self, batch: Sequence[int], level: Level) -> bool:
        """True when every text of the batch is complete at level."""
        text_ids = [self.text_id_for_number(n) for n in batch]
        return all(tid is not None and self.is_text_complete(tid, level) for tid in text_ids)

    # =========================================================================
    # Resume position
    # =========================================================================

    @property
    def has_resume_position(self) -> bool:
        """True once a position has been stored for this learner."""
        return bool(self.data.get("currentPosition"))

    def get_resume_position(self) -> ResumePosition:
        position = self.data.get("currentPosition")
        if not position:
            count = len(self._text_phrases) or 2
            return ResumePosition(batch=list(range(1, min(2, count) + 1)), level=Level.LEVEL_1)
        try:
            level = Level(position.get("level", Level.LEVEL_1.value))
        except ValueError:
            logger.warning(f"UserProgress: unknown stored level {position.get('level')!r}, using LEVEL_1")
            level = Level.LEVEL_1
        return ResumePosition(batch=[int(n) for n in position.get("batch", [1, 2])], level=level)

    def update_current_position(self, batch: Sequence[int], level: Level) -> bool:
        self.data["currentPosition"] = {
            "batch": list(batch),
            "level": level.value,
            "lastUpdated": datetime.now(UTC).isoformat(),
        }
        logger.debug(f"UserProgress: position -> batch {list(batch)} at {level.value}")
        return self._persist()

    # =========================================================================
    # Sessions & attempts
    # =========================================================================

    def start_session(self) -> dict[str, Any]:
        """Open a new in-memory game session."""
        previous = [s.get("sessionId", 0) for s in self.data["sessions"]]
        self.current_session = {
            "sessionId": (max(previous) + 1) if previous else 1,
            "timestamp": datetime.now(UTC).isoformat(),
            "challenges": {},
        }
        self._open_challenges = {}
        logger.debug(f"UserProgress: started session {self.current_session['sessionId']}")
        return self.current_session

    def end_session(self) -> bool:
        """Archive the current session and persist the document."""
        if self.current_session is not None:
            self.data["sessions"].append(self.current_session)
            self.data["gamesPlayed"] = int(self.data.get("gamesPlayed", 0)) + 1
            logger.info(f"UserProgress: session {self.current_session['sessionId']} archived")
            self.current_session = None
        self._open_challenges = {}
        return self._persist()

    def record_attempt_outcome(
        self,
        phrase_id: str,
        skipped: bool = False,
        incorrect_count: int = 0,
        correct: bool = False,
        peeked_unit: Optional[int] = None,
    ) -> SessionChallenge:
        """Accumulate an outcome into the phrase's scratch record (not persisted yet)."""
        if self.current_session is None:
            logger.warning("UserProgress: no active session while recording an outcome, opening one")
            self.start_session()

        challenge = self._open_challenges.setdefault(phrase_id, SessionChallenge())
        challenge.skipped = challenge.skipped or skipped
        challenge.correct = challenge.correct or correct
        challenge.incorrect_count += max(0, incorrect_count)
        if peeked_unit is not None and peeked_unit not in challenge.peeked_units:
            challenge.peeked_units.append(peeked_unit)

        self.current_session["challenges"][phrase_id] = challenge.to_dict()
        return challenge

    def evaluate_mastery(self, phrase_id: str, played_level: Optional[Level] = None) -> bool:
        """
        Flush the phrase's scratch record into its history and apply the mastery rule.

        Returns:
            True if the updated document was persisted
        """
        challenge = self._open_challenges.pop(phrase_id, None)
        if challenge is None:
            logger.debug(f"UserProgress: no outcomes recorded for {phrase_id}, flushing an empty attempt")
            challenge = SessionChallenge()

        progress = self._phrase(phrase_id)
        progress.attempts.append(AttemptRecord.from_challenge(challenge))

        newly_mastered = False
        if not progress.mastered and challenge.skipped and challenge.correct and challenge.incorrect_count == 0:
            progress.level = MASTERED
            newly_mastered = True
            logger.info(f"UserProgress: {phrase_id} mastered")

        self.data["phraseProgress"][phrase_id] = progress.to_dict()

        self.channel.emit(
            Topic.ATTEMPT_RECORDED,
            {
                "phraseId": phrase_id,
                "playedLevel": played_level.number if played_level else None,
                "resultingLevel": progress.level,
            },
        )

        if newly_mastered:
            text_id = text_id_for_phrase(phrase_id)
            if self.is_text_mastered(text_id):
                logger.info(f"UserProgress: every phrase of {text_id} is mastered")
                self.channel.emit(Topic.TEXT_MASTERED, text_id)

        return self._persist()

    def is_phrase_mastered(self, phrase_id: str) -> bool:
        entry = self.data["phraseProgress"].get(phrase_id)
        return bool(entry) and entry.get("level") == MASTERED

    def is_text_mastered(self, text_id: str) -> bool:
        phrase_ids = self._text_phrases.get(text_id)
        if not phrase_ids:
            phrase_ids = [p for p in self.data["phraseProgress"] if text_id_for_phrase(p) == text_id]
        return bool(phrase_ids) and all(self.is_phrase_mastered(p) for p in phrase_ids)

    def get_phrase_progress(self, phrase_id: str) -> PhraseProgress:
        return self._phrase(phrase_id)

    def _phrase(self, phrase_id: str) -> PhraseProgress:
        entry = self.data["phraseProgress"].get(phrase_id)
        return PhraseProgress.from_dict(entry) if entry else PhraseProgress()

    # =========================================================================
    # Maintenance
    # =========================================================================

    def reset_progress(self) -> bool:
        """Wipe all progress for this learner (explicit reset)."""
        logger.info(f"UserProgress: resetting {self.key}")
        self.data = default_document()
        self.current_session = None
        self._open_challenges = {}
        if self._text_phrases:
            self.bind_corpus(self._text_phrases)
        return self._persist()

    def summary(self) -> dict[str, Any]:
        progress = self.data["phraseProgress"]
        total = len(progress)
        mastered = sum(1 for entry in progress.values() if entry.get("level") == MASTERED)
        position = self.get_resume_position()
        return {
            "gamesPlayed": int(self.data.get("gamesPlayed", 0)),
            "totalPhrases": total,
            "masteredPhrases": mastered,
            "masteredPercentage": round(mastered / total * 100) if total else 0,
            "totalTexts": len(self._text_phrases),
            "currentBatch": position.batch,
            "currentLevel": position.level.value,
        }

    # =========================================================================
    # Persistence
    # =========================================================================

    def _persist(self) -> bool:
        """Write, read back and compare; one retry. False means not durable."""
        for attempt in range(1, SAVE_ATTEMPTS + 1):
            try:
                text = dump_document(self.data)
                self.backend.write(self.key, text)
                if load_document(self.backend.read(self.key)) == json.loads(text):
                    return True
                logger.warning(f"UserProgress: read-back mismatch for {self.key} (attempt {attempt})")
            except PersistenceError as e:
                logger.warning(f"UserProgress: save of {self.key} failed (attempt {attempt}): {e}")

        logger.error(f"UserProgress: progress for {self.key} is not durable after {SAVE_ATTEMPTS} attempts")
        return False
