"""
Core progress models.

Design:
- Level: difficulty tier of a batch pass (revision-assisted / retrieval-tested)
- PhraseLevel values: 1, 2 or "mastered" (stored as-is in the progress document)
- AttemptRecord: one flushed phrase visit
- PhraseProgress: level plus append-only attempt history
- ResumePosition: where the learner picks up next time
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Union

MASTERED = "mastered"

PhraseLevel = Union[int, str]


class Level(str, Enum):
    """Difficulty tier applied to a whole batch pass."""

    LEVEL_1 = "LEVEL_1"  # Presentation -> Revision -> ReadyOrNot -> Solution
    LEVEL_2 = "LEVEL_2"  # Presentation -> Retrieval -> ReadyOrNot -> Solution

    @property
    def number(self) -> int:
        return 1 if self is Level.LEVEL_1 else 2

    @property
    def completion_key(self) -> str:
        """Key of this level's map inside batchCompletionState."""
        return f"level{self.number}"


@dataclass
class SessionChallenge:
    """Scratch record for one phrase visit, accumulated across its phases."""

    skipped: bool = False
    correct: bool = False
    incorrect_count: int = 0
    peeked_units: list[int] = field(default_factory=list)

    @property
    def peeked(self) -> bool:
        return bool(self.peeked_units)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skipped": self.skipped,
            "correct": self.correct,
            "incorrectCount": self.incorrect_count,
            "peekedUnits": list(self.peeked_units),
        }


@dataclass
class AttemptRecord:
    """One finished phrase visit as stored in the progress document."""

    timestamp: str
    skipped: bool
    incorrect_count: int
    peeked: bool
    peeked_units: list[int]
    correct_answer: bool

    @classmethod
    def from_challenge(cls, challenge: SessionChallenge, now: datetime | None = None) -> AttemptRecord:
        return cls(
            timestamp=(now or datetime.now(UTC)).isoformat(),
            skipped=challenge.skipped,
            incorrect_count=challenge.incorrect_count,
            peeked=challenge.peeked,
            peeked_units=sorted(set(challenge.peeked_units)),
            correct_answer=challenge.correct,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "skipped": self.skipped,
            "incorrectCount": self.incorrect_count,
            "peeked": self.peeked,
            "peekedUnits": list(self.peeked_units),
            "correctAnswer": self.correct_answer,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttemptRecord:
        return cls(
            timestamp=str(data.get("timestamp", "")),
            skipped=bool(data.get("skipped", False)),
            incorrect_count=int(data.get("incorrectCount", 0)),
            peeked=bool(data.get("peeked", False)),
            peeked_units=[int(u) for u in data.get("peekedUnits", [])],
            correct_answer=bool(data.get("correctAnswer", False)),
        )


@dataclass
class PhraseProgress:
    """Mastery level and attempt history for one phrase."""

    level: PhraseLevel = 1
    attempts: list[AttemptRecord] = field(default_factory=list)

    @property
    def mastered(self) -> bool:
        return self.level == MASTERED

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "attempts": [a.to_dict() for a in self.attempts]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhraseProgress:
        level = data.get("level", 1)
        if level != MASTERED:
            level = int(level)
        return cls(level=level, attempts=[AttemptRecord.from_dict(a) for a in data.get("attempts", [])])


@dataclass
class ResumePosition:
    """Batch (1-based text numbers) and level the learner resumes at."""

    batch: list[int]
    level: Level
