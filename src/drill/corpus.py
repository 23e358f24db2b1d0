"""
Corpus provider.

Loads one lesson file (texts, phrases, solutions) and answers phrase-data
requests on the channel.

File format (camelCase keys, as authored):
    {
      "projectMetadata": {"gameId": "fr_en_001", "title": "..."},
      "texts":     [{"textId": "text_1", "title": "..."}],
      "phrases":   [{"phraseId": "text_1_p1", "phraseTarget": "...",
                     "semanticUnits": [{"unitTarget": "...", "translations": ["..."]}]}],
      "solutions": [{"phraseId": "text_1_p1", "primaryTranslation": "...",
                     "distractors": ["...", "..."]}]
    }
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.drill.errors import CorpusError
from src.drill.events import EventChannel, Topic

_TEXT_NUMBER = re.compile(r"_(\d+)$")


# =============================================================================
# File Schema
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SemanticUnitSchema(_CamelModel):
    unit_target: str = Field(..., alias="unitTarget")
    translations: list[str] = Field(default_factory=list)


class PhraseSchema(_CamelModel):
    phrase_id: str = Field(..., alias="phraseId")
    phrase_target: str = Field(..., alias="phraseTarget")
    semantic_units: list[SemanticUnitSchema] = Field(default_factory=list, alias="semanticUnits")


class SolutionSchema(_CamelModel):
    phrase_id: str = Field(..., alias="phraseId")
    primary_translation: str = Field(..., alias="primaryTranslation")
    alternatives: list[str] = Field(default_factory=list)
    distractors: list[str] = Field(default_factory=list)


class TextSchema(_CamelModel):
    text_id: str = Field(..., alias="textId")
    title: str = ""


class CorpusSchema(_CamelModel):
    project_metadata: dict[str, Any] = Field(default_factory=dict, alias="projectMetadata")
    texts: list[TextSchema]
    phrases: list[PhraseSchema]
    solutions: list[SolutionSchema] = Field(default_factory=list)


# =============================================================================
# Runtime Data
# =============================================================================


@dataclass(frozen=True)
class SemanticUnit:
    """Highlighted sub-span of a phrase with its translations."""

    unit_target: str
    translations: tuple[str, ...]


@dataclass(frozen=True)
class PhraseData:
    """Everything a challenge needs for one phrase."""

    phrase_id: str
    phrase_target: str
    semantic_units: tuple[SemanticUnit, ...]
    primary_translation: str
    distractors: tuple[str, ...]
    alternatives: tuple[str, ...] = ()

    @property
    def text_id(self) -> str:
        return text_id_for_phrase(self.phrase_id)


@dataclass(frozen=True)
class Text:
    """One corpus text and its ordered phrase ids."""

    text_id: str
    title: str
    phrase_ids: tuple[str, ...]


def text_id_for_phrase(phrase_id: str) -> str:
    """text_3_p2 -> text_3"""
    return phrase_id[: phrase_id.rfind("_")]


def text_number(text_id: str) -> int:
    """text_3 -> 3. Ids without a numeric suffix sort last."""
    match = _TEXT_NUMBER.search(text_id)
    return int(match.group(1)) if match else 10**9


class CorpusProvider:
    """
    Owns the loaded corpus.

    Emits CORPUS_READY (payload: project metadata) once loaded and responds to
    REQUEST_PHRASE_DATA with PHRASE_DATA_READY (payload: PhraseData).
    """

    def __init__(self, channel: EventChannel, path: Path | None = None):
        self.channel = channel
        self.path = path
        self.metadata: dict[str, Any] = {}
        self._texts: list[Text] = []
        self._phrases: dict[str, PhraseData] = {}

        channel.subscribe(Topic.REQUEST_PHRASE_DATA, self._on_phrase_request)

    @property
    def loaded(self) -> bool:
        return bool(self._texts)

    @property
    def corpus_id(self) -> str:
        return str(self.metadata.get("gameId", "corpus"))

    def load(self, path: Path | None = None) -> dict[str, Any]:
        """Read and validate the corpus file, then announce readiness."""
        target = Path(path or self.path or "")
        if not target.is_file():
            raise CorpusError(f"Corpus file not found: {target}")

        try:
            with open(target, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise CorpusError(f"Corpus file is not valid JSON: {target}: {e}") from e

        return self.load_data(raw)

    def load_data(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Validate an already-parsed corpus document and announce readiness."""
        try:
            schema = CorpusSchema.model_validate(raw)
        except ValidationError as e:
            raise CorpusError(f"Corpus document is malformed: {e}") from e

        if not schema.texts:
            raise CorpusError("Corpus has no texts")

        solutions = {s.phrase_id: s for s in schema.solutions}
        phrases: dict[str, PhraseData] = {}
        by_text: dict[str, list[str]] = {}

        for phrase in schema.phrases:
            solution = solutions.get(phrase.phrase_id)
            if solution is None:
                logger.warning(f"Corpus: no solution for {phrase.phrase_id}, skipping phrase")
                continue
            phrases[phrase.phrase_id] = PhraseData(
                phrase_id=phrase.phrase_id,
                phrase_target=phrase.phrase_target,
                semantic_units=tuple(
                    SemanticUnit(unit_target=u.unit_target, translations=tuple(u.translations))
                    for u in phrase.semantic_units
                ),
                primary_translation=solution.primary_translation,
                distractors=tuple(solution.distractors),
                alternatives=tuple(solution.alternatives),
            )
            by_text.setdefault(text_id_for_phrase(phrase.phrase_id), []).append(phrase.phrase_id)

        texts = []
        for text in sorted(schema.texts, key=lambda t: text_number(t.text_id)):
            phrase_ids = sorted(by_text.get(text.text_id, []), key=_phrase_number)
            if not phrase_ids:
                logger.warning(f"Corpus: text {text.text_id} has no playable phrases, skipping")
                continue
            texts.append(Text(text_id=text.text_id, title=text.title, phrase_ids=tuple(phrase_ids)))

        if not texts:
            raise CorpusError("Corpus has no playable texts")

        self._texts = texts
        self._phrases = phrases
        self.metadata = dict(schema.project_metadata)

        logger.info(f"Corpus: loaded {self.corpus_id} with {len(texts)} texts, {len(phrases)} phrases")
        self.channel.emit(Topic.CORPUS_READY, self.metadata)
        return self.metadata

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def texts(self) -> list[Text]:
        return list(self._texts)

    def text_ids(self) -> list[str]:
        return [t.text_id for t in self._texts]

    def phrase_ids_for_text(self, text_id: str) -> list[str]:
        for text in self._texts:
            if text.text_id == text_id:
                return list(text.phrase_ids)
        return []

    def text_phrase_ids(self) -> dict[str, list[str]]:
        """Ordered mapping of text id to its phrase ids."""
        return {t.text_id: list(t.phrase_ids) for t in self._texts}

    def phrase_counts(self) -> list[int]:
        """Phrase count per text, in corpus order."""
        return [len(t.phrase_ids) for t in self._texts]

    def get_phrase(self, phrase_id: str) -> PhraseData:
        try:
            return self._phrases[phrase_id]
        except KeyError:
            raise CorpusError(f"Unknown phrase: {phrase_id}") from None

    def _on_phrase_request(self, phrase_id: str) -> None:
        if not self.loaded:
            logger.warning(f"Corpus: phrase {phrase_id} requested before the corpus was loaded")
            return
        phrase = self._phrases.get(phrase_id)
        if phrase is None:
            logger.error(f"Corpus: phrase not found: {phrase_id}")
            return
        self.channel.emit(Topic.PHRASE_DATA_READY, phrase)


def _phrase_number(phrase_id: str) -> int:
    suffix = phrase_id[phrase_id.rfind("_") + 1 :]
    return int(suffix[1:]) if suffix[1:].isdigit() else 10**9
