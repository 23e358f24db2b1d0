"""
Progress document persistence for learners.

Documents are stored as JSON files in ~/.phrase_drill/progress/ by default,
one file per key: {key}.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Protocol

from src.drill.errors import PersistenceError

# Default progress directory
PROGRESS_DIR = Path.home() / ".phrase_drill" / "progress"


class ProgressBackend(Protocol):
    """Durable key -> text storage used by the mastery store and analytics."""

    def read(self, key: str) -> Optional[str]:
        """Return the stored text for key, or None if nothing is stored."""
        ...

    def write(self, key: str, text: str) -> None:
        """Overwrite the stored text for key. Raises PersistenceError on failure."""
        ...

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if something was removed."""
        ...


class JsonFileBackend:
    """
    Stores each document as {key}.json inside one directory.

    Writes go to a temporary sibling first and are moved into place, so a
    reader never sees a half-written document.
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = directory or PROGRESS_DIR
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        filepath = self._path(key)
        if not filepath.exists():
            return None
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise PersistenceError(f"Could not read {filepath}: {e}") from e

    def write(self, key: str, text: str) -> None:
        filepath = self._path(key)
        tmp = filepath.with_suffix(".json.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(text)
            tmp.replace(filepath)
        except OSError as e:
            raise PersistenceError(f"Could not write {filepath}: {e}") from e

    def delete(self, key: str) -> bool:
        filepath = self._path(key)
        if filepath.exists():
            filepath.unlink()
            return True
        return False

    def list_keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))


class MemoryBackend:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self) -> None:
        self.documents: dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self.documents.get(key)

    def write(self, key: str, text: str) -> None:
        self.documents[key] = text

    def delete(self, key: str) -> bool:
        return self.documents.pop(key, None) is not None


def dump_document(document: dict) -> str:
    """Serialize a progress document. Raises PersistenceError for unserializable data."""
    try:
        return json.dumps(document, indent=2, sort_keys=True)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Progress document is not serializable: {e}") from e


def load_document(text: Optional[str]) -> Optional[dict]:
    """Parse a stored document; None for missing or corrupted content."""
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
