"""
Exception types for the drill engine.
"""

from __future__ import annotations


class DrillError(Exception):
    """Base class for drill engine errors."""


class CorpusError(DrillError):
    """Corpus file missing, malformed, or asked for an unknown phrase."""


class PersistenceError(DrillError):
    """A progress backend could not read or write a document."""
