"""
In-process publish/subscribe channel.

Every component of the game talks through one EventChannel:
- delivery is synchronous, in registration order
- handlers see a snapshot of the subscriber list taken when the event is emitted
- a handler that emits runs that emission to completion before returning
- a raising handler is logged and the remaining handlers still run
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from loguru import logger

Handler = Callable[[Any], None]


class Topic(str, Enum):
    """Named topics carried by the channel."""

    # Corpus
    CORPUS_READY = "corpus:ready"
    REQUEST_PHRASE_DATA = "corpus:requestPhraseData"
    PHRASE_DATA_READY = "corpus:phraseDataReady"

    # Mastery store
    PROGRESS_READY = "progress:ready"
    TEXT_MASTERED = "progress:textMastered"
    ATTEMPT_RECORDED = "analytics:attemptRecorded"

    # Orchestrator / analytics
    STAGE_STARTED = "analytics:stageStarted"
    ROUND_COMPLETED = "analytics:roundCompleted"
    GAME_STARTED = "session:gameStarted"
    GAME_ENDED = "session:gameEnded"
    CONTENT_EXHAUSTED = "session:contentExhausted"
    TEXT_COVER_CONTINUE = "challenge:textCoverContinue"

    # Phases
    PHASE_COMPLETED = "phase:completed"
    WRONG_ANSWER = "challenge:wrongAnswer"
    UNIT_REVEALED = "retrieval:unitRevealed"

    # Input
    ENTER_PRESSED = "navigation:enterPressed"
    SPACE_PRESSED = "navigation:spacePressed"

    # Rendering
    LOAD_TEMPLATE = "ui:loadTemplate"
    SHOW_TEXT_COVER = "ui:showTextCover"
    HIGHLIGHT_TEXT = "ui:updateHighlightedText"
    SHOW_TRANSLATIONS = "ui:updateDisplayContainer"
    SHOW_CHOICES = "ui:updateDisplayChoice"
    SHOW_OVERLAY = "ui:showOverlay"

    # Countdown
    TIMER_START = "timer:start"
    TIMER_PAUSE = "timer:pause"
    TIMER_RESUME = "timer:resume"
    TIMER_RESET = "timer:reset"
    TIMER_STOP = "timer:stop"
    TIMER_PENALTY = "timer:penalty"
    TIMER_TICK = "timer:tick"
    TIMER_EXPIRED = "timer:expired"

    # Energy
    ENERGY_INITIALIZE = "energy:initialize"
    LIFE_LOST = "energy:loseLife"
    ENERGY_DISPLAY = "energy:updateDisplay"
    GAME_OVER = "energy:gameOver"


class EventChannel:
    """Named-topic publish/subscribe with isolated, synchronous dispatch."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, topic: Topic | str, handler: Handler) -> None:
        """Register a handler; the same handler may be registered once per topic."""
        handlers = self._handlers.setdefault(_key(topic), [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, topic: Topic | str, handler: Handler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        key = _key(topic)
        handlers = self._handlers.get(key)
        if not handlers:
            return
        self._handlers[key] = [h for h in handlers if h != handler]

    def emit(self, topic: Topic | str, payload: Any = None) -> None:
        """Deliver payload to every current subscriber of topic."""
        key = _key(topic)
        handlers = list(self._handlers.get(key, ()))
        if not handlers:
            logger.debug(f"EventChannel: no listeners for '{key}'")
            return

        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception(f"EventChannel: listener for '{key}' raised")

    def subscriber_count(self, topic: Topic | str) -> int:
        key = _key(topic)
        return len(self._handlers.get(key, ()))


def _key(topic: Topic | str) -> str:
    return topic.value if isinstance(topic, Topic) else topic
