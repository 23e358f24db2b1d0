"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.drill.events import EventChannel, Topic  # noqa: E402
from src.drill.progress_store import JsonFileBackend, MemoryBackend  # noqa: E402
from src.drill.scheduling import TaskScheduler  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


def build_corpus(counts, units_per_phrase=2, distractors=3, game_id="test_corpus"):
    """
    Corpus document with len(counts) texts; text n holds counts[n-1] phrases.

    Phrase text_n_pm has target "target n.m", primary "primary n.m" and
    distractors "wrong n.m.k".
    """
    texts, phrases, solutions = [], [], []
    for n, count in enumerate(counts, start=1):
        texts.append({"textId": f"text_{n}", "title": f"Text {n}"})
        for m in range(1, count + 1):
            phrase_id = f"text_{n}_p{m}"
            phrases.append({
                "phraseId": phrase_id,
                "phraseTarget": f"target {n}.{m}",
                "semanticUnits": [
                    {"unitTarget": f"unit {n}.{m}.{u}", "translations": [f"meaning {n}.{m}.{u}"]}
                    for u in range(1, units_per_phrase + 1)
                ],
            })
            solutions.append({
                "phraseId": phrase_id,
                "primaryTranslation": f"primary {n}.{m}",
                "distractors": [f"wrong {n}.{m}.{k}" for k in range(1, distractors + 1)],
            })
    return {
        "projectMetadata": {"gameId": game_id, "title": "Test corpus"},
        "texts": texts,
        "phrases": phrases,
        "solutions": solutions,
    }


class EventRecorder:
    """Records every emission of the topics it listens to, in order."""

    def __init__(self, channel: EventChannel, topics=None):
        self.events = []
        for topic in topics or list(Topic):
            channel.subscribe(topic, lambda payload, t=topic: self.events.append((t, payload)))

    def topics(self):
        return [topic for topic, _ in self.events]

    def payloads(self, topic):
        return [payload for t, payload in self.events if t == topic]

    def count(self, topic):
        return len(self.payloads(topic))

    def clear(self):
        self.events = []


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def channel():
    return EventChannel()


@pytest.fixture
def scheduler():
    """Scheduler on a virtual clock (time only moves via advance())."""
    return TaskScheduler()


@pytest.fixture
def recorder(channel):
    return EventRecorder(channel)


@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def file_backend(tmp_path):
    return JsonFileBackend(tmp_path / "progress")


@pytest.fixture
def corpus_factory():
    return build_corpus


@pytest.fixture
def sample_corpus():
    """Three texts with 4, 5 and 3 phrases."""
    return build_corpus([4, 5, 3])
