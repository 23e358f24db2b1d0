"""
Unit tests for corpus loading and the phrase-data request/response pair.
"""

import json

import pytest

from src.drill.corpus import CorpusProvider, PhraseData, text_id_for_phrase, text_number
from src.drill.errors import CorpusError
from src.drill.events import Topic


class TestHelpers:
    def test_text_id_for_phrase(self):
        assert text_id_for_phrase("text_12_p3") == "text_12"

    def test_text_number(self):
        assert text_number("text_7") == 7
        assert text_number("intro") > 10_000


class TestCorpusProvider:
    def test_load_data_emits_ready_with_metadata(self, channel, recorder, sample_corpus):
        provider = CorpusProvider(channel)
        provider.load_data(sample_corpus)

        assert provider.loaded
        assert provider.corpus_id == "test_corpus"
        assert recorder.payloads(Topic.CORPUS_READY) == [{"gameId": "test_corpus", "title": "Test corpus"}]

    def test_structure_queries(self, channel, sample_corpus):
        provider = CorpusProvider(channel)
        provider.load_data(sample_corpus)

        assert provider.text_ids() == ["text_1", "text_2", "text_3"]
        assert provider.phrase_counts() == [4, 5, 3]
        assert provider.phrase_ids_for_text("text_3") == ["text_3_p1", "text_3_p2", "text_3_p3"]
        assert provider.phrase_ids_for_text("text_9") == []
        assert list(provider.text_phrase_ids()) == ["text_1", "text_2", "text_3"]

    def test_texts_sorted_numerically(self, channel, corpus_factory):
        raw = corpus_factory([1] * 11)
        raw["texts"].reverse()
        provider = CorpusProvider(channel)
        provider.load_data(raw)

        assert provider.text_ids()[:3] == ["text_1", "text_2", "text_3"]
        assert provider.text_ids()[-1] == "text_11"

    def test_phrase_without_solution_is_skipped(self, channel, sample_corpus):
        sample_corpus["solutions"] = [s for s in sample_corpus["solutions"] if s["phraseId"] != "text_1_p2"]
        provider = CorpusProvider(channel)
        provider.load_data(sample_corpus)

        assert provider.phrase_ids_for_text("text_1") == ["text_1_p1", "text_1_p3", "text_1_p4"]

    def test_get_phrase(self, channel, sample_corpus):
        provider = CorpusProvider(channel)
        provider.load_data(sample_corpus)

        phrase = provider.get_phrase("text_2_p5")
        assert phrase.phrase_target == "target 2.5"
        assert phrase.primary_translation == "primary 2.5"
        assert phrase.distractors == ("wrong 2.5.1", "wrong 2.5.2", "wrong 2.5.3")
        assert phrase.semantic_units[0].unit_target == "unit 2.5.1"
        assert phrase.text_id == "text_2"

        with pytest.raises(CorpusError):
            provider.get_phrase("text_2_p9")

    def test_phrase_request_answered(self, channel, recorder, sample_corpus):
        provider = CorpusProvider(channel)
        provider.load_data(sample_corpus)

        channel.emit(Topic.REQUEST_PHRASE_DATA, "text_1_p1")

        [phrase] = recorder.payloads(Topic.PHRASE_DATA_READY)
        assert isinstance(phrase, PhraseData)
        assert phrase.phrase_id == "text_1_p1"

    def test_unknown_or_early_requests_are_ignored(self, channel, recorder, sample_corpus):
        provider = CorpusProvider(channel)
        channel.emit(Topic.REQUEST_PHRASE_DATA, "text_1_p1")

        provider.load_data(sample_corpus)
        channel.emit(Topic.REQUEST_PHRASE_DATA, "text_8_p1")

        assert recorder.count(Topic.PHRASE_DATA_READY) == 0

    def test_load_from_file(self, channel, tmp_path, sample_corpus):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps(sample_corpus), encoding="utf-8")

        provider = CorpusProvider(channel, path)
        provider.load()

        assert provider.phrase_counts() == [4, 5, 3]

    def test_missing_file(self, channel, tmp_path):
        with pytest.raises(CorpusError):
            CorpusProvider(channel).load(tmp_path / "missing.json")

    def test_invalid_json(self, channel, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CorpusError):
            CorpusProvider(channel).load(path)

    def test_malformed_document(self, channel):
        with pytest.raises(CorpusError):
            CorpusProvider(channel).load_data({"texts": [{"title": "no id"}], "phrases": []})

    def test_shipped_corpus_loads(self, channel, project_root):
        provider = CorpusProvider(channel)
        provider.load(project_root / "data" / "corpus" / "fr_en_001.json")

        assert provider.corpus_id == "fr_en_001"
        assert provider.phrase_counts() == [4, 5, 3, 4, 6, 2]
