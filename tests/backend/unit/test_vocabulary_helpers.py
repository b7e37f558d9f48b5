"""
Unit tests for the pure parts of services.vocabulary and services.elementary_words.
"""
from types import SimpleNamespace

from voicebridge.services.elementary_words import is_elementary
from voicebridge.services.vocabulary import (
    MAX_TEXT_CHARS,
    build_analysis_text,
    english_side,
    ranked_items,
)


def _turn(source_lang, target_lang, source_text, translated_text):
    return SimpleNamespace(
        source_lang=source_lang,
        target_lang=target_lang,
        source_text=source_text,
        translated_text=translated_text,
    )


class TestElementaryWords:
    def test_basic_words_are_filtered(self):
        assert is_elementary("Have")
        assert is_elementary(" went ")
        assert is_elementary("kitchen")
        assert is_elementary("baby")
        assert is_elementary("Babies")

    def test_useful_words_survive(self):
        for word in ("flight", "miss", "cry", "sleep", "signature"):
            assert not is_elementary(word)


class TestEnglishSide:
    def test_initiator_turn_uses_translation(self):
        turn = _turn("zh-CN", "en-US", "你吃饭了吗", "Did you eat?")
        assert english_side(turn) == "Did you eat?"

    def test_reply_turn_uses_source(self):
        turn = _turn("en-US", "zh-CN", "Not yet, thanks", "还没有，谢谢")
        assert english_side(turn) == "Not yet, thanks"

    def test_analysis_text_is_truncated(self):
        turns = [_turn("en-US", "zh-CN", "word " * 2000, "字")] * 2
        text = build_analysis_text(turns)
        assert len(text) == MAX_TEXT_CHARS + 3
        assert text.endswith("...")


class TestRankedItems:
    def test_filters_and_caps(self):
        raw = [
            {"word": "have", "count": 9},
            {"word": "flight", "count": 2},
            {"word": "  ", "count": 1},
            {"word": "airport", "count": "x"},
            "not-a-dict",
            {"word": "passport", "count": 1},
        ]
        assert ranked_items(raw, "word", 2, drop_elementary=True) == [("flight", 2), ("airport", 1)]

    def test_phrases_keep_elementary_words(self):
        raw = [{"phrase": "good morning", "count": 3}]
        assert ranked_items(raw, "phrase", 3, drop_elementary=False) == [("good morning", 3)]

    def test_non_list_input(self):
        assert ranked_items(None, "word", 5, drop_elementary=True) == []

    def test_missed_flight_transcript_drops_baby(self):
        nouns = [{"word": "flight", "count": 1}, {"word": "baby", "count": 1}, {"word": "night", "count": 1}]
        verbs = [{"word": "miss", "count": 1}, {"word": "cry", "count": 1}]

        kept_nouns = [w for w, _ in ranked_items(nouns, "word", 5, drop_elementary=True)]
        kept_verbs = [w for w, _ in ranked_items(verbs, "word", 5, drop_elementary=True)]

        assert "baby" not in kept_nouns
        assert "flight" in kept_nouns
        assert kept_verbs == ["miss", "cry"]
