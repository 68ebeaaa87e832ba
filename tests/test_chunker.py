"""Tests for chunk construction."""

import pytest

from doc_translator.chunker import (
    SentenceUnit,
    build_chunks,
    build_translation_units,
    collect_units,
    get_overlap_units,
    join_units,
)
from doc_translator.text_utils import estimate_tokens, split_into_sentences


SAMPLE_TEXT = (
    "Alpha beta. Gamma delta! Epsilon zeta?\n\n"
    "Second paragraph here. And some more words.\n\n"
    "第三段第一句。第三段第二句！\n\n"
    "A paragraph without a terminator"
)


def _resplit(chunks):
    return [u for c in chunks for u in split_into_sentences(c)]


class TestBuildChunks:

    def test_empty_text(self):
        assert build_chunks("", 100, 10) == [""]

    def test_short_text_single_chunk(self):
        assert build_chunks("这是一段短文本", 100) == ["这是一段短文本"]

    def test_long_text_is_split(self):
        # 每句 6 个汉字 + 句号 -> 7 tokens，预算 50 可以放 7 句
        text = "这是测试内容。" * 100
        chunks = build_chunks(text, 50, 0)
        assert len(chunks) == 15
        assert all(estimate_tokens(c) <= 50 for c in chunks)

    @pytest.mark.parametrize("budget", [1, 3, 5, 10, 40, 1000])
    def test_reconstruction_without_overlap(self, budget):
        chunks = build_chunks(SAMPLE_TEXT, budget, 0)
        assert _resplit(chunks) == split_into_sentences(SAMPLE_TEXT)

    @pytest.mark.parametrize("text", ["x", "Hello world", "你好。", SAMPLE_TEXT, "   "])
    def test_never_empty(self, text):
        assert len(build_chunks(text, 3, 1)) >= 1

    def test_oversized_sentence_kept_whole(self):
        long = "This " + "very " * 40 + "long sentence."
        text = f"Intro. {long} Outro."
        chunks = build_chunks(text, 10, 0)
        assert chunks == ["Intro.", long, "Outro."]

    def test_overlap_repeats_trailing_sentences(self):
        # 每句约 2 tokens
        chunks = build_chunks("One a. Two b. Three c. Four d.", 4, 2)
        assert chunks == ["One a. Two b.", "Two b. Three c.", "Three c. Four d."]

    def test_paragraphs_are_preserved(self):
        assert build_chunks("Para one.\n\nPara two.", 100) == ["Para one.\n\nPara two."]

    def test_cjk_sentences_joined_without_spaces(self):
        assert build_chunks("第一句。第二句。", 100) == ["第一句。第二句。"]

    def test_custom_splitter(self):
        text = "A. B.\n\nC. D."
        chunks = build_chunks(text, 2, 0, splitter=lambda p: [p])
        assert chunks == ["A. B.", "C. D."]

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            build_chunks("text", 0)
        with pytest.raises(ValueError):
            build_chunks("text", 10, -1)


class TestOverlap:

    def _units(self, *texts):
        return [SentenceUnit(t, estimate_tokens(t)) for t in texts]

    def test_zero_overlap(self):
        assert get_overlap_units(self._units("A.", "B."), 0) == []

    def test_walks_backward_until_budget(self):
        units = self._units("One a.", "Two b.", "Three c.")
        overlap = get_overlap_units(units, 4)
        assert [u.text for u in overlap] == ["Two b.", "Three c."]

    def test_large_last_unit_gives_no_overlap(self):
        units = self._units("Short.", "This is a much longer closing sentence.")
        assert get_overlap_units(units, 2) == []


class TestUnits:

    def test_collect_marks_paragraph_starts(self):
        units = collect_units("A. B.\n\nC.")
        assert [(u.text, u.starts_paragraph) for u in units] == [
            ("A.", True), ("B.", False), ("C.", True),
        ]

    def test_join_units(self):
        units = collect_units("A. B.\n\nC.")
        assert join_units(units) == "A. B.\n\nC."


class TestBuildTranslationUnits:

    def test_context_from_neighbors(self):
        chunks = ["a" * 300, "b" * 300, "c" * 10]
        units = build_translation_units(chunks, 200)

        assert [u.index for u in units] == [0, 1, 2]
        assert units[0].preceding_context is None
        assert units[0].following_context == "b" * 200
        assert units[1].preceding_context == "a" * 200
        assert units[1].following_context == "c" * 10
        assert units[2].following_context is None

    def test_single_chunk_has_no_context(self):
        (unit,) = build_translation_units(["only"])
        assert unit.preceding_context is None
        assert unit.following_context is None
        assert unit.estimated_tokens == estimate_tokens("only")
