"""Tests for document and file batches."""

from pathlib import Path

import pytest

from doc_translator.batch import (
    compute_output_path,
    find_common_base,
    translate_documents,
    translate_files,
)
from doc_translator.config import TranslatorConfig
from doc_translator.engine import ChunkedTranslationEngine
from doc_translator.models import Document, ItemStatus, Stage

from conftest import FakeProvider, RecordingSink


def _docs(n, fail_index=None):
    return [
        Document(id=f"doc-{i}", text=("FAIL here." if i == fail_index else f"Document {i} text."))
        for i in range(n)
    ]


def _failing_engine(seed=0):
    provider = FakeProvider(fail_on=lambda s: "FAIL" in s, seed=seed)
    return ChunkedTranslationEngine(provider), provider


class TestTranslateDocuments:

    @pytest.mark.asyncio
    async def test_middle_document_fails(self):
        engine, _ = _failing_engine()
        report = await translate_documents(engine, _docs(3, fail_index=1), parallel_docs=2)

        assert report.statuses() == [ItemStatus.COMPLETED, ItemStatus.ERROR, ItemStatus.COMPLETED]
        assert report.outcomes[0].payload == FakeProvider.translate("Document 0 text.")
        assert report.outcomes[2].payload == FakeProvider.translate("Document 2 text.")
        assert report.outcomes[1].error == "boom"
        assert report.outcomes[1].payload is None
        assert report.completed == 2
        assert report.failed == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fail_index", [0, 1, 2, 3])
    @pytest.mark.parametrize("parallel_docs", [1, 2, 3, 4])
    async def test_failure_is_isolated(self, fail_index, parallel_docs):
        engine, _ = _failing_engine(seed=fail_index)
        report = await translate_documents(engine, _docs(4, fail_index), parallel_docs=parallel_docs)

        assert len(report) == 4
        for i, outcome in enumerate(report):
            expected = ItemStatus.ERROR if i == fail_index else ItemStatus.COMPLETED
            assert outcome.status is expected
            assert outcome.item_id == f"doc-{i}"

    @pytest.mark.asyncio
    async def test_progress_carries_document_identity(self, provider):
        engine = ChunkedTranslationEngine(provider)
        sink = RecordingSink()
        await translate_documents(engine, _docs(3), parallel_docs=2, progress=sink)

        batch_events = [e for e in sink.events if e.document_id is None]
        assert [e.current_document for e in batch_events] == [1, 3]
        assert all(e.total_documents == 3 for e in sink.events)

        for i in range(3):
            doc_events = [e for e in sink.events if e.document_id == f"doc-{i}"]
            assert doc_events[0].stage is Stage.SPLITTING
            assert doc_events[-1].stage is Stage.MERGING
            assert all(e.current_document == i + 1 for e in doc_events)

    @pytest.mark.asyncio
    async def test_empty_batch(self, provider):
        report = await translate_documents(ChunkedTranslationEngine(provider), [])
        assert len(report) == 0
        assert report.completed == report.failed == 0

    @pytest.mark.asyncio
    async def test_default_parallelism_from_config(self, provider):
        engine = ChunkedTranslationEngine(provider, TranslatorConfig(parallel_docs=1))
        await translate_documents(engine, _docs(3))
        assert provider.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_invalid_parallelism(self, provider):
        engine = ChunkedTranslationEngine(provider)
        with pytest.raises(ValueError):
            await translate_documents(engine, _docs(2), parallel_docs=-1)

    @pytest.mark.asyncio
    async def test_outcome_dicts(self):
        engine, _ = _failing_engine()
        report = await translate_documents(engine, _docs(2, fail_index=1))

        assert report.outcomes[0].to_dict() == {
            "itemId": "doc-0",
            "status": "completed",
            "payload": FakeProvider.translate("Document 0 text."),
        }
        assert report.outcomes[1].to_dict() == {"itemId": "doc-1", "status": "error", "error": "boom"}


class TestCommonBase:

    def test_nested(self, tmp_path):
        paths = [tmp_path / "x" / "a.md", tmp_path / "x" / "y" / "b.md"]
        assert find_common_base(paths) == (tmp_path / "x").resolve()

    def test_single_file(self, tmp_path):
        assert find_common_base([tmp_path / "a.md"]) == tmp_path.resolve()

    def test_sibling_dirs_with_shared_prefix(self, tmp_path):
        paths = [tmp_path / "abc" / "a.md", tmp_path / "abd" / "b.md"]
        assert find_common_base(paths) == tmp_path.resolve()

    def test_empty(self):
        with pytest.raises(ValueError):
            find_common_base([])


class TestOutputPath:

    def test_preserves_structure(self, tmp_path):
        base = tmp_path.resolve()
        out = compute_output_path(base / "guide" / "intro.md", base, "out", "French")
        assert out == Path("out") / "guide" / "intro_French.md"

    def test_language_tag_sanitized(self, tmp_path):
        base = tmp_path.resolve()
        out = compute_output_path(base / "a.txt", base, "out", "Simplified Chinese")
        assert out == Path("out") / "a_Simplified_Chinese.txt"


class TestTranslateFiles:

    def _write(self, path, text):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    @pytest.mark.asyncio
    async def test_writes_translations(self, tmp_path, provider):
        a = self._write(tmp_path / "docs" / "a.md", "First file.")
        b = self._write(tmp_path / "docs" / "sub" / "b.md", "Second file.")
        out_dir = tmp_path / "out"

        engine = ChunkedTranslationEngine(provider)
        report = await translate_files(engine, [a, b], out_dir, target_language="French")

        assert report.completed == 2
        out_a = out_dir / "a_French.md"
        out_b = out_dir / "sub" / "b_French.md"
        assert out_a.read_text(encoding="utf-8") == FakeProvider.translate("First file.")
        assert out_b.read_text(encoding="utf-8") == FakeProvider.translate("Second file.")
        assert report.outcomes[1].output_path == out_b

    @pytest.mark.asyncio
    async def test_bom_is_stripped(self, tmp_path, provider):
        a = tmp_path / "bom.txt"
        a.write_bytes("\ufeffWith BOM.".encode("utf-8"))

        await translate_files(ChunkedTranslationEngine(provider), [a], tmp_path / "out", target_language="de")
        assert provider.requests[0].source_text == "With BOM."

    @pytest.mark.asyncio
    async def test_missing_and_failing_files_are_isolated(self, tmp_path):
        good = self._write(tmp_path / "in" / "good.txt", "Good text.")
        bad = self._write(tmp_path / "in" / "bad.txt", "FAIL here.")
        missing = tmp_path / "in" / "missing.txt"

        engine, _ = _failing_engine()
        report = await translate_files(
            engine, [good, missing, bad], tmp_path / "out", target_language="fr", parallel_files=2,
        )

        assert report.statuses() == [ItemStatus.COMPLETED, ItemStatus.ERROR, ItemStatus.ERROR]
        assert report.outcomes[0].item_id == str(good)
        assert (tmp_path / "out" / "good_fr.txt").exists()
        assert not (tmp_path / "out" / "bad_fr.txt").exists()
        assert report.outcomes[2].error == "boom"

    @pytest.mark.asyncio
    async def test_write_failure_is_isolated(self, tmp_path, provider):
        a = self._write(tmp_path / "in" / "a.txt", "A text.")
        b = self._write(tmp_path / "in" / "b.txt", "B text.")
        out_dir = tmp_path / "out"
        out_dir.mkdir()
        # 目标路径被目录占用，写入会失败
        (out_dir / "a_fr.txt").mkdir()

        report = await translate_files(ChunkedTranslationEngine(provider), [a, b], out_dir, target_language="fr")

        assert report.statuses() == [ItemStatus.ERROR, ItemStatus.COMPLETED]

    @pytest.mark.asyncio
    async def test_no_files(self, tmp_path, provider):
        report = await translate_files(ChunkedTranslationEngine(provider), [], tmp_path)
        assert len(report) == 0
