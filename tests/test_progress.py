"""Tests for progress channels."""

import asyncio

import pytest

from doc_translator.models import ProgressEvent, Stage
from doc_translator.progress import DocumentProgress, ProgressChannel, report

from conftest import RecordingSink


def _event(n):
    return ProgressEvent(Stage.TRANSLATING, f"step {n}", current_chunk=n, total_chunks=10)


class TestProgressChannel:

    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        seen = []
        async with ProgressChannel(seen.append, maxsize=2) as channel:
            for n in range(10):
                await channel.emit(_event(n))

        assert [e.current_chunk for e in seen] == list(range(10))

    @pytest.mark.asyncio
    async def test_async_callback(self):
        seen = []

        async def observer(event):
            await asyncio.sleep(0)
            seen.append(event.current_chunk)

        async with ProgressChannel(observer) as channel:
            await channel.emit(_event(1))
            await channel.emit(_event(2))

        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_observer_errors_do_not_stop_delivery(self):
        seen = []

        def observer(event):
            if event.current_chunk == 1:
                raise RuntimeError("display broke")
            seen.append(event.current_chunk)

        async with ProgressChannel(observer) as channel:
            for n in range(3):
                await channel.emit(_event(n))

        assert seen == [0, 2]

    @pytest.mark.asyncio
    async def test_emit_requires_start(self):
        channel = ProgressChannel(lambda e: None)
        with pytest.raises(RuntimeError):
            await channel.emit(_event(0))

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        channel = ProgressChannel(lambda e: None)
        channel.start()
        assert channel.running
        await channel.close()
        await channel.close()
        assert not channel.running


class TestDocumentProgress:

    @pytest.mark.asyncio
    async def test_attaches_identity(self):
        sink = RecordingSink()
        doc = DocumentProgress(sink, "doc-2", 2, 3)
        await doc.emit(_event(4))

        (event,) = sink.events
        assert event.document_id == "doc-2"
        assert event.current_document == 2
        assert event.total_documents == 3
        assert event.current_chunk == 4


class TestReport:

    @pytest.mark.asyncio
    async def test_no_sink_is_noop(self):
        await report(None, Stage.SPLITTING, "nothing")

    @pytest.mark.asyncio
    async def test_builds_event(self):
        sink = RecordingSink()
        await report(sink, Stage.COMBINING, "combining", 3, 3)
        assert sink.events == [ProgressEvent(Stage.COMBINING, "combining", 3, 3)]
