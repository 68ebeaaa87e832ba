"""Progress reporting through a bounded event channel."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional, Protocol, Union

from .models import ProgressEvent, Stage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], Union[None, Awaitable[None]]]

DEFAULT_QUEUE_SIZE = 64

_CLOSE = object()


class ProgressSink(Protocol):
    async def emit(self, event: ProgressEvent) -> None:
        ...


class ProgressChannel:
    """
    Bounded queue of progress events drained by one observer task.

    Producers ``await emit(event)``; the observer callback (sync or async)
    sees events in the order they were emitted. Use as an async context
    manager so the queue is drained before the channel closes::

        async with ProgressChannel(print) as progress:
            await engine.translate_chunked(text, progress=progress)
    """

    def __init__(self, callback: ProgressCallback, maxsize: int = DEFAULT_QUEUE_SIZE):
        self._callback = callback
        self._maxsize = maxsize
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """Start the observer task on the running loop."""
        if self._task is not None:
            return
        self._queue = asyncio.Queue(maxsize=self._maxsize)
        self._task = asyncio.create_task(self._consume())

    async def emit(self, event: ProgressEvent) -> None:
        if self._queue is None:
            raise RuntimeError("ProgressChannel is not started")
        await self._queue.put(event)

    async def close(self) -> None:
        """Deliver every queued event, then stop the observer."""
        if self._task is None:
            return
        await self._queue.put(_CLOSE)
        await self._task
        self._task = None
        self._queue = None

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            if event is _CLOSE:
                break
            try:
                result = self._callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # 进度只是通知，观察者出错不影响翻译
                logger.warning(f"Progress callback failed: {e}")

    async def __aenter__(self) -> "ProgressChannel":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class DocumentProgress:
    """Re-emits a document's events with its identity and position attached."""

    def __init__(
        self,
        sink: ProgressSink,
        document_id: str,
        current_document: int,
        total_documents: int,
    ):
        self._sink = sink
        self.document_id = document_id
        self.current_document = current_document
        self.total_documents = total_documents

    async def emit(self, event: ProgressEvent) -> None:
        await self._sink.emit(replace(
            event,
            document_id=self.document_id,
            current_document=self.current_document,
            total_documents=self.total_documents,
        ))


async def report(
    sink: Optional[ProgressSink],
    stage: Stage,
    message: str,
    current_chunk: int = 0,
    total_chunks: int = 0,
    **extra,
) -> None:
    """Emit an event if a sink is attached."""
    if sink is None:
        return
    await sink.emit(ProgressEvent(
        stage=stage,
        message=message,
        current_chunk=current_chunk,
        total_chunks=total_chunks,
        **extra,
    ))
