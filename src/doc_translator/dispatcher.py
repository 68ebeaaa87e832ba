"""Batched, order-preserving dispatch of chunks to a translation provider."""

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence

from .chunker import DEFAULT_CONTEXT_CHARS, build_translation_units
from .models import (
    AggregateUsage,
    ChunkRequest,
    ChunkResult,
    Stage,
    TranslationUnit,
)
from .progress import ProgressSink, report
from .provider import TranslationProvider

logger = logging.getLogger(__name__)

DEFAULT_PARALLEL_CHUNKS = 3


def _make_request(
    unit: TranslationUnit,
    target_language: str,
    glossary: Mapping[str, str],
    source_language: Optional[str],
) -> ChunkRequest:
    return ChunkRequest(
        source_text=unit.source_text,
        target_language=target_language,
        glossary=glossary,
        preceding_context=unit.preceding_context,
        following_context=unit.following_context,
        source_language=source_language,
    )


async def _translate_unit(
    provider: TranslationProvider,
    unit: TranslationUnit,
    request: ChunkRequest,
) -> ChunkResult:
    response = await provider.translate_chunk(request)
    logger.debug(f"Chunk #{unit.index} translated")
    return ChunkResult(
        index=unit.index,
        translated_text=response.translated_text,
        usage=response.usage,
    )


async def _gather_batch(coros) -> List[ChunkResult]:
    """
    Run one batch concurrently and wait for all of it.

    If any chunk fails, the rest of the batch is cancelled and the first
    error propagates.
    """
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def translate_all(
    chunks: Sequence[str],
    provider: TranslationProvider,
    parallelism: int = DEFAULT_PARALLEL_CHUNKS,
    target_language: str = "Simplified Chinese",
    glossary: Optional[Mapping[str, str]] = None,
    source_language: Optional[str] = None,
    progress: Optional[ProgressSink] = None,
    usage: Optional[AggregateUsage] = None,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> List[ChunkResult]:
    """
    Translate every chunk, ``parallelism`` at a time.

    Chunks are processed in fixed batches; a batch must finish before the
    next one starts. Each request carries the tail of the previous source
    chunk and the head of the next one. Results come back in input order
    whatever order the provider answers in.

    Provider errors are not caught here: one failed chunk aborts the
    whole document.

    Args:
        chunks: Source chunk texts
        provider: Translation provider
        parallelism: Max concurrent provider calls
        target_language: Target language name
        glossary: Source term -> target term mapping
        source_language: Optional source language hint
        progress: Optional progress sink
        usage: Optional accumulator for provider token usage
        context_chars: Neighbor context length in characters

    Returns:
        One ChunkResult per chunk, ordered by chunk index
    """
    if parallelism < 1:
        raise ValueError(f"parallelism must be >= 1, got {parallelism}")

    total = len(chunks)
    if total == 0:
        return []

    # 每次调用使用独立的只读术语表副本
    terms = MappingProxyType(dict(glossary or {}))

    if total == 1:
        unit = TranslationUnit(index=0, source_text=chunks[0])
        result = await _translate_unit(
            provider, unit, _make_request(unit, target_language, terms, source_language)
        )
        if usage is not None:
            usage.add(result.usage)
        return [result]

    units = build_translation_units(chunks, context_chars)
    results: List[Optional[ChunkResult]] = [None] * total

    for i in range(0, total, parallelism):
        batch = units[i:i + parallelism]
        batch_results = await _gather_batch(
            _translate_unit(provider, unit, _make_request(unit, target_language, terms, source_language))
            for unit in batch
        )

        # join 之后再按下标写入，保证顺序
        for result in batch_results:
            results[result.index] = result
            if usage is not None:
                usage.add(result.usage)

        completed = min(i + parallelism, total)
        logger.info(f"Translated {completed}/{total} chunks")
        await report(
            progress,
            Stage.TRANSLATING,
            f"Translated {completed}/{total} chunks",
            current_chunk=completed,
            total_chunks=total,
        )

    return [r for r in results if r is not None]
