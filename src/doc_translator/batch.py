"""Batch translation of many documents or files with per-item isolation."""

from __future__ import annotations

import asyncio
import logging
import math
import os
import re
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from .engine import ChunkedTranslationEngine
from .models import BatchItemOutcome, BatchReport, Document, Stage
from .progress import DocumentProgress, ProgressSink, report

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _error_message(error: Exception) -> str:
    return str(error) or error.__class__.__name__


def _check_parallelism(name: str, value: int) -> None:
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")


async def _announce_batch(
    progress: Optional[ProgressSink],
    kind: str,
    start: int,
    size: int,
    total: int,
) -> None:
    batch_no = start // size + 1
    batch_count = math.ceil(total / size)
    await report(
        progress,
        Stage.TRANSLATING,
        f"Translating {kind} batch {batch_no}/{batch_count}...",
        current_document=start + 1,
        total_documents=total,
    )


async def _translate_document(
    engine: ChunkedTranslationEngine,
    document: Document,
    outcome: BatchItemOutcome,
    position: int,
    total: int,
    target_language: Optional[str],
    glossary: Optional[Mapping[str, str]],
    parallel_chunks: Optional[int],
    progress: Optional[ProgressSink],
) -> None:
    outcome.start()
    doc_progress = DocumentProgress(progress, document.id, position, total) if progress else None

    try:
        result = await engine.translate_chunked(
            document.text,
            target_language=target_language,
            glossary=glossary,
            source_language=document.source_language,
            parallel_chunks=parallel_chunks,
            progress=doc_progress,
        )
    except Exception as e:
        logger.error(f"Document {document.id} failed: {e}")
        outcome.fail(_error_message(e))
        return

    outcome.complete(result)
    logger.info(f"Document {document.id} translated ({result.chunks} chunks)")


async def translate_documents(
    engine: ChunkedTranslationEngine,
    documents: Sequence[Document],
    target_language: Optional[str] = None,
    glossary: Optional[Mapping[str, str]] = None,
    parallel_docs: Optional[int] = None,
    parallel_chunks: Optional[int] = None,
    progress: Optional[ProgressSink] = None,
) -> BatchReport:
    """
    Translate many documents, ``parallel_docs`` at a time.

    A failing document is recorded as ``error``; it never stops the other
    documents in its batch or in later batches.

    Returns:
        BatchReport with one outcome per document, in input order
    """
    size = parallel_docs or engine.config.parallel_docs
    _check_parallelism("parallel_docs", size)

    total = len(documents)
    outcomes = [BatchItemOutcome(item_id=doc.id) for doc in documents]

    for i in range(0, total, size):
        await _announce_batch(progress, "document", i, size, total)
        await asyncio.gather(*(
            _translate_document(
                engine, documents[k], outcomes[k], k + 1, total,
                target_language, glossary, parallel_chunks, progress,
            )
            for k in range(i, min(i + size, total))
        ))

    result = BatchReport(outcomes)
    logger.info(f"Documents done: {result.completed} completed, {result.failed} failed")
    return result


def find_common_base(paths: Sequence[PathLike]) -> Path:
    """
    Return the deepest directory containing every path.

    Args:
        paths: File paths (resolved to absolute paths)

    Raises:
        ValueError: If no paths are given
    """
    if not paths:
        raise ValueError("No paths given")

    parents = [str(Path(p).expanduser().resolve().parent) for p in paths]
    return Path(os.path.commonpath(parents))


def _language_tag(target_language: str) -> str:
    return re.sub(r'[^\w\-]+', '_', target_language).strip('_') or "translated"


def compute_output_path(
    path: PathLike,
    common_base: Path,
    output_dir: PathLike,
    target_language: str,
) -> Path:
    """
    Map an input file to its output location.

    The directory layout below ``common_base`` is preserved and the
    language is appended to the file stem, e.g.
    ``docs/guide/intro.md -> out/guide/intro_French.md``.
    """
    source = Path(path).expanduser().resolve()
    relative_dir = source.parent.relative_to(common_base)
    name = f"{source.stem}_{_language_tag(target_language)}{source.suffix}"
    return Path(output_dir) / relative_dir / name


async def _translate_file(
    engine: ChunkedTranslationEngine,
    path: Path,
    output_path: Path,
    outcome: BatchItemOutcome,
    position: int,
    total: int,
    target_language: Optional[str],
    glossary: Optional[Mapping[str, str]],
    parallel_chunks: Optional[int],
    progress: Optional[ProgressSink],
) -> None:
    outcome.start()
    file_progress = DocumentProgress(progress, outcome.item_id, position, total) if progress else None

    try:
        content = path.read_text(encoding="utf-8-sig")
        result = await engine.translate_chunked(
            content,
            target_language=target_language,
            glossary=glossary,
            parallel_chunks=parallel_chunks,
            progress=file_progress,
        )

        # 确保父目录存在
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.text, encoding="utf-8")
    except Exception as e:
        logger.error(f"File {path} failed: {e}")
        outcome.fail(_error_message(e))
        return

    outcome.complete(result, output_path=output_path)
    logger.info(f"Saved {output_path}")


async def translate_files(
    engine: ChunkedTranslationEngine,
    paths: Sequence[PathLike],
    output_dir: PathLike,
    target_language: Optional[str] = None,
    glossary: Optional[Mapping[str, str]] = None,
    parallel_files: Optional[int] = None,
    parallel_chunks: Optional[int] = None,
    progress: Optional[ProgressSink] = None,
) -> BatchReport:
    """
    Translate files to ``output_dir``, ``parallel_files`` at a time.

    Output paths keep the directory structure below the common base
    directory of all inputs. A read, translate or write failure marks only
    that file as ``error``.

    Returns:
        BatchReport with one outcome per file, in input order
    """
    size = parallel_files or engine.config.parallel_files
    _check_parallelism("parallel_files", size)

    total = len(paths)
    outcomes = [BatchItemOutcome(item_id=str(p)) for p in paths]
    if not paths:
        return BatchReport(outcomes)

    target = target_language or engine.config.target_language
    sources: List[Path] = [Path(p).expanduser().resolve() for p in paths]
    common_base = find_common_base(sources)
    output_paths = [compute_output_path(p, common_base, output_dir, target) for p in sources]
    logger.info(f"Translating {total} files under {common_base} -> {output_dir}")

    for i in range(0, total, size):
        await _announce_batch(progress, "file", i, size, total)
        await asyncio.gather(*(
            _translate_file(
                engine, sources[k], output_paths[k], outcomes[k], k + 1, total,
                target, glossary, parallel_chunks, progress,
            )
            for k in range(i, min(i + size, total))
        ))
        logger.info(f"Processed {min(i + size, total)}/{total} files")

    result = BatchReport(outcomes)
    logger.info(f"Files done: {result.completed} completed, {result.failed} failed")
    return result
