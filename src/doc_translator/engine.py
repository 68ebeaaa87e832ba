"""Single-document chunked translation pipeline."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .chunker import build_chunks
from .config import TranslatorConfig
from .dispatcher import translate_all
from .merger import Smoother, merge_chunks, smooth_transition
from .models import AggregateUsage, ChunkedTranslationResult, Stage
from .progress import ProgressSink, report
from .provider import TranslationProvider
from .text_utils import detect_language, estimate_tokens

logger = logging.getLogger(__name__)


class ChunkedTranslationEngine:
    """
    Split -> chunk -> dispatch -> merge, for one document at a time.

    The engine holds an immutable config snapshot and is safe to share
    between concurrent documents.
    """

    def __init__(
        self,
        provider: TranslationProvider,
        config: Optional[TranslatorConfig] = None,
        glossary: Optional[Mapping[str, str]] = None,
        smoother: Smoother = smooth_transition,
    ):
        self.provider = provider
        self.config = (config or TranslatorConfig()).ensure_valid(require_api_key=False)
        self.glossary = dict(glossary) if glossary else {}
        self.smoother = smoother

    async def translate_chunked(
        self,
        text: str,
        target_language: Optional[str] = None,
        glossary: Optional[Mapping[str, str]] = None,
        source_language: Optional[str] = None,
        parallel_chunks: Optional[int] = None,
        progress: Optional[ProgressSink] = None,
    ) -> ChunkedTranslationResult:
        """
        Translate one document.

        Any provider error propagates: a document is either fully
        translated or not at all.

        Args:
            text: Source text
            target_language: Overrides the configured target language
            glossary: Overrides the engine glossary
            source_language: Optional source language hint, detected
                from the text for the result when not given
            parallel_chunks: Overrides the configured chunk parallelism
            progress: Optional progress sink

        Returns:
            ChunkedTranslationResult with merged text and usage totals
        """
        config = self.config
        target = target_language or config.target_language
        source = source_language or config.source_language
        terms = dict(glossary) if glossary is not None else self.glossary
        parallelism = parallel_chunks or config.parallel_chunks

        await report(progress, Stage.SPLITTING, "Splitting text into chunks...")

        chunks = build_chunks(text, config.max_tokens_per_chunk, config.chunk_overlap)
        total = len(chunks)
        total_tokens = estimate_tokens(text)
        logger.info(f"Split ~{total_tokens} tokens into {total} chunks")

        await report(
            progress,
            Stage.TRANSLATING,
            f"Translating {total} chunks...",
            current_chunk=0,
            total_chunks=total,
        )

        usage = AggregateUsage()
        results = await translate_all(
            chunks,
            self.provider,
            parallelism=parallelism,
            target_language=target,
            glossary=terms,
            source_language=source,
            progress=progress,
            usage=usage,
            context_chars=config.context_chars,
        )

        await report(
            progress,
            Stage.COMBINING,
            "Combining translated chunks...",
            current_chunk=total,
            total_chunks=total,
        )

        merged = merge_chunks(
            [r.translated_text for r in results],
            chunks,
            target,
            terms,
            smoother=self.smoother,
        )

        await report(
            progress,
            Stage.MERGING,
            "Translation complete",
            current_chunk=total,
            total_chunks=total,
        )

        if usage.calls:
            logger.info(
                f"Usage: {usage.prompt_tokens} prompt + {usage.completion_tokens} "
                f"completion = {usage.total_tokens} tokens"
            )

        return ChunkedTranslationResult(
            text=merged,
            chunks=total,
            total_tokens=total_tokens,
            usage=usage,
            source_language=source or detect_language(text),
        )
