"""Reassembly of translated chunks with boundary smoothing."""

from __future__ import annotations

import logging
from typing import Callable, List, Mapping, Optional, Sequence

from .text_utils import SENTENCE_TERMINATORS, ends_with_terminator, starts_with_terminator

logger = logging.getLogger(__name__)

CHUNK_SEPARATOR = "\n\n"

Smoother = Callable[[str, str, str, str, Optional[Mapping[str, str]]], str]


def smooth_transition(
    prev_translated: str,
    current_translated: str,
    current_original: str,
    target_language: str,
    glossary: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Normalize the join between two translated chunks.

    When the previous chunk already ends a sentence and the current one
    starts with a stray terminator, that leading punctuation is dropped.
    Any other chunk is returned unchanged.
    """
    if ends_with_terminator(prev_translated) and starts_with_terminator(current_translated):
        return current_translated.lstrip().lstrip(SENTENCE_TERMINATORS).lstrip()
    return current_translated


def merge_chunks(
    translated_chunks: Sequence[str],
    original_chunks: Sequence[str],
    target_language: str,
    glossary: Optional[Mapping[str, str]] = None,
    smoother: Smoother = smooth_transition,
) -> str:
    """
    Merge translated chunks into one text.

    注意：合并是本地操作，不会调用 provider。

    Args:
        translated_chunks: Translations in chunk order
        original_chunks: Source chunks in the same order
        target_language: Target language name
        glossary: Optional glossary passed to the smoother
        smoother: Boundary hook applied to every chunk after the first

    Returns:
        Chunks joined with blank lines
    """
    if len(translated_chunks) != len(original_chunks):
        raise ValueError(
            f"Chunk count mismatch: {len(translated_chunks)} translated "
            f"vs {len(original_chunks)} original"
        )

    if not translated_chunks:
        return ""

    if len(translated_chunks) == 1:
        return translated_chunks[0]

    merged: List[str] = [translated_chunks[0]]

    for i in range(1, len(translated_chunks)):
        smoothed = smoother(
            translated_chunks[i - 1],
            translated_chunks[i],
            original_chunks[i],
            target_language,
            glossary,
        )
        merged.append(smoothed)

    logger.debug(f"Merged {len(translated_chunks)} chunks")
    return CHUNK_SEPARATOR.join(merged)
