"""Token-budget-aware chunk construction with sentence overlap."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

from .models import TranslationUnit
from .text_utils import (
    FULLWIDTH_TERMINATORS,
    estimate_tokens,
    head,
    split_into_paragraphs,
    split_into_sentences,
    tail,
)

logger = logging.getLogger(__name__)

SentenceSplitter = Callable[[str], List[str]]

DEFAULT_CONTEXT_CHARS = 200


@dataclass(frozen=True)
class SentenceUnit:
    """A sentence with its cached token estimate."""

    text: str
    tokens: int
    starts_paragraph: bool = False


def collect_units(text: str, splitter: SentenceSplitter = split_into_sentences) -> List[SentenceUnit]:
    """
    Split text into sentence units, remembering paragraph starts.

    Paragraph boundaries are kept so that chunks can be re-joined with
    blank lines instead of flattening the document.
    """
    units: List[SentenceUnit] = []
    for paragraph in split_into_paragraphs(text):
        for i, sentence in enumerate(splitter(paragraph)):
            if sentence:
                units.append(SentenceUnit(sentence, estimate_tokens(sentence), i == 0))

    if not units:
        units = [SentenceUnit(s, estimate_tokens(s), True) for s in splitter(text)]
    return units


def join_units(units: Sequence[SentenceUnit]) -> str:
    """Join sentence units back into text."""
    parts: List[str] = []
    for pos, unit in enumerate(units):
        if pos > 0:
            if unit.starts_paragraph:
                parts.append("\n\n")
            elif not parts[-1].endswith(tuple(FULLWIDTH_TERMINATORS)):
                parts.append(" ")
        parts.append(unit.text)
    return "".join(parts)


def get_overlap_units(units: Sequence[SentenceUnit], overlap_tokens: int) -> List[SentenceUnit]:
    """
    Take trailing units whose summed estimate fits within ``overlap_tokens``.

    Walks backward from the last unit and stops at the first unit that
    would exceed the budget.
    """
    overlap: List[SentenceUnit] = []
    tokens = 0

    for unit in reversed(units):
        if tokens + unit.tokens > overlap_tokens:
            break
        overlap.insert(0, unit)
        tokens += unit.tokens

    return overlap


def build_chunks(
    text: str,
    max_tokens_per_chunk: int = 1000,
    overlap_tokens: int = 100,
    splitter: SentenceSplitter = split_into_sentences,
) -> List[str]:
    """
    Build chunks of source text that respect a token budget.

    A unit that alone exceeds ``max_tokens_per_chunk`` is still added whole;
    content is never dropped or split mid-sentence.

    Args:
        text: Source text
        max_tokens_per_chunk: Estimated token budget per chunk
        overlap_tokens: Budget for sentences repeated from the previous chunk
        splitter: Sentence splitter used for each paragraph

    Returns:
        Ordered chunk texts, at least one
    """
    if max_tokens_per_chunk <= 0:
        raise ValueError(f"max_tokens_per_chunk must be positive, got {max_tokens_per_chunk}")
    if overlap_tokens < 0:
        raise ValueError(f"overlap_tokens must be >= 0, got {overlap_tokens}")

    chunks: List[str] = []
    current: List[SentenceUnit] = []
    current_tokens = 0

    for unit in collect_units(text, splitter):
        if current and current_tokens + unit.tokens > max_tokens_per_chunk:
            chunks.append(join_units(current).strip())

            # 新块以上一块末尾的若干句作为重叠
            current = get_overlap_units(current, overlap_tokens) + [unit]
            current_tokens = sum(u.tokens for u in current)
        else:
            current.append(unit)
            current_tokens += unit.tokens

        if unit.tokens > max_tokens_per_chunk:
            logger.debug(
                f"Sentence of ~{unit.tokens} tokens exceeds chunk budget "
                f"({max_tokens_per_chunk}), keeping it whole"
            )

    if current:
        last = join_units(current).strip()
        if last:
            chunks.append(last)

    if not chunks:
        return [text]

    logger.debug(f"Built {len(chunks)} chunks (budget={max_tokens_per_chunk}, overlap={overlap_tokens})")
    return chunks


def build_translation_units(
    chunks: Sequence[str],
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> List[TranslationUnit]:
    """
    Wrap chunk texts with neighbor context taken from the source chunks.

    Context always comes from the original source, never from translations.
    A single chunk gets no context at all.
    """
    total = len(chunks)
    units: List[TranslationUnit] = []

    for k, chunk in enumerate(chunks):
        prev_ctx = tail(chunks[k - 1], context_chars) if k > 0 else None
        next_ctx = head(chunks[k + 1], context_chars) if k < total - 1 else None
        units.append(TranslationUnit(
            index=k,
            source_text=chunk,
            estimated_tokens=estimate_tokens(chunk),
            preceding_context=prev_ctx or None,
            following_context=next_ctx or None,
        ))

    return units
