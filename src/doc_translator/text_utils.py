"""Text processing utilities: token estimation and sentence splitting."""

from __future__ import annotations

import math
import re
from typing import List


# 中日韩字符：汉字、平假名、片假名、韩文音节
CJK_PATTERN = re.compile(r'[\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff\uac00-\ud7af]')
LATIN_WORD_PATTERN = re.compile(r'[A-Za-z]+')

CJK_WEIGHT = 1.0
WORD_WEIGHT = 0.75
OTHER_WEIGHT = 0.25

SENTENCE_TERMINATORS = ".!?。！？"
# 全角句末标点，拼接时不需要补空格
FULLWIDTH_TERMINATORS = "。！？"

PARAGRAPH_SPLIT_PATTERN = re.compile(r'\n{2,}')
# 非终止符序列 + 终止符序列；段落末尾无终止符的尾巴也算一个单元
SENTENCE_PATTERN = re.compile(
    r'[^.!?。！？]+[.!?。！？]*|[.!?。！？]+'
)


def estimate_tokens(text: str) -> int:
    """
    Approximate the token count of a text span.

    CJK characters count 1 token each, each run of Latin letters counts as
    one word (0.75 token), every other character counts 0.25 token.

    Args:
        text: Text to measure

    Returns:
        Non-negative integer estimate, 0 for empty text
    """
    if not text:
        return 0

    cjk_chars = len(CJK_PATTERN.findall(text))
    words = LATIN_WORD_PATTERN.findall(text)
    latin_chars = sum(len(w) for w in words)
    other_chars = len(text) - cjk_chars - latin_chars

    return math.ceil(
        cjk_chars * CJK_WEIGHT + len(words) * WORD_WEIGHT + other_chars * OTHER_WEIGHT
    )


def split_into_paragraphs(text: str) -> List[str]:
    """Split text on blank lines, dropping empty paragraphs."""
    if not text:
        return []
    return [p.strip() for p in PARAGRAPH_SPLIT_PATTERN.split(text) if p.strip()]


def split_paragraph(paragraph: str) -> List[str]:
    """Split one paragraph into trimmed sentence units."""
    units = [m.strip() for m in SENTENCE_PATTERN.findall(paragraph)]
    return [u for u in units if u]


def split_into_sentences(text: str) -> List[str]:
    """
    Split text into an ordered sequence of sentence-like units.

    Paragraphs are split on blank lines first, then each paragraph is split
    after runs of ``. ! ? 。 ！ ？``. A paragraph without terminators stays
    whole.

    Returns:
        Trimmed, non-empty units; ``[""]`` for empty input
    """
    if not text:
        return [""]

    sentences: List[str] = []
    for paragraph in split_into_paragraphs(text):
        sentences.extend(split_paragraph(paragraph))

    if not sentences:
        return [text.strip()]
    return sentences


def ends_with_terminator(text: str) -> bool:
    stripped = text.rstrip()
    return bool(stripped) and stripped[-1] in SENTENCE_TERMINATORS


def starts_with_terminator(text: str) -> bool:
    stripped = text.lstrip()
    return bool(stripped) and stripped[0] in SENTENCE_TERMINATORS


def tail(text: str, max_chars: int) -> str:
    """Return the last ``max_chars`` characters of text."""
    if max_chars <= 0:
        return ""
    return text[-max_chars:]


def head(text: str, max_chars: int) -> str:
    """Return the first ``max_chars`` characters of text."""
    if max_chars <= 0:
        return ""
    return text[:max_chars]


# 按优先级排列：汉字优先于假名，假名优先于韩文
_LANGUAGE_PATTERNS = (
    ("zh", re.compile(r'[\u4e00-\u9fa5]')),
    ("ja", re.compile(r'[\u3040-\u309f\u30a0-\u30ff]')),
    ("ko", re.compile(r'[\uac00-\ud7af]')),
    ("ru", re.compile(r'[\u0400-\u04ff]')),
    ("ar", re.compile(r'[\u0600-\u06ff]')),
)
DEFAULT_LANGUAGE = "en"


def detect_language(text: str) -> str:
    """
    Guess the language of a text from the scripts it contains.

    The first matching script wins, in the order zh, ja, ko, ru, ar, so
    Japanese text with kanji is reported as ``zh``. Anything else is ``en``.
    """
    for code, pattern in _LANGUAGE_PATTERNS:
        if pattern.search(text):
            return code
    return DEFAULT_LANGUAGE
