"""
Doc Translator - Chunked, context-aware LLM document translator.

Features:
- Sentence-aware chunking under a token budget, with overlap
- Bounded parallel translation that preserves chunk order
- Neighbor context and glossary support for consistent terminology
- Batch translation of documents and files with per-item isolation
"""

__version__ = "2.0.0"

from .models import (
    TranslationUnit,
    ChunkRequest,
    ChunkResult,
    Usage,
    ProviderResponse,
    AggregateUsage,
    Stage,
    ProgressEvent,
    ChunkedTranslationResult,
    Document,
    ItemStatus,
    BatchItemOutcome,
    BatchReport,
)
from .exceptions import TranslatorError, ProviderError, ConfigurationError, APIErrorType
from .text_utils import estimate_tokens, split_into_sentences, split_into_paragraphs
from .chunker import build_chunks, build_translation_units
from .provider import TranslationProvider, OpenAIProvider
from .dispatcher import translate_all
from .merger import merge_chunks, smooth_transition
from .progress import ProgressChannel, DocumentProgress
from .engine import ChunkedTranslationEngine
from .batch import translate_documents, translate_files, find_common_base, compute_output_path
from .glossary import load_glossary, Glossary, find_matching_terms
from .config import TranslatorConfig

__all__ = [
    # Models
    "TranslationUnit",
    "ChunkRequest",
    "ChunkResult",
    "Usage",
    "ProviderResponse",
    "AggregateUsage",
    "Stage",
    "ProgressEvent",
    "ChunkedTranslationResult",
    "Document",
    "ItemStatus",
    "BatchItemOutcome",
    "BatchReport",
    "TranslatorConfig",
    "Glossary",
    # Errors
    "TranslatorError",
    "ProviderError",
    "ConfigurationError",
    "APIErrorType",
    # Text
    "estimate_tokens",
    "split_into_sentences",
    "split_into_paragraphs",
    # Chunking
    "build_chunks",
    "build_translation_units",
    # Translation
    "TranslationProvider",
    "OpenAIProvider",
    "translate_all",
    "ChunkedTranslationEngine",
    # Merging
    "merge_chunks",
    "smooth_transition",
    # Progress
    "ProgressChannel",
    "DocumentProgress",
    # Batch
    "translate_documents",
    "translate_files",
    "find_common_base",
    "compute_output_path",
    # Glossary
    "load_glossary",
    "find_matching_terms",
]
