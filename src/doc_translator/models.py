"""Data models for chunks, results, progress and batch outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class TranslationUnit:
    """A chunk of source text plus the neighbor context sent with it."""

    index: int
    source_text: str
    estimated_tokens: int = 0
    preceding_context: Optional[str] = None
    following_context: Optional[str] = None


@dataclass(frozen=True)
class ChunkRequest:
    """Everything a provider needs to translate one chunk."""

    source_text: str
    target_language: str
    glossary: Mapping[str, str] = field(default_factory=dict)
    preceding_context: Optional[str] = None
    following_context: Optional[str] = None
    source_language: Optional[str] = None

    @property
    def has_context(self) -> bool:
        return bool(self.preceding_context or self.following_context)


@dataclass(frozen=True)
class Usage:
    """Token usage reported by the provider for one call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class ProviderResponse:
    translated_text: str
    usage: Optional[Usage] = None


@dataclass(frozen=True)
class ChunkResult:
    """Translated chunk, addressed by its position in the document."""

    index: int
    translated_text: str
    usage: Optional[Usage] = None


@dataclass
class AggregateUsage:
    """Running token totals for one document."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    calls: int = 0

    def add(self, usage: Optional[Usage]) -> None:
        if usage is None:
            return
        self.prompt_tokens += usage.prompt_tokens
        self.completion_tokens += usage.completion_tokens
        self.total_tokens += usage.total_tokens
        self.calls += 1


class Stage(str, Enum):
    """Pipeline stage reported in progress events."""
    SPLITTING = "splitting"
    TRANSLATING = "translating"
    COMBINING = "combining"
    MERGING = "merging"


@dataclass(frozen=True)
class ProgressEvent:
    """A transient progress notification."""

    stage: Stage
    message: str
    current_chunk: int = 0
    total_chunks: int = 0
    document_id: Optional[str] = None
    current_document: Optional[int] = None
    total_documents: Optional[int] = None


@dataclass
class ChunkedTranslationResult:
    """Final output of a single-document pipeline run."""

    text: str
    chunks: int
    total_tokens: int
    usage: AggregateUsage = field(default_factory=AggregateUsage)
    source_language: Optional[str] = None


@dataclass(frozen=True)
class Document:
    id: str
    text: str
    source_language: Optional[str] = None


class ItemStatus(str, Enum):
    PENDING = "pending"
    TRANSLATING = "translating"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.COMPLETED, ItemStatus.ERROR)


@dataclass
class BatchItemOutcome:
    """
    Ledger entry for one document or file in a batch.

    State machine: pending -> translating -> completed | error.
    The terminal transition happens exactly once per run.
    """

    item_id: str
    status: ItemStatus = ItemStatus.PENDING
    payload: Optional[str] = None
    error: Optional[str] = None
    result: Optional[ChunkedTranslationResult] = None
    output_path: Optional[Path] = None

    def start(self) -> None:
        if self.status is not ItemStatus.PENDING:
            raise RuntimeError(f"Item {self.item_id} already {self.status.value}")
        self.status = ItemStatus.TRANSLATING

    def complete(self, result: ChunkedTranslationResult, output_path: Optional[Path] = None) -> None:
        self._ensure_not_terminal()
        self.status = ItemStatus.COMPLETED
        self.result = result
        self.payload = result.text
        self.output_path = output_path

    def fail(self, error: str) -> None:
        self._ensure_not_terminal()
        self.status = ItemStatus.ERROR
        self.error = error

    def _ensure_not_terminal(self) -> None:
        if self.status.is_terminal:
            raise RuntimeError(f"Item {self.item_id} already {self.status.value}")

    def to_dict(self) -> Dict[str, Any]:
        """Return the outcome in the shape consumed by reporting collaborators."""
        data: Dict[str, Any] = {"itemId": self.item_id, "status": self.status.value}
        if self.payload is not None:
            data["payload"] = self.payload
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class BatchReport:
    """Per-item ledger plus overall counts."""

    outcomes: List[BatchItemOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def completed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ItemStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ItemStatus.ERROR)

    def failed_items(self) -> List[BatchItemOutcome]:
        return [o for o in self.outcomes if o.status is ItemStatus.ERROR]

    def statuses(self) -> List[ItemStatus]:
        return [o.status for o in self.outcomes]

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self):
        return iter(self.outcomes)
