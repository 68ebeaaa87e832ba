"""Configuration and constants."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, Optional
from pathlib import Path

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables once
load_dotenv()

ENV_PREFIX = "DOC_TRANSLATOR_"
# 兼容旧的 DeepSeek 环境变量
FALLBACK_API_KEY_ENV = "DEEPSEEK_API_KEY"


def _env_path(value: str) -> Path:
    return Path(value).expanduser()


# field name -> converter for values read from the environment
_ENV_FIELDS: Dict[str, Callable[[str], Any]] = {
    "api_key": str,
    "base_url": str,
    "model_name": str,
    "temperature": float,
    "max_completion_tokens": int,
    "timeout": float,
    "target_language": str,
    "source_language": str,
    "max_tokens_per_chunk": int,
    "chunk_overlap": int,
    "parallel_chunks": int,
    "parallel_docs": int,
    "parallel_files": int,
    "context_chars": int,
    "glossary_path": _env_path,
}


@dataclass(frozen=True)
class TranslatorConfig:
    """
    Immutable settings snapshot for one pipeline invocation.

    Precedence: explicit argument > environment variable > default.
    Resolve it once with ``TranslatorConfig.resolve``.
    """

    # API settings
    api_key: Optional[str] = None
    base_url: str = "https://api.deepseek.com"
    model_name: str = "deepseek-chat"
    temperature: float = 0.3
    max_completion_tokens: Optional[int] = None
    timeout: float = 60.0

    # Language settings
    target_language: str = "Simplified Chinese"
    source_language: Optional[str] = None

    # Chunking settings
    max_tokens_per_chunk: int = 1000
    chunk_overlap: int = 100
    context_chars: int = 200

    # Parallelism settings
    parallel_chunks: int = 3
    parallel_docs: int = 2
    parallel_files: int = 2

    # Glossary
    glossary_path: Optional[Path] = None

    @classmethod
    def resolve(cls, env: Optional[Dict[str, str]] = None, **explicit: Any) -> "TranslatorConfig":
        """
        Build a config from explicit values, the environment and defaults.

        Args:
            env: Environment mapping, ``os.environ`` if None
            **explicit: Field values; None means "not given"
        """
        env = os.environ if env is None else env
        known = {f.name for f in fields(cls)}
        unknown = set(explicit) - known
        if unknown:
            raise ConfigurationError(f"Unknown config fields: {', '.join(sorted(unknown))}")

        values: Dict[str, Any] = {}
        for name, convert in _ENV_FIELDS.items():
            if explicit.get(name) is not None:
                values[name] = explicit[name]
                continue

            raw = env.get(ENV_PREFIX + name.upper())
            if name == "api_key" and not raw:
                raw = env.get(FALLBACK_API_KEY_ENV)
            if raw:
                try:
                    values[name] = convert(raw)
                except ValueError as e:
                    raise ConfigurationError(
                        f"Invalid value for {ENV_PREFIX + name.upper()}: {raw!r}",
                        details={"field": name},
                    ) from e

        return cls(**values)

    @classmethod
    def from_args(cls, args) -> "TranslatorConfig":
        """Create config from argparse namespace."""
        glossary_path = getattr(args, 'glossary_path', None)
        return cls.resolve(
            api_key=getattr(args, 'api_key', None),
            base_url=getattr(args, 'base_url', None),
            model_name=getattr(args, 'model_name', None),
            target_language=getattr(args, 'target_language', None),
            source_language=getattr(args, 'source_language', None),
            max_tokens_per_chunk=getattr(args, 'max_tokens_per_chunk', None),
            chunk_overlap=getattr(args, 'chunk_overlap', None),
            parallel_chunks=getattr(args, 'parallel_chunks', None),
            parallel_files=getattr(args, 'parallel_files', None),
            glossary_path=Path(glossary_path).expanduser() if glossary_path else None,
        )

    def with_overrides(self, **changes: Any) -> "TranslatorConfig":
        """Return a copy with some fields replaced (None values ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def validate(self, require_api_key: bool = True) -> Optional[str]:
        """
        Validate configuration.

        Returns:
            Error message if invalid, None if valid
        """
        if require_api_key and not self.api_key:
            return (
                f"API key is required. Set {ENV_PREFIX}API_KEY "
                f"(or {FALLBACK_API_KEY_ENV}) or use --api-key"
            )

        for name in ("parallel_chunks", "parallel_docs", "parallel_files"):
            value = getattr(self, name)
            if value < 1 or value > 50:
                return f"{name} must be 1-50, got {value}"

        if self.max_tokens_per_chunk < 1:
            return f"max_tokens_per_chunk must be positive, got {self.max_tokens_per_chunk}"

        if self.chunk_overlap < 0 or self.chunk_overlap >= self.max_tokens_per_chunk:
            return (
                f"chunk_overlap must be 0-{self.max_tokens_per_chunk - 1}, "
                f"got {self.chunk_overlap}"
            )

        if self.context_chars < 0:
            return f"context_chars must be >= 0, got {self.context_chars}"

        if not self.target_language:
            return "target_language is required"

        return None

    def ensure_valid(self, require_api_key: bool = True) -> "TranslatorConfig":
        """Raise ConfigurationError if the config is invalid."""
        error = self.validate(require_api_key=require_api_key)
        if error:
            raise ConfigurationError(error)
        return self


# Supported file extensions for batch translation
SUPPORTED_EXTENSIONS = {".txt", ".md", ".markdown", ".json"}
