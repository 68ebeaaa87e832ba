"""Translation provider interface and the OpenAI-compatible implementation."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from .config import TranslatorConfig
from .exceptions import ConfigurationError
from .glossary import find_matching_terms
from .llm_client import call_llm_async, create_client
from .models import ChunkRequest, ProviderResponse

logger = logging.getLogger(__name__)


class TranslationProvider(Protocol):
    """Anything that can translate one chunk request."""

    async def translate_chunk(self, request: ChunkRequest) -> ProviderResponse:
        """Translate ``request.source_text``; raise ProviderError on failure."""
        ...


def _build_translation_prompt(request: ChunkRequest) -> tuple[str, str]:
    """Build translation prompts."""

    system_prompt = (
        f"You are a professional translator. Translate the text into {request.target_language} "
        "accurately and fluently, keeping the original tone, style and formatting. "
        "Output only the translation, without explanations or quotes."
    )

    source_line = ""
    if request.source_language:
        source_line = f"Source language: {request.source_language}\n"

    context_section = ""
    if request.has_context:
        context_section = (
            "\n## Context (for coherence only, do not translate):\n"
            f"Prev: {request.preceding_context or 'N/A'}\n"
            f"Next: {request.following_context or 'N/A'}\n"
        )

    glossary_section = ""
    matched = find_matching_terms(request.glossary, request.source_text) if request.glossary else {}
    if matched:
        glossary_list = "\n".join(f"  - {term} -> {trans}" for term, trans in matched.items())
        glossary_section = f"\n## Glossary (must use):\n{glossary_list}\n"

    user_prompt = f"""{source_line}{glossary_section}{context_section}
## Translate into {request.target_language}:
{request.source_text}"""

    return system_prompt, user_prompt


class OpenAIProvider:
    """Chat-completions provider for OpenAI-compatible APIs (DeepSeek by default)."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "deepseek-chat",
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config: TranslatorConfig) -> "OpenAIProvider":
        """Create a provider, failing fast when credentials are missing."""
        if not config.api_key:
            raise ConfigurationError(
                "API key is required to create the translation provider",
                details={"missing_field": "api_key"},
            )
        client = create_client(config.api_key, config.base_url, config.timeout)
        return cls(
            client,
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_completion_tokens,
        )

    async def translate_chunk(self, request: ChunkRequest) -> ProviderResponse:
        # 空白块原样返回，不调用 API
        if not request.source_text.strip():
            return ProviderResponse(translated_text=request.source_text)

        system_prompt, user_prompt = _build_translation_prompt(request)
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        content, usage = await call_llm_async(
            self.client,
            self.model,
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        logger.debug(f"Translated {len(request.source_text)} chars -> {len(content)} chars")
        return ProviderResponse(translated_text=content, usage=usage)
