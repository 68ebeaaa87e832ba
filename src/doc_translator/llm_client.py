"""LLM API client utilities."""

from __future__ import annotations

import logging
from typing import List, Dict, Optional

from openai import (
    AsyncOpenAI,
    APIConnectionError,
    RateLimitError,
    AuthenticationError,
    BadRequestError,
    APIStatusError,
)

from .exceptions import APIErrorType, ProviderError
from .models import Usage

logger = logging.getLogger(__name__)


def classify_error(error: Exception) -> tuple[APIErrorType, bool]:
    """
    分类 API 错误并判断是否可重试。

    Retrying is left to the caller; the flag is only reported.

    Returns:
        (错误类型, 是否可重试)
    """
    if isinstance(error, RateLimitError):
        return APIErrorType.RATE_LIMIT, True
    elif isinstance(error, APIConnectionError):
        return APIErrorType.CONNECTION, True
    elif isinstance(error, AuthenticationError):
        return APIErrorType.AUTH, False
    elif isinstance(error, BadRequestError):
        return APIErrorType.BAD_REQUEST, False
    elif isinstance(error, APIStatusError):
        # 5xx 错误可重试
        if hasattr(error, 'status_code') and error.status_code >= 500:
            return APIErrorType.SERVER, True
        return APIErrorType.UNKNOWN, False
    else:
        return APIErrorType.UNKNOWN, False


def extract_usage(response) -> Optional[Usage]:
    """Read token usage from a chat completion response, if present."""
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    return Usage(
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )


async def call_llm_async(
    client: AsyncOpenAI,
    model: str,
    messages: List[Dict[str, str]],
    temperature: float = 0.3,
    max_tokens: Optional[int] = None,
) -> tuple[str, Optional[Usage]]:
    """
    Make a single async call to the chat completions API.

    There is no retry here: one attempt per chunk, failures surface as
    ProviderError.

    Args:
        client: AsyncOpenAI client instance
        model: Model name to use
        messages: List of message dictionaries
        temperature: Sampling temperature
        max_tokens: Completion token limit, provider default if None

    Returns:
        Tuple of (stripped response content, usage)

    Raises:
        ProviderError: The request failed or returned no content
    """
    params: Dict = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
    }
    if max_tokens:
        params["max_tokens"] = max_tokens

    try:
        response = await client.chat.completions.create(**params)
    except Exception as e:
        error_type, retryable = classify_error(e)
        logger.error(f"API error ({error_type.value}): {e}")
        raise ProviderError(
            f"API error ({error_type.value}): {e}",
            error_type=error_type,
            retryable=retryable,
        ) from e

    choices = getattr(response, "choices", None) or []
    content = choices[0].message.content if choices else None
    if not content or not content.strip():
        raise ProviderError(
            "Provider returned an empty response",
            error_type=APIErrorType.EMPTY_RESPONSE,
            retryable=True,
        )

    return content.strip(), extract_usage(response)


def create_client(
    api_key: str,
    base_url: str = "https://api.deepseek.com",
    timeout: float = 60.0
) -> AsyncOpenAI:
    """
    Create an AsyncOpenAI client.

    Args:
        api_key: API key for authentication
        base_url: API base URL
        timeout: Default timeout for requests

    Returns:
        Configured AsyncOpenAI client
    """
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
        max_retries=0,
    )
