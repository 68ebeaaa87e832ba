"""Exception types raised by the translation pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class APIErrorType(Enum):
    """Provider 错误类型分类。"""
    RATE_LIMIT = "rate_limit"          # 429
    CONNECTION = "connection"          # 网络问题
    AUTH = "auth"                      # 401
    BAD_REQUEST = "bad_request"        # 400
    SERVER = "server"                  # 500+
    EMPTY_RESPONSE = "empty_response"  # 返回内容为空
    UNKNOWN = "unknown"


class TranslatorError(Exception):
    """Base error with optional code and details."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ProviderError(TranslatorError):
    """
    The translation provider failed to translate a chunk.

    The pipeline treats this as opaque and fatal to the current document.
    ``retryable`` is only a hint for callers that want to re-run failed items.
    """

    def __init__(
        self,
        message: str,
        error_type: APIErrorType = APIErrorType.UNKNOWN,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code=error_type.value, details=details)
        self.error_type = error_type
        self.retryable = retryable


class ConfigurationError(TranslatorError):
    """Required settings are missing or invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="config_invalid", details=details)
