"""Failure taxonomy for AI requests.

Every error carries a machine-checkable ``kind`` and a ``retryable`` flag,
decided once where the backend response is classified. ``user_message`` is
the text shown to end users; ``str(error)`` keeps the internal detail.
"""

import math
from enum import Enum


class ErrorKind(str, Enum):
    CONFIG = "config"
    RATE_LIMIT = "rate_limit"
    QUOTA_EXCEEDED = "quota_exceeded"
    SAFETY_BLOCKED = "safety_blocked"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"


class AdvisorError(Exception):
    """Base class for every failure surfaced by the AI request path."""

    kind: ErrorKind
    retryable: bool = False
    default_user_message = "The AI assistant is unavailable right now. Please try again later."

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class ConfigError(AdvisorError):
    """The AI backend is not configured (missing key or model)."""

    kind = ErrorKind.CONFIG
    default_user_message = "The AI assistant is not configured. Please contact support."


class RateLimitError(AdvisorError):
    """The local rate limiter rejected the call."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, wait_seconds: float) -> None:
        self.wait_seconds = max(0.0, wait_seconds)
        wait_display = max(1, math.ceil(self.wait_seconds))
        super().__init__(
            f"Rate limit exceeded. Please wait {wait_display} seconds.",
            user_message=(
                "You've made too many requests in a short period. "
                f"Please wait {wait_display} seconds before trying again."
            ),
        )


class QuotaExceededError(AdvisorError):
    """The backend answered HTTP 429."""

    kind = ErrorKind.QUOTA_EXCEEDED
    retryable = True
    default_user_message = "The AI service is busy. Please try again later."


class SafetyBlockedError(AdvisorError):
    kind = ErrorKind.SAFETY_BLOCKED
    default_user_message = (
        "The request was blocked by the AI safety filters. "
        "Please rephrase your question and try again."
    )

    def __init__(self, block_reason: str) -> None:
        self.block_reason = block_reason
        super().__init__(f"Content blocked by safety filters: {block_reason}")


class NetworkError(AdvisorError):
    kind = ErrorKind.NETWORK
    retryable = True

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class MalformedResponseError(AdvisorError):
    """The call succeeded but the payload could not be used."""

    kind = ErrorKind.MALFORMED_RESPONSE
    default_user_message = "The AI assistant returned an unexpected response. Please try again."
