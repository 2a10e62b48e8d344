"""Retry policy: error classification and exponential backoff."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..providers.base import LLMProviderError

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class ErrorClass(str, Enum):
    """Whether a failed attempt is worth repeating."""

    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class RetryAttempt:
    """Outcome of one failed attempt inside a single ``complete()`` call."""

    attempt_number: int
    classification: ErrorClass
    backoff_delay: float = 0.0
    error: Optional[BaseException] = None


def classify_status(status_code: int) -> ErrorClass:
    """Rate limits, overload and server errors are transient; other 4xx are not."""
    if status_code in RETRYABLE_STATUS_CODES or status_code >= 500:
        return ErrorClass.RETRYABLE
    return ErrorClass.FATAL


def classify_error(error: BaseException) -> ErrorClass:
    """Default classifier for completion failures."""
    if isinstance(error, LLMProviderError):
        return ErrorClass.RETRYABLE if error.is_retryable else ErrorClass.FATAL
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ErrorClass.RETRYABLE
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return classify_status(status_code)
    return ErrorClass.FATAL


@dataclass
class RetryPolicy:
    """Bounded retry budget with exponential backoff.

    ``backoff(n)`` is the wait after the n-th failed attempt:
    ``base_delay * multiplier ** (n - 1)`` capped at ``max_delay``.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 8.0
    classifier: Callable[[BaseException], ErrorClass] = field(default=classify_error)

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be > 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")

    def backoff(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        return min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)

    def classify(self, error: BaseException) -> ErrorClass:
        return self.classifier(error)
