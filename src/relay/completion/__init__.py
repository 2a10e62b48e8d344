"""Chat completion with retries and a bounded history window."""

from ..errors import CompletionError
from .client import RetryingCompletionClient
from .conversation import (
    ConversationRequest,
    ConversationTurn,
    Role,
    build_messages,
    trim_history,
)
from .retry import ErrorClass, RetryAttempt, RetryPolicy, classify_error, classify_status

__all__ = [
    "CompletionError",
    "ConversationRequest",
    "ConversationTurn",
    "ErrorClass",
    "RetryAttempt",
    "RetryPolicy",
    "RetryingCompletionClient",
    "Role",
    "build_messages",
    "classify_error",
    "classify_status",
    "trim_history",
]
