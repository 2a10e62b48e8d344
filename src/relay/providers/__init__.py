"""Chat completion providers for the relay service."""

from .base import (
    AuthenticationError,
    ChatProvider,
    InvalidRequestError,
    LLMProviderError,
    LLMResponse,
    ModelNotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    UpstreamTimeoutError,
)
from .openai_chat import OpenAIChatProvider

__all__ = [
    "ChatProvider",
    "LLMProviderError",
    "LLMResponse",
    "AuthenticationError",
    "InvalidRequestError",
    "ModelNotFoundError",
    "RateLimitError",
    "ServiceUnavailableError",
    "UpstreamTimeoutError",
    "OpenAIChatProvider",
]
