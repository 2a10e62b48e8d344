"""Base classes for chat completion providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class LLMResponse:
    """Response from a chat completion provider."""

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


class ChatProvider(ABC):
    """Abstract base class for chat completion providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        ...

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, str]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate one reply for an ordered list of chat messages.

        Args:
            messages: OpenAI-style ``{"role", "content"}`` messages, oldest first.
            model: The model to use. If None, uses the default model.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature (0.0-2.0).
            **kwargs: Additional provider-specific parameters.

        Returns:
            LLMResponse containing the generated content and metadata.

        Raises:
            LLMProviderError: If the generation fails.
        """
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured.

        Returns:
            True if the provider can be used, False otherwise.
        """
        ...

    async def aclose(self) -> None:
        """Release any network resources held by the provider."""
        return None


class LLMProviderError(Exception):
    """Base exception for chat provider errors."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        model: str = "",
        is_retryable: bool = False,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.is_retryable = is_retryable
        self.status_code = status_code


class RateLimitError(LLMProviderError):
    """Raised when rate limited by the provider."""

    def __init__(
        self, message: str, provider: str = "", model: str = "", status_code: Optional[int] = 429
    ):
        super().__init__(message, provider, model, is_retryable=True, status_code=status_code)


class ServiceUnavailableError(LLMProviderError):
    """Raised when the provider is overloaded, down, or unreachable."""

    def __init__(
        self, message: str, provider: str = "", model: str = "", status_code: Optional[int] = None
    ):
        super().__init__(message, provider, model, is_retryable=True, status_code=status_code)


class UpstreamTimeoutError(LLMProviderError):
    """Raised when a request to the provider times out."""

    def __init__(self, message: str, provider: str = "", model: str = ""):
        super().__init__(message, provider, model, is_retryable=True, status_code=None)


class AuthenticationError(LLMProviderError):
    """Raised when authentication fails."""

    def __init__(
        self, message: str, provider: str = "", model: str = "", status_code: Optional[int] = 401
    ):
        super().__init__(message, provider, model, is_retryable=False, status_code=status_code)


class ModelNotFoundError(LLMProviderError):
    """Raised when the requested model is not found."""

    def __init__(self, message: str, provider: str = "", model: str = ""):
        super().__init__(message, provider, model, is_retryable=False, status_code=404)


class InvalidRequestError(LLMProviderError):
    """Raised when the provider rejects the request as malformed."""

    def __init__(
        self, message: str, provider: str = "", model: str = "", status_code: Optional[int] = 400
    ):
        super().__init__(message, provider, model, is_retryable=False, status_code=status_code)
