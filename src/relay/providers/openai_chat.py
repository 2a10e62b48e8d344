"""OpenAI chat completion provider implementation."""

import logging
import os
import re
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

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

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

# Whole-word patterns for errors that carry no status code
_RATE_LIMIT_RE = re.compile(r"\b429\b|\brate[ _-]?limit|\btoo many requests\b", re.IGNORECASE)
_AUTH_RE = re.compile(
    r"\b40[13]\b|\bunauthori[sz]ed\b|\bauthentication\b|\bforbidden\b|\binvalid api key\b",
    re.IGNORECASE,
)
_NOT_FOUND_RE = re.compile(r"\b404\b|\bnot found\b", re.IGNORECASE)
_TIMEOUT_RE = re.compile(r"\btimeout\b|\btimed out\b", re.IGNORECASE)
_UNAVAILABLE_RE = re.compile(r"\boverloaded\b|\bunavailable\b", re.IGNORECASE)


class OpenAIChatProvider(ChatProvider):
    """Chat provider using the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
    ):
        """Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY env var.
            default_model: Default model to use for generation.
            timeout: Request timeout in seconds.
            base_url: Optional API base URL for OpenAI-compatible gateways.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = base_url
        self._client: Optional[AsyncOpenAI] = None

    @property
    def name(self) -> str:
        """Return the provider name."""
        return "openai"

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create the async OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AuthenticationError(
                    "OpenAI API key not configured. Set OPENAI_API_KEY environment variable.",
                    provider=self.name,
                    status_code=None,
                )
            # Retries are owned by the completion client, not the SDK.
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        messages: list[dict[str, str]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a reply using OpenAI chat completions.

        Args:
            messages: OpenAI-style ``{"role", "content"}`` messages, oldest first.
            model: The model to use. If None, uses the default model.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature (0.0-2.0).
            **kwargs: Additional parameters passed to the API.

        Returns:
            LLMResponse containing the generated content and metadata.

        Raises:
            LLMProviderError: If the generation fails.
        """
        model_id = model or self.default_model
        client = self.client
        logger.debug(f"Generating with OpenAI model {model_id} ({len(messages)} messages)")

        try:
            response = await client.chat.completions.create(
                model=model_id,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                **kwargs,
            )
        except Exception as e:
            raise self._translate_error(e, model_id) from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(f"OpenAI response received from {model_id}")
        return LLMResponse(
            content=content,
            model=model_id,
            usage=usage,
            metadata={"id": response.id, "created": response.created},
        )

    def _translate_error(self, error: Exception, model_id: str) -> LLMProviderError:
        """Map an SDK or transport exception onto the provider error hierarchy."""
        error_msg = str(error)
        logger.warning(f"OpenAI error ({type(error).__name__}): {error_msg}")

        if isinstance(error, openai.APITimeoutError):
            return UpstreamTimeoutError(error_msg, provider=self.name, model=model_id)
        if isinstance(error, openai.APIConnectionError):
            return ServiceUnavailableError(error_msg, provider=self.name, model=model_id)

        status_code = getattr(error, "status_code", None)
        if isinstance(status_code, int):
            return self._error_for_status(status_code, error_msg, model_id)

        # No status code available: fall back to parsing the message text
        if _RATE_LIMIT_RE.search(error_msg):
            return RateLimitError(error_msg, provider=self.name, model=model_id)
        if _AUTH_RE.search(error_msg):
            return AuthenticationError(
                error_msg, provider=self.name, model=model_id, status_code=None
            )
        if _NOT_FOUND_RE.search(error_msg):
            return ModelNotFoundError(error_msg, provider=self.name, model=model_id)
        if _TIMEOUT_RE.search(error_msg):
            return UpstreamTimeoutError(error_msg, provider=self.name, model=model_id)
        if _UNAVAILABLE_RE.search(error_msg):
            return ServiceUnavailableError(error_msg, provider=self.name, model=model_id)
        return LLMProviderError(error_msg, provider=self.name, model=model_id)

    def _error_for_status(self, status_code: int, error_msg: str, model_id: str) -> LLMProviderError:
        if status_code == 429:
            return RateLimitError(error_msg, provider=self.name, model=model_id)
        if status_code in (401, 403):
            return AuthenticationError(
                error_msg, provider=self.name, model=model_id, status_code=status_code
            )
        if status_code == 404:
            return ModelNotFoundError(error_msg, provider=self.name, model=model_id)
        if status_code == 408 or status_code >= 500:
            return ServiceUnavailableError(
                error_msg, provider=self.name, model=model_id, status_code=status_code
            )
        if 400 <= status_code < 500:
            return InvalidRequestError(
                error_msg, provider=self.name, model=model_id, status_code=status_code
            )
        return LLMProviderError(
            error_msg, provider=self.name, model=model_id, status_code=status_code
        )

    def is_available(self) -> bool:
        """Check if the OpenAI provider is available.

        Returns:
            True if the API key is configured, False otherwise.
        """
        return bool(self.api_key)

    async def aclose(self) -> None:
        """Close the underlying HTTP client, if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None
