"""Tests for the OpenAI chat provider."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import openai
import pytest

from relay.completion.client import RetryingCompletionClient
from relay.completion.conversation import ConversationTurn, Role
from relay.completion.retry import RetryPolicy
from relay.errors import CompletionError
from relay.providers.base import (
    AuthenticationError,
    InvalidRequestError,
    LLMProviderError,
    LLMResponse,
    ModelNotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    UpstreamTimeoutError,
)
from relay.providers.openai_chat import DEFAULT_MODEL, OpenAIChatProvider

MESSAGES = [
    {"role": "system", "content": "Be brief."},
    {"role": "user", "content": "Hello"},
]

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(error_class, status_code: int) -> openai.APIStatusError:
    response = httpx.Response(status_code, request=REQUEST)
    return error_class(f"Error code: {status_code}", response=response, body=None)


class TestOpenAIChatProviderInit:
    """Tests for OpenAIChatProvider initialization."""

    def test_init_with_api_key(self):
        """Test initialization with explicit API key."""
        provider = OpenAIChatProvider(api_key="test-key")

        assert provider.api_key == "test-key"
        assert provider.default_model == DEFAULT_MODEL
        assert provider.timeout == 30.0
        assert provider.name == "openai"
        assert provider._client is None

    @patch.dict("os.environ", {"OPENAI_API_KEY": "env-key"})
    def test_init_from_env(self):
        """Test initialization from environment variable."""
        provider = OpenAIChatProvider()

        assert provider.api_key == "env-key"
        assert provider.is_available() is True

    def test_is_available_without_key(self):
        """Test is_available returns False when API key is not set."""
        provider = OpenAIChatProvider(api_key=None)
        provider.api_key = None

        assert provider.is_available() is False

    @patch("relay.providers.openai_chat.AsyncOpenAI")
    def test_client_created_on_access(self, mock_openai):
        """Test that the SDK client is created once with SDK retries disabled."""
        provider = OpenAIChatProvider(api_key="test-key", timeout=12.0, base_url="http://gw")
        _ = provider.client
        _ = provider.client

        mock_openai.assert_called_once()
        call_kwargs = mock_openai.call_args[1]
        assert call_kwargs["api_key"] == "test-key"
        assert call_kwargs["timeout"] == 12.0
        assert call_kwargs["base_url"] == "http://gw"
        assert call_kwargs["max_retries"] == 0

    def test_client_raises_auth_error_without_key(self):
        """Test that accessing client without API key raises AuthenticationError."""
        provider = OpenAIChatProvider(api_key=None)
        provider.api_key = None

        with pytest.raises(AuthenticationError) as exc_info:
            _ = provider.client

        assert "API key not configured" in str(exc_info.value)
        assert exc_info.value.is_retryable is False


class TestOpenAIChatProviderGenerate:
    """Tests for OpenAIChatProvider.generate()."""

    @pytest.fixture
    def mock_completion(self):
        """Create a mock completion response."""
        mock = Mock()
        mock.id = "chatcmpl-123"
        mock.created = 1700000000
        mock.choices = [Mock(message=Mock(content="Test response"))]
        mock.usage = Mock(prompt_tokens=10, completion_tokens=20, total_tokens=30)
        return mock

    @pytest.fixture
    def mock_client(self, mock_completion):
        client = Mock()
        client.chat.completions.create = AsyncMock(return_value=mock_completion)
        client.close = AsyncMock()
        return client

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_success(self, mock_openai_class, mock_client):
        """Test successful generation."""
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")
        response = await provider.generate(MESSAGES, max_tokens=100)

        assert isinstance(response, LLMResponse)
        assert response.content == "Test response"
        assert response.model == DEFAULT_MODEL
        assert response.usage["total_tokens"] == 30
        assert response.metadata["id"] == "chatcmpl-123"

        call_kwargs = mock_client.chat.completions.create.call_args[1]
        assert call_kwargs["messages"] == MESSAGES
        assert call_kwargs["max_tokens"] == 100

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_with_custom_model(self, mock_openai_class, mock_client):
        """Test generation with a model override."""
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")
        response = await provider.generate(MESSAGES, model="gpt-4o")

        assert mock_client.chat.completions.create.call_args[1]["model"] == "gpt-4o"
        assert response.model == "gpt-4o"

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_empty_response(self, mock_openai_class, mock_client, mock_completion):
        """Test handling of empty response content."""
        mock_completion.choices = [Mock(message=Mock(content=None))]
        mock_completion.usage = None
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")
        response = await provider.generate(MESSAGES)

        assert response.content == ""
        assert response.usage == {}

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_no_choices(self, mock_openai_class, mock_client, mock_completion):
        """Test a response without choices yields empty content."""
        mock_completion.choices = []
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")

        assert (await provider.generate(MESSAGES)).content == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error_class,status_code,expected,retryable",
        [
            (openai.RateLimitError, 429, RateLimitError, True),
            (openai.AuthenticationError, 401, AuthenticationError, False),
            (openai.PermissionDeniedError, 403, AuthenticationError, False),
            (openai.NotFoundError, 404, ModelNotFoundError, False),
            (openai.BadRequestError, 400, InvalidRequestError, False),
            (openai.UnprocessableEntityError, 422, InvalidRequestError, False),
            (openai.InternalServerError, 500, ServiceUnavailableError, True),
            (openai.InternalServerError, 503, ServiceUnavailableError, True),
            (openai.ConflictError, 409, InvalidRequestError, False),
            (openai.APIStatusError, 408, ServiceUnavailableError, True),
        ],
    )
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_status_errors(
        self, mock_openai_class, mock_client, error_class, status_code, expected, retryable
    ):
        """Test SDK status errors map onto the provider hierarchy."""
        mock_client.chat.completions.create.side_effect = status_error(error_class, status_code)
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")

        with pytest.raises(expected) as exc_info:
            await provider.generate(MESSAGES)

        assert exc_info.value.is_retryable is retryable
        assert exc_info.value.status_code == status_code
        assert exc_info.value.provider == "openai"

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_timeout(self, mock_openai_class, mock_client):
        """Test SDK timeouts are retryable."""
        mock_client.chat.completions.create.side_effect = openai.APITimeoutError(request=REQUEST)
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")

        with pytest.raises(UpstreamTimeoutError) as exc_info:
            await provider.generate(MESSAGES)

        assert exc_info.value.is_retryable is True

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_connection_error(self, mock_openai_class, mock_client):
        """Test connection failures are retryable."""
        mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=REQUEST
        )
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await provider.generate(MESSAGES)

        assert exc_info.value.is_retryable is True
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message,expected,retryable",
        [
            ("Error code: 429 - Rate limit exceeded", RateLimitError, True),
            ("Error code: 401 - Invalid API key", AuthenticationError, False),
            ("Error code: 404 - Model not found", ModelNotFoundError, False),
            ("Connection timeout", UpstreamTimeoutError, True),
            ("Upstream overloaded", ServiceUnavailableError, True),
            ("Something odd happened", LLMProviderError, False),
            ("Failed to generate request body: bad field", LLMProviderError, False),
            ("Could not operate on a separate thread", LLMProviderError, False),
            ("Invalid row id 14011 in payload", LLMProviderError, False),
            ("Too many requests, slow down", RateLimitError, True),
        ],
    )
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_generate_message_fallback(
        self, mock_openai_class, mock_client, message, expected, retryable
    ):
        """Test errors without a status code are classified from their message."""
        mock_client.chat.completions.create.side_effect = Exception(message)
        mock_openai_class.return_value = mock_client

        provider = OpenAIChatProvider(api_key="test-key")

        with pytest.raises(expected) as exc_info:
            await provider.generate(MESSAGES)

        assert type(exc_info.value) is expected
        assert exc_info.value.is_retryable is retryable

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_aclose(self, mock_openai_class, mock_client):
        """Test aclose() closes and forgets the SDK client."""
        mock_openai_class.return_value = mock_client
        provider = OpenAIChatProvider(api_key="test-key")
        _ = provider.client

        await provider.aclose()

        mock_client.close.assert_awaited_once()
        assert provider._client is None

    @pytest.mark.asyncio
    async def test_aclose_without_client(self):
        """Test aclose() is a no-op before first use."""
        provider = OpenAIChatProvider(api_key="test-key")

        await provider.aclose()

        assert provider._client is None


class TestOpenAIChatProviderRetries:
    """Tests for provider errors flowing through the retrying client."""

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_unknown_error_is_not_retried(self, mock_openai_class, sleep):
        """Test an SDK-side bug fails once instead of being mistaken for a rate limit."""
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=TypeError("Failed to generate request body: bad field")
        )
        mock_openai_class.return_value = mock_client
        client = RetryingCompletionClient(
            OpenAIChatProvider(api_key="test-key"),
            policy=RetryPolicy(max_retries=3),
            sleep=sleep,
        )

        with pytest.raises(CompletionError) as exc_info:
            await client.complete("Be brief.", [ConversationTurn(Role.USER, "Hello")])

        assert exc_info.value.fatal is True
        assert exc_info.value.exhausted is False
        assert type(exc_info.value.__cause__) is LLMProviderError
        assert mock_client.chat.completions.create.await_count == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    @patch("relay.providers.openai_chat.AsyncOpenAI")
    async def test_conflict_is_not_retried(self, mock_openai_class, sleep):
        """Test a 409 is rejected on the first attempt."""
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=status_error(openai.ConflictError, 409)
        )
        mock_openai_class.return_value = mock_client
        client = RetryingCompletionClient(
            OpenAIChatProvider(api_key="test-key"),
            policy=RetryPolicy(max_retries=3),
            sleep=sleep,
        )

        with pytest.raises(CompletionError) as exc_info:
            await client.complete("Be brief.", [ConversationTurn(Role.USER, "Hello")])

        assert exc_info.value.fatal is True
        assert exc_info.value.status_code == 409
        assert sleep.delays == []
