"""Completion client with bounded retries and a pinned-directive window."""

import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional, Sequence

from ..errors import CompletionError
from ..providers.base import ChatProvider
from .conversation import ConversationRequest, ConversationTurn, build_messages
from .retry import ErrorClass, RetryAttempt, RetryPolicy

logger = logging.getLogger(__name__)


class RetryingCompletionClient:
    """Obtains one assistant reply per conversation from a flaky upstream.

    This class provides:
    - A trailing history window that always keeps the system directive first
    - A per-attempt timeout on every upstream call
    - Retries with backoff for transient failures only
    - Typed ``CompletionError`` results instead of transport details
    """

    def __init__(
        self,
        provider: ChatProvider,
        policy: Optional[RetryPolicy] = None,
        model: Optional[str] = None,
        max_history: int = 20,
        max_tokens: Optional[int] = 500,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the completion client.

        Args:
            provider: Chat provider performing the actual upstream call.
            policy: Retry policy. Defaults to 3 attempts with 1s/2s backoff.
            model: Model override passed to the provider.
            max_history: Default number of trailing turns sent upstream.
            max_tokens: Maximum output tokens per reply.
            timeout: Per-attempt timeout in seconds.
            sleep: Coroutine used to wait between attempts.
        """
        if max_history < 0:
            raise ValueError("max_history must be >= 0")
        self.provider = provider
        self.policy = policy or RetryPolicy()
        self.model = model
        self.max_history = max_history
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._sleep = sleep

        # Statistics
        self.total_calls = 0
        self.successful_calls = 0
        self.failed_calls = 0
        self.total_attempts = 0
        self.retries = 0

    async def complete(
        self,
        system_directive: str,
        turns: Sequence[ConversationTurn],
        max_retries: Optional[int] = None,
        max_history: Optional[int] = None,
    ) -> str:
        """Return the assistant reply for a conversation.

        Args:
            system_directive: Pinned instruction, always sent as message zero.
            turns: Conversation turns, oldest first.
            max_retries: Total attempt budget. Defaults to the policy's.
            max_history: Trailing turns to send. Defaults to the client's.

        Returns:
            The reply text; an empty string when the upstream replied with no content.

        Raises:
            CompletionError: ``fatal`` when the upstream rejected the request,
                ``exhausted`` when transient failures used up every attempt.
            ValueError: If ``max_retries`` < 1 or ``max_history`` < 0.
        """
        policy = self.policy
        if max_retries is not None and max_retries != policy.max_retries:
            policy = replace(policy, max_retries=max_retries)
        window = self.max_history if max_history is None else max_history
        messages = build_messages(system_directive, turns, window)

        self.total_calls += 1
        attempts: list[RetryAttempt] = []

        for attempt in range(1, policy.max_retries + 1):
            self.total_attempts += 1
            try:
                response = await asyncio.wait_for(
                    self.provider.generate(
                        messages, model=self.model, max_tokens=self.max_tokens
                    ),
                    timeout=self.timeout,
                )
            except Exception as e:
                classification = policy.classify(e)
                record = RetryAttempt(attempt, classification, error=e)
                attempts.append(record)
                status_code = getattr(e, "status_code", None)
                error_type = type(e).__name__

                if classification is ErrorClass.FATAL:
                    self.failed_calls += 1
                    logger.error(f"Completion rejected on attempt {attempt}: {error_type}: {e}")
                    raise CompletionError(
                        f"Completion rejected by upstream: {error_type}: {e}",
                        fatal=True,
                        attempts=attempts,
                        status_code=status_code,
                    ) from e

                if attempt >= policy.max_retries:
                    self.failed_calls += 1
                    logger.error(
                        f"Completion failed after {attempt} attempts, last error: "
                        f"{error_type}: {e}"
                    )
                    raise CompletionError(
                        f"Completion retries exhausted after {attempt} attempts: "
                        f"{error_type}: {e}",
                        fatal=False,
                        exhausted=True,
                        attempts=attempts,
                        status_code=status_code,
                    ) from e

                delay = policy.backoff(attempt)
                record.backoff_delay = delay
                self.retries += 1
                logger.warning(
                    f"Completion attempt {attempt}/{policy.max_retries} failed "
                    f"({error_type}: {e}), retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                continue

            self.successful_calls += 1
            if attempt > 1:
                logger.info(f"Completion succeeded on attempt {attempt}")
            return response.content or ""

        # range() is never empty: RetryPolicy enforces max_retries >= 1
        raise AssertionError("unreachable")

    async def complete_request(
        self, request: ConversationRequest, max_retries: Optional[int] = None
    ) -> str:
        return await self.complete(
            request.system_directive, request.turns, max_retries=max_retries
        )

    def get_stats(self) -> dict[str, Any]:
        """Get usage statistics.

        Returns:
            Dictionary with usage statistics.
        """
        success_rate = (
            (self.successful_calls / self.total_calls * 100) if self.total_calls > 0 else 0
        )
        return {
            "provider": self.provider.name,
            "model": self.model,
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "total_attempts": self.total_attempts,
            "retries": self.retries,
            "success_rate": f"{success_rate:.1f}%",
            "max_retries": self.policy.max_retries,
            "max_history": self.max_history,
        }

    async def aclose(self) -> None:
        await self.provider.aclose()
