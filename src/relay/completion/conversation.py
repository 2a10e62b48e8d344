"""Conversation types and the pinned-directive history window."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Speaker of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """A single turn in a conversation."""

    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversationTurn":
        """Build a turn from an OpenAI-style message mapping.

        Raises:
            ValueError: If the role is unknown or the content is not a string.
        """
        raw_role = str(data.get("role", "")).strip().lower()
        try:
            role = Role(raw_role)
        except ValueError:
            raise ValueError(f"Unsupported message role: {raw_role!r}") from None

        content = data.get("content", "")
        if content is None:
            content = ""
        if not isinstance(content, str):
            raise ValueError("Message content must be a string")
        return cls(role=role, content=content)

    def to_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class ConversationRequest:
    """A conversation to complete, with its pinned system directive."""

    system_directive: str
    turns: list[ConversationTurn] = field(default_factory=list)

    @classmethod
    def from_messages(
        cls, system_directive: str, messages: Iterable[Mapping[str, Any]]
    ) -> "ConversationRequest":
        """Build a request from caller-supplied messages.

        Messages with the ``system`` role are dropped: the directive is
        owned by the server, not the caller.
        """
        turns = []
        for message in messages:
            if str(message.get("role", "")).strip().lower() == "system":
                logger.debug("Dropping caller-supplied system message")
                continue
            turns.append(ConversationTurn.from_dict(message))
        return cls(system_directive=system_directive, turns=turns)


def trim_history(turns: Sequence[ConversationTurn], max_history: int) -> list[ConversationTurn]:
    """Keep the most recent ``max_history`` turns in their original order."""
    if max_history < 0:
        raise ValueError("max_history must be >= 0")
    if max_history == 0:
        return []
    return list(turns[-max_history:])


def build_messages(
    system_directive: str, turns: Sequence[ConversationTurn], max_history: int
) -> list[dict[str, str]]:
    """Build the outbound message list.

    The directive is prepended after trimming, so it is always message zero
    no matter how long the history is.
    """
    window = trim_history(turns, max_history)
    if len(window) < len(turns):
        logger.debug(f"Trimmed conversation from {len(turns)} to {len(window)} turns")
    messages = [{"role": "system", "content": system_directive}]
    messages.extend(turn.to_message() for turn in window)
    return messages
