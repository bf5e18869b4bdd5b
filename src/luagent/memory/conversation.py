"""
In-process conversation log for a single agent.

Messages are kept in insertion order and are never edited once appended; :meth:`clear` is the
only way to drop them.
"""

import logging
from typing import (
    Dict,
    List,
    Tuple,
)

from luagent.core.schema import (
    Message,
    Role,
)

logger = logging.getLogger(__name__)


class ConversationMemory:
    """Append-only list of role-tagged messages."""

    def __init__(self) -> None:
        self._messages: List[Message] = []

    def add_message(self, role: Role | str, content: str) -> Message:
        """Append a message and return it."""
        message = Message(role=Role(role), content=content)
        self._messages.append(message)
        logger.debug("Memory += %s (%d chars)", message.role.value, len(content))
        return message

    def get_messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def get_last_n_messages(self, n: int) -> Tuple[Message, ...]:
        """Return up to the *n* most recent messages, oldest first."""
        if n <= 0:
            return ()
        return tuple(self._messages[-n:])

    def format_messages(self) -> str:
        """Render the history as ``ROLE: content`` lines."""
        return "\n".join(f"{m.role.value.upper()}: {m.content}" for m in self._messages)

    def to_chat_format(self) -> List[Dict[str, str]]:
        """Return ``[{"role": ..., "content": ...}]`` for chat-style APIs."""
        return [{"role": m.role.value, "content": m.content} for m in self._messages]

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
