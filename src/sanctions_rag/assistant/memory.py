"""Per-conversation short-term memory.

Each conversation id owns a bounded FIFO window of messages and its own
lock.  Different conversations never contend; appends to the same
conversation are serialised so turn order is deterministic.  Memory lives
in-process only.
"""

from __future__ import annotations

import threading
from collections import deque

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage


class ConversationMemory:
    """Bounded message window for one conversation.

    Appending beyond ``max_messages`` evicts the oldest message first.
    """

    def __init__(self, conversation_id: str, max_messages: int) -> None:
        if max_messages <= 0:
            raise ValueError(f"max_messages ({max_messages}) must be > 0")
        self.conversation_id = conversation_id
        self._messages: deque[BaseMessage] = deque(maxlen=max_messages)
        self.lock = threading.Lock()

    @property
    def max_messages(self) -> int:
        return self._messages.maxlen or 0

    def add(self, message: BaseMessage) -> None:
        self._messages.append(message)

    def messages(self) -> list[BaseMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


class ConversationMemoryStore:
    """Conversation id → :class:`ConversationMemory`, created on first use."""

    def __init__(self, max_messages: int = 6) -> None:
        if max_messages <= 0 or max_messages % 2:
            # Turns are stored as (human, ai) pairs; an odd window would evict half a turn.
            raise ValueError(f"max_messages ({max_messages}) must be a positive even number")
        self.max_messages = max_messages
        self._memories: dict[str, ConversationMemory] = {}

    def get(self, conversation_id: str) -> ConversationMemory:
        memory = self._memories.get(conversation_id)
        if memory is None:
            # setdefault is atomic, so racing creators end up sharing one window.
            memory = self._memories.setdefault(
                conversation_id, ConversationMemory(conversation_id, self.max_messages)
            )
        return memory

    def history(self, conversation_id: str) -> list[BaseMessage]:
        """Snapshot of the conversation's current window, oldest first."""
        memory = self.get(conversation_id)
        with memory.lock:
            return memory.messages()

    def record_turn(self, conversation_id: str, user_prompt: str, answer: str) -> None:
        """Append one completed (user, assistant) exchange as a unit."""
        memory = self.get(conversation_id)
        with memory.lock:
            memory.add(HumanMessage(content=user_prompt))
            memory.add(AIMessage(content=answer))

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._memories

    def __len__(self) -> int:
        return len(self._memories)
