"""Short-term conversation memory for the retrieval service."""

import time
from collections import OrderedDict
from typing import Callable

from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig


class ConversationTurn(BaseModel):
    question: str
    answer: str


class _Conversation:
    __slots__ = ("turns", "touched_at")

    def __init__(self, touched_at: float) -> None:
        self.turns: list[ConversationTurn] = []
        self.touched_at = touched_at


class ConversationMemory:
    """
    Bounded LRU of recent conversation turns with an idle TTL.

    Conversations are keyed by (store_id, conversation_id) so two stores
    never see each other's history, even with colliding conversation ids.
    """

    def __init__(self, helper_config: HelperConfig, clock: Callable[[], float] = time.monotonic) -> None:
        self.logging = helper_config.get_logger()
        self.max_conversations = int(helper_config.get_number_val("RAG_MEMORY_MAX_CONVERSATIONS", default=500))
        self.ttl_seconds = float(helper_config.get_number_val("RAG_MEMORY_TTL_SECONDS", default=3600))
        self.max_turns = int(helper_config.get_number_val("RAG_MEMORY_MAX_TURNS", default=20))
        self._clock = clock
        self._conversations: OrderedDict[tuple[str, str], _Conversation] = OrderedDict()

    def get_messages(self, store_id: str, conversation_id: str) -> list[dict]:
        """
        Returns the stored turns as chat messages, oldest first. Expired
        conversations are dropped and yield an empty list.
        """
        key = (store_id, conversation_id)
        conversation = self._conversations.get(key)
        if conversation is None:
            return []
        if self._is_expired(conversation):
            del self._conversations[key]
            return []
        self._conversations.move_to_end(key)
        messages: list[dict] = []
        for turn in conversation.turns:
            messages.append({"role": "user", "content": turn.question})
            messages.append({"role": "assistant", "content": turn.answer})
        return messages

    def add_turn(self, store_id: str, conversation_id: str, question: str, answer: str) -> None:
        key = (store_id, conversation_id)
        now = self._clock()
        conversation = self._conversations.get(key)
        if conversation is None or self._is_expired(conversation):
            conversation = _Conversation(touched_at=now)
            self._conversations[key] = conversation
        conversation.turns.append(ConversationTurn(question=question, answer=answer))
        del conversation.turns[:-self.max_turns]
        conversation.touched_at = now
        self._conversations.move_to_end(key)
        self._evict()

    def clear_store(self, store_id: str) -> int:
        keys = [key for key in self._conversations if key[0] == store_id]
        for key in keys:
            del self._conversations[key]
        return len(keys)

    def __len__(self) -> int:
        return len(self._conversations)

    def _is_expired(self, conversation: _Conversation) -> bool:
        return self._clock() - conversation.touched_at > self.ttl_seconds

    def _evict(self) -> None:
        for key in [key for key, conversation in self._conversations.items() if self._is_expired(conversation)]:
            del self._conversations[key]
        while len(self._conversations) > self.max_conversations:
            evicted, _ = self._conversations.popitem(last=False)
            self.logging.debug("Evicted conversation %s of store %s from memory.", evicted[1], evicted[0])
