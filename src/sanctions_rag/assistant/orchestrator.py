"""Query orchestration — plain and retrieval-augmented answers.

Two modes, selected per request by ``use_retrieval``:

* **plain** — the prompt goes straight to the completion engine, with the
  optional plain system prompt and no memory.
* **retrieval** — similarity search above a threshold, QA prompt built
  from the hits, prior turns of the conversation attached, and the
  finished turn appended to memory.  An empty search result short-cuts to
  the configured fallback sentence without calling the engine.

Either way the caller gets an :class:`AnswerStream`; the concatenation of
its chunks is the answer.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from sanctions_rag.assistant.prompts import build_qa_prompt, build_system_prompt
from sanctions_rag.assistant.streaming import AnswerStream

if TYPE_CHECKING:
    from sanctions_rag.assistant.llm import CompletionEngine
    from sanctions_rag.assistant.memory import ConversationMemoryStore
    from sanctions_rag.config import Settings
    from sanctions_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class QueryRequest(BaseModel):
    """One user question."""

    prompt: str = Field(..., min_length=1, description="User question")
    conversation_id: str = Field("default", description="Memory key for retrieval mode")
    use_retrieval: bool = Field(True, description="Answer from the indexed sanctions")


class QueryOrchestrator:
    """Route a :class:`QueryRequest` to a streamed answer.

    Parameters
    ----------
    engine:
        Streaming completion engine.
    vector_store:
        Searched in retrieval mode.
    memory:
        Per-conversation windows, used in retrieval mode only.
    similarity_threshold:
        Hits scoring below this are discarded.
    k:
        Maximum number of hits to retrieve.
    fallback_answer:
        Emitted verbatim when retrieval finds nothing.
    plain_system_prompt:
        System prompt for plain mode; empty means none.
    """

    def __init__(
        self,
        engine: CompletionEngine,
        vector_store: VectorStoreBase,
        memory: ConversationMemoryStore,
        *,
        similarity_threshold: float = 0.7,
        k: int = 4,
        fallback_answer: str,
        plain_system_prompt: str = "",
    ) -> None:
        self._engine = engine
        self._vector_store = vector_store
        self._memory = memory
        self._similarity_threshold = similarity_threshold
        self._k = k
        self._fallback_answer = fallback_answer
        self._plain_system_prompt = plain_system_prompt
        self._system_prompt = build_system_prompt(fallback_answer)

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> QueryOrchestrator:
        """Wire the configured chat model, Chroma collection and memory store."""
        if config is None:
            from sanctions_rag.config import settings as config

        from sanctions_rag.assistant.llm import ChatModelCompletionEngine
        from sanctions_rag.assistant.memory import ConversationMemoryStore
        from sanctions_rag.retrieval.chroma_store import ChromaVectorStore

        return cls(
            ChatModelCompletionEngine.from_settings(),
            ChromaVectorStore(
                config.chroma_collection,
                host=config.chroma_host,
                port=config.chroma_port,
                embedding_model=config.embedding_model,
            ),
            ConversationMemoryStore(config.memory_max_messages),
            similarity_threshold=config.similarity_threshold,
            k=config.retrieval_k,
            fallback_answer=config.fallback_answer,
            plain_system_prompt=config.plain_system_prompt,
        )

    @property
    def memory(self) -> ConversationMemoryStore:
        return self._memory

    # -- public API -----------------------------------------------------------

    def stream(self, request: QueryRequest) -> AnswerStream:
        """Start answering *request*; chunks arrive in generation order.

        The returned stream must be drained or closed.  In retrieval mode
        the turn is written to memory only if the stream completes.
        """
        if not request.use_retrieval:
            logger.info("Plain query (conversation=%s)", request.conversation_id)
            return AnswerStream(self._plain_answer(request.prompt))

        logger.info("Retrieval query (conversation=%s)", request.conversation_id)
        on_complete = functools.partial(
            self._memory.record_turn, request.conversation_id, request.prompt
        )
        return AnswerStream(
            self._retrieval_answer(request.prompt, request.conversation_id),
            on_complete=on_complete,
        )

    async def ask(self, request: QueryRequest) -> str:
        """Answer *request* and return the full text."""
        async with self.stream(request) as answer:
            return await answer.collect()

    async def ready(self) -> bool:
        """``True`` when the vector store answers its health check."""
        return await asyncio.to_thread(self._vector_store.health_check)

    # -- internals ------------------------------------------------------------

    async def _plain_answer(self, prompt: str) -> AsyncIterator[str]:
        async for chunk in self._engine.astream(self._plain_system_prompt, prompt):
            yield chunk

    async def _retrieval_answer(self, prompt: str, conversation_id: str) -> AsyncIterator[str]:
        # Vector search is blocking I/O; keep it off the event loop.
        documents = await asyncio.to_thread(
            self._vector_store.search,
            prompt,
            similarity_threshold=self._similarity_threshold,
            k=self._k,
        )
        logger.info("Retrieved %d document(s) above threshold %.2f", len(documents), self._similarity_threshold)

        if not documents:
            yield self._fallback_answer
            return

        prior_turns = self._memory.history(conversation_id)
        user_prompt = build_qa_prompt(prompt, documents, self._fallback_answer)
        async for chunk in self._engine.astream(self._system_prompt, user_prompt, prior_turns):
            yield chunk
