"""
Assistant — answering questions about SIMV sanctions.

Nothing here depends on a particular vector database or LLM provider:
the orchestrator talks to a :class:`CompletionEngine` and a
:class:`~sanctions_rag.retrieval.base.VectorStoreBase`, so it can be
tested locally with fakes.

Public API
----------
- :class:`QueryOrchestrator` — plain or retrieval-augmented answers.
- :class:`QueryRequest` — one user question.
- :class:`AnswerStream` — ordered, cancellable answer chunks.
- :class:`ConversationMemoryStore` — bounded per-conversation history.
"""

from sanctions_rag.assistant.llm import ChatModelCompletionEngine, CompletionEngine
from sanctions_rag.assistant.memory import ConversationMemory, ConversationMemoryStore
from sanctions_rag.assistant.orchestrator import QueryOrchestrator, QueryRequest
from sanctions_rag.assistant.streaming import AnswerStream

__all__ = [
    "AnswerStream",
    "ChatModelCompletionEngine",
    "CompletionEngine",
    "ConversationMemory",
    "ConversationMemoryStore",
    "QueryOrchestrator",
    "QueryRequest",
]
