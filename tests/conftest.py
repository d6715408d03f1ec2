"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from datetime import datetime

import pytest
from langchain_core.documents import Document
from langchain_core.messages import BaseMessage

from sanctions_rag.assistant.llm import CompletionEngine
from sanctions_rag.ingestion.ledger import IngestionLedgerBase
from sanctions_rag.retrieval.base import VectorStoreBase


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ──────────────────────────────────────────────────────────────


class FakeVectorStore(VectorStoreBase):
    """In-memory store: records writes, returns canned search hits."""

    def __init__(self, hits: list[Document] | None = None) -> None:
        super().__init__("test-collection")
        self.hits: list[Document] = hits or []
        self.added: list[Document] = []
        self.add_calls = 0
        self.searches: list[tuple[str, float, int]] = []

    def add(self, chunks: list[Document]) -> None:
        self.add_calls += 1
        self.added.extend(chunks)

    def search(self, query: str, *, similarity_threshold: float = 0.0, k: int = 4) -> list[Document]:
        self.searches.append((query, similarity_threshold, k))
        return self.hits[:k]

    def health_check(self) -> bool:
        return True


class FakeCompletionEngine(CompletionEngine):
    """Scripted engine.

    Yields ``chunks`` one by one (with a scheduling point in between), or
    derives them from the request through ``respond`` when set.  Raises
    ``fail_with`` after ``fail_after`` chunks.
    """

    def __init__(self, chunks: list[str] | None = None) -> None:
        self.chunks = chunks if chunks is not None else ["Hola", ", ", "mundo"]
        self.respond = None
        self.fail_after: int | None = None
        self.fail_with: Exception = RuntimeError("upstream failure")
        self.calls: list[tuple[str, str, list[BaseMessage]]] = []
        self.closed = 0

    async def astream(
        self,
        system_prompt: str,
        user_prompt: str,
        prior_turns: Sequence[BaseMessage] = (),
    ) -> AsyncIterator[str]:
        self.calls.append((system_prompt, user_prompt, list(prior_turns)))
        chunks = self.respond(user_prompt) if self.respond else self.chunks
        try:
            for i, chunk in enumerate(chunks):
                if self.fail_after is not None and i == self.fail_after:
                    raise self.fail_with
                await asyncio.sleep(0)
                yield chunk
        finally:
            self.closed += 1


class InMemoryLedger(IngestionLedgerBase):
    def __init__(self) -> None:
        self.saved: dict[str, datetime | None] = {}

    def exists(self, source_id: str) -> bool:
        return source_id in self.saved

    def save(self, source_id: str, ingested_at: datetime | None = None) -> None:
        self.saved.setdefault(source_id, ingested_at)


@pytest.fixture()
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture()
def fake_engine() -> FakeCompletionEngine:
    return FakeCompletionEngine()


@pytest.fixture()
def memory_ledger() -> InMemoryLedger:
    return InMemoryLedger()
