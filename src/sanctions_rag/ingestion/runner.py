"""Ingestion runner — discover, parse, chunk, persist, record.

One :meth:`IngestionOrchestrator.run` is a batch job:

1. **Discover** resources matching a glob pattern.
2. **Skip** resources whose ``category/filename`` is already in the ledger,
   and resources with no registered strategy.
3. **Parse** each remaining resource with its strategy.  A failing
   resource is logged and skipped; the batch carries on.
4. **Chunk** all parsed documents with the single configured chunker.
5. **Persist** chunks per source, then write that source's ledger record.

Runs on the same orchestrator are serialised by a lock, so the
ledger check-then-write sequence never races with itself.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sanctions_rag.exceptions import PersistenceError
from sanctions_rag.ingestion.chunker import TextChunker, build_chunker
from sanctions_rag.ingestion.ledger import IngestionLedgerBase, SqlIngestionLedger
from sanctions_rag.ingestion.loader import Resource, discover_resources
from sanctions_rag.ingestion.strategies import IngestionStrategy, StrategyRegistry, default_registry

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from sanctions_rag.config import Settings
    from sanctions_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    """Outcome of one ingestion run."""

    pattern: str
    discovered: int = 0
    documents_parsed: int = 0
    skipped_existing: list[str] = field(default_factory=list)
    skipped_unsupported: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    ingested: dict[str, int] = field(default_factory=dict)
    """source_id → number of chunks persisted."""

    @property
    def chunks_persisted(self) -> int:
        return sum(self.ingested.values())

    def summary(self) -> str:
        return (
            f"Discovered {self.discovered} resource(s): ingested {len(self.ingested)} "
            f"({self.chunks_persisted} chunks from {self.documents_parsed} documents), "
            f"already ingested {len(self.skipped_existing)}, "
            f"unsupported {len(self.skipped_unsupported)}, failed {len(self.failed)}"
        )


class IngestionOrchestrator:
    """Idempotent batch ingestion into a vector store.

    Parameters
    ----------
    registry:
        Strategies keyed by file extension.
    chunker:
        The one splitter applied to every parsed document.
    vector_store:
        Destination for chunks.
    ledger:
        Record of already-ingested sources.
    max_workers:
        Parse resources in a thread pool when greater than 1.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        chunker: TextChunker,
        vector_store: VectorStoreBase,
        ledger: IngestionLedgerBase,
        *,
        max_workers: int = 1,
    ) -> None:
        self._registry = registry
        self._chunker = chunker
        self._vector_store = vector_store
        self._ledger = ledger
        self._max_workers = max_workers
        self._run_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        config: Settings | None = None,
        *,
        chunker_kind: str | None = None,
        vector_store: VectorStoreBase | None = None,
        ledger: IngestionLedgerBase | None = None,
    ) -> IngestionOrchestrator:
        """Wire the default registry, configured chunker, Chroma and SQL ledger."""
        if config is None:
            from sanctions_rag.config import settings as config

        # Built first so a bad splitter configuration fails before any I/O.
        chunker = build_chunker(chunker_kind or config.ingestion_chunker, config)
        if vector_store is None:
            from sanctions_rag.retrieval.chroma_store import ChromaVectorStore

            vector_store = ChromaVectorStore(
                config.chroma_collection,
                host=config.chroma_host,
                port=config.chroma_port,
                embedding_model=config.embedding_model,
            )
        if ledger is None:
            ledger = SqlIngestionLedger(config.ledger_database_url)
        return cls(
            default_registry(),
            chunker,
            vector_store,
            ledger,
            max_workers=config.ingestion_max_workers,
        )

    # -- public API -----------------------------------------------------------

    def run(self, pattern: str) -> IngestionReport:
        """Ingest every new resource matching *pattern*.

        Raises
        ------
        PersistenceError
            When the vector store or ledger rejects a write.  Sources
            persisted and recorded before the failure stay recorded.
        """
        with self._run_lock:
            return self._run(pattern)

    # -- internals ------------------------------------------------------------

    def _run(self, pattern: str) -> IngestionReport:
        report = IngestionReport(pattern=pattern)
        logger.info("Starting ingestion for source pattern %s", pattern)

        resources = discover_resources(pattern)
        report.discovered = len(resources)
        if not resources:
            logger.warning("No resources found for pattern %r, nothing to ingest", pattern)
            return report

        pending = self._select(resources, report)
        parsed = self._parse_all(pending, report)

        documents: list[Document] = []
        for resource, docs in parsed:
            for doc in docs:
                _stamp_provenance(doc, resource)
            documents.extend(docs)
        report.documents_parsed = len(documents)

        if not documents:
            logger.info("Parsing produced no documents")
        else:
            logger.info("Splitting %d documents into chunks", len(documents))
        chunks = self._chunker.split_documents(documents)
        logger.info("Created %d chunks", len(chunks))

        by_source: dict[str, list[Document]] = {resource.source_id: [] for resource, _ in parsed}
        for chunk in chunks:
            by_source[chunk.metadata["source_id"]].append(chunk)

        for source_id, source_chunks in by_source.items():
            self._persist(source_id, source_chunks)
            report.ingested[source_id] = len(source_chunks)
            logger.info("Ingested %s (%d chunks)", source_id, len(source_chunks))

        logger.info(report.summary())
        return report

    def _select(
        self, resources: list[Resource], report: IngestionReport
    ) -> list[tuple[Resource, IngestionStrategy]]:
        pending: list[tuple[Resource, IngestionStrategy]] = []
        claimed: set[str] = set()
        for resource in resources:
            source_id = resource.source_id
            if source_id in claimed or self._ledger.exists(source_id):
                logger.info("Skipping %s: already ingested", source_id)
                report.skipped_existing.append(source_id)
                continue
            strategy = self._registry.resolve(resource)
            if strategy is None:
                report.skipped_unsupported.append(source_id)
                continue
            claimed.add(source_id)
            pending.append((resource, strategy))
        return pending

    def _parse_all(
        self,
        pending: list[tuple[Resource, IngestionStrategy]],
        report: IngestionReport,
    ) -> list[tuple[Resource, list[Document]]]:
        if self._max_workers > 1 and len(pending) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                results = list(pool.map(lambda item: _parse_one(*item), pending))
        else:
            results = [_parse_one(resource, strategy) for resource, strategy in pending]

        parsed: list[tuple[Resource, list[Document]]] = []
        for (resource, _), docs in zip(pending, results):
            if docs is None:
                report.failed.append(resource.source_id)
            else:
                parsed.append((resource, docs))
        return parsed

    def _persist(self, source_id: str, chunks: list[Document]) -> None:
        try:
            if chunks:
                self._vector_store.add(chunks)
        except Exception as exc:
            raise PersistenceError(f"Vector store write failed for {source_id}", source_id=source_id) from exc
        try:
            self._ledger.save(source_id)
        except Exception as exc:
            raise PersistenceError(f"Ledger write failed for {source_id}", source_id=source_id) from exc


def _parse_one(resource: Resource, strategy: IngestionStrategy) -> list[Document] | None:
    try:
        return strategy.parse(resource)
    except Exception:
        logger.exception("Failed to ingest data from resource %s", resource.source_id)
        return None


def _stamp_provenance(doc: Document, resource: Resource) -> None:
    doc.metadata["source_id"] = resource.source_id
    doc.metadata["source_category"] = resource.category
    doc.metadata.setdefault("source", resource.filename)
    doc.metadata.setdefault("source_type", resource.extension.upper())
