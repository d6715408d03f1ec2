"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import chromadb
from langchain_core.documents import Document
from langchain_huggingface import HuggingFaceEmbeddings

from sanctions_rag.config import settings
from sanctions_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


def chunk_id(chunk: Document) -> str:
    """Deterministic id so re-ingesting a source overwrites instead of duplicating."""
    meta = chunk.metadata
    key = "\x1f".join(
        [
            str(meta.get("source_id", meta.get("source", ""))),
            str(meta.get("chunk_index", "")),
            chunk.page_content,
        ]
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:24]


def _flat_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Chroma metadata values must be flat str/int/float/bool."""
    return {k: v for k, v in metadata.items() if isinstance(v, (str, int, float, bool))}


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store using cosine distance.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    embedding_model:
        HuggingFace model id used for text → embedding conversion.
    batch_size:
        Max records per upsert call.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        embedding_model: str = settings.embedding_model,
        batch_size: int = 1000,
    ) -> None:
        super().__init__(collection_name)
        self._client = chromadb.HttpClient(host=host, port=port)
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )
        self._embedder = HuggingFaceEmbeddings(model_name=embedding_model)
        self._batch_size = batch_size

    # -- VectorStoreBase overrides --------------------------------------------

    def add(self, chunks: list[Document]) -> None:
        if not chunks:
            return
        for start in range(0, len(chunks), self._batch_size):
            batch = chunks[start : start + self._batch_size]
            texts = [c.page_content for c in batch]
            self._collection.upsert(
                ids=[chunk_id(c) for c in batch],
                embeddings=self._embedder.embed_documents(texts),
                documents=texts,
                metadatas=[_flat_metadata(c.metadata) for c in batch],
            )
            logger.info("Upserted %d chunks into %s", len(batch), self.collection_name)

    def search(
        self,
        query: str,
        *,
        similarity_threshold: float = 0.0,
        k: int = 4,
    ) -> list[Document]:
        results = self._collection.query(
            query_embeddings=[self._embedder.embed_query(query)],
            n_results=k,
            include=["documents", "metadatas", "distances"],
        )

        hits: list[Document] = []
        docs = results.get("documents", [[]])[0]
        metas = results.get("metadatas", [[]])[0]
        distances = results.get("distances", [[]])[0]

        for content, meta, dist in zip(docs, metas, distances):
            # Cosine distance → similarity in [0, 1] for normalised embeddings.
            score = 1.0 - dist
            if score < similarity_threshold:
                continue
            hits.append(Document(page_content=content or "", metadata={**(meta or {}), "score": score}))
        logger.debug("Chroma returned %d hits above %.2f for %r", len(hits), similarity_threshold, query)
        return hits

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
