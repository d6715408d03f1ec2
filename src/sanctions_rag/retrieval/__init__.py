"""
Retrieval — vector storage and similarity search.

This module wraps the vector store behind a small interface so that
ingestion and the assistant never need to know which DB is backing it.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend.
- :class:`ChromaVectorStore` — default Chroma backend.
"""

from sanctions_rag.retrieval.base import VectorStoreBase

__all__ = [
    "ChromaVectorStore",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from sanctions_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
