"""Abstract base class for vector-store backends.

The ingestion runner only calls :meth:`VectorStoreBase.add`; the query
orchestrator only calls :meth:`VectorStoreBase.search`.  Adding a new
backend means subclassing and implementing those plus a health check.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from langchain_core.documents import Document


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add(self, chunks: list[Document]) -> None:
        """Embed and persist *chunks*.  Must raise on failure."""
        ...

    @abstractmethod
    def search(
        self,
        query: str,
        *,
        similarity_threshold: float = 0.0,
        k: int = 4,
    ) -> list[Document]:
        """Return up to *k* chunks whose similarity to *query* is at least
        *similarity_threshold*, most similar first.

        Implementations record the similarity under ``metadata["score"]``.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...
