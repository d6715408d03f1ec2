"""Text chunking strategies.

Two independent policies split a parsed :class:`Document` into
retrieval-sized chunks:

* :class:`TokenBudgetSplitter` — recursive cuts on an approximate token budget,
  preferring sentence / paragraph boundaries.
* :class:`SlidingWindowSplitter` — fixed word windows with overlap.

Both are pure: the same input and configuration always yields the same
chunks.  Every chunk inherits the parent's metadata and adds
``chunk_index``, ``chunk_start`` and ``chunk_end``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

from sanctions_rag.exceptions import ChunkerConfigError

if TYPE_CHECKING:
    from sanctions_rag.config import Settings

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
"""Fixed approximation used by :func:`estimate_tokens`."""

# Paragraph, line, sentence, word, character: coarsest boundary first.
_SEPARATORS = ["\n\n", "\n", ". ", "? ", "! ", " ", ""]


def estimate_tokens(text: str) -> int:
    """Approximate the token count of *text* (one token per 4 chars, rounded up)."""
    return -(-len(text) // CHARS_PER_TOKEN)


class TextChunker(ABC):
    """Common interface for the splitting policies."""

    @abstractmethod
    def split(self, document: Document) -> list[Document]:
        """Split one document into zero or more chunks."""
        ...

    def split_documents(self, documents: list[Document]) -> list[Document]:
        """Split every document in *documents*, preserving input order."""
        chunks: list[Document] = []
        for document in documents:
            chunks.extend(self.split(document))
        return chunks


def _make_chunk(parent: Document, index: int, start: int, end: int, text: str) -> Document:
    metadata = dict(parent.metadata)
    metadata.update(
        {
            "chunk_index": str(index),
            "chunk_start": str(start),
            "chunk_end": str(end),
        }
    )
    return Document(page_content=text, metadata=metadata)


class TokenBudgetSplitter(TextChunker):
    """Split on an estimated token budget.

    Cutting is delegated to LangChain's ``RecursiveCharacterTextSplitter``
    measured with :func:`estimate_tokens`: it breaks on paragraphs first,
    then lines, sentences and words, and only splits inside a word when a
    single word exceeds the budget.

    Parameters
    ----------
    target_tokens:
        Upper bound on :func:`estimate_tokens` for every emitted chunk.
    min_chunk_chars:
        Chunks shorter than this many characters are dropped.
    min_chunk_tokens:
        Chunks estimated below this many tokens are not embedded.
    max_chunks:
        Hard cap on chunks per document; the remainder is discarded.
    keep_separators:
        Keep the boundary (``". "``, ``"\\n"``, …) at the end of the chunk
        it closes.  When false the boundary at a cut is dropped.

    A document that fits in a single piece always yields exactly that one
    chunk, whatever its size.  Offsets in ``chunk_start`` / ``chunk_end``
    are character positions in the parent text.
    """

    def __init__(
        self,
        target_tokens: int = 504,
        min_chunk_chars: int = 100,
        min_chunk_tokens: int = 50,
        max_chunks: int = 100,
        keep_separators: bool = True,
    ) -> None:
        if target_tokens <= 0:
            raise ChunkerConfigError(f"target_tokens ({target_tokens}) must be > 0")
        if max_chunks <= 0:
            raise ChunkerConfigError(f"max_chunks ({max_chunks}) must be > 0")
        if min_chunk_chars < 0 or min_chunk_tokens < 0:
            raise ChunkerConfigError("minimum chunk sizes must be >= 0")
        if min_chunk_tokens > target_tokens:
            raise ChunkerConfigError(
                f"min_chunk_tokens ({min_chunk_tokens}) must be <= target_tokens ({target_tokens})"
            )
        self.target_tokens = target_tokens
        self.min_chunk_chars = min_chunk_chars
        self.min_chunk_tokens = min_chunk_tokens
        self.max_chunks = max_chunks
        self.keep_separators = keep_separators
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=target_tokens,
            chunk_overlap=0,
            length_function=estimate_tokens,
            separators=_SEPARATORS,
            keep_separator="end" if keep_separators else False,
        )

    def split(self, document: Document) -> list[Document]:
        text = document.page_content or ""
        if not text.strip():
            return []

        pieces = self._cut(text)
        if len(pieces) > 1:
            pieces = [
                (start, end, piece)
                for start, end, piece in pieces
                if len(piece) >= self.min_chunk_chars and estimate_tokens(piece) >= self.min_chunk_tokens
            ]
        if len(pieces) > self.max_chunks:
            logger.debug("Truncating %d chunks to %d", len(pieces), self.max_chunks)
            pieces = pieces[: self.max_chunks]

        return [_make_chunk(document, i, start, end, piece) for i, (start, end, piece) in enumerate(pieces)]

    def _cut(self, text: str) -> list[tuple[int, int, str]]:
        pieces: list[tuple[int, int, str]] = []
        cursor = 0
        for piece in self._splitter.split_text(text):
            # No overlap, so every piece starts at or after the previous end.
            start = text.find(piece, cursor)
            if start < 0:
                start = cursor
            end = start + len(piece)
            pieces.append((start, end, piece))
            cursor = end
        return pieces


class SlidingWindowSplitter(TextChunker):
    """Split into overlapping windows of whitespace-separated words.

    Windows start at ``0, step, 2*step, …`` with ``step = window_size -
    overlap``; the last window ends exactly at the final word.
    ``chunk_start`` / ``chunk_end`` are word offsets (end exclusive).
    """

    def __init__(self, window_size: int = 500, overlap: int = 50) -> None:
        if window_size <= 0:
            raise ChunkerConfigError(f"window_size ({window_size}) must be > 0")
        if overlap < 0 or overlap >= window_size:
            raise ChunkerConfigError(f"overlap ({overlap}) must be >= 0 and < window_size ({window_size})")
        self.window_size = window_size
        self.overlap = overlap

    @property
    def step(self) -> int:
        return self.window_size - self.overlap

    def split(self, document: Document) -> list[Document]:
        words = (document.page_content or "").split()
        chunks: list[Document] = []
        start = 0
        while start < len(words):
            end = min(len(words), start + self.window_size)
            chunks.append(_make_chunk(document, len(chunks), start, end, " ".join(words[start:end])))
            if end == len(words):
                break
            start += self.step
        return chunks


def build_chunker(kind: str, config: Settings | None = None) -> TextChunker:
    """Build the splitter named *kind* (``"token"`` or ``"window"``) from settings."""
    if config is None:
        from sanctions_rag.config import settings as config

    if kind == "token":
        return TokenBudgetSplitter(
            target_tokens=config.token_chunk_size,
            min_chunk_chars=config.token_min_chunk_chars,
            min_chunk_tokens=config.token_min_chunk_tokens,
            max_chunks=config.token_max_chunks,
            keep_separators=config.token_keep_separators,
        )
    if kind == "window":
        return SlidingWindowSplitter(window_size=config.window_size, overlap=config.window_overlap)
    raise ChunkerConfigError(f"Unsupported chunker {kind!r}; expected 'token' or 'window'")
