"""Unit tests for the chunker module."""

from __future__ import annotations

import pytest
from langchain_core.documents import Document

from sanctions_rag.config import Settings
from sanctions_rag.exceptions import ChunkerConfigError
from sanctions_rag.ingestion.chunker import (
    SlidingWindowSplitter,
    TokenBudgetSplitter,
    build_chunker,
    estimate_tokens,
)


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


def test_estimate_tokens_rounds_up() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


# ── Sliding window ─────────────────────────────────────────────────────


class TestSlidingWindowSplitter:
    def test_1200_words_produce_three_windows(self) -> None:
        splitter = SlidingWindowSplitter(window_size=500, overlap=50)
        chunks = splitter.split(Document(page_content=_words(1200)))

        offsets = [(int(c.metadata["chunk_start"]), int(c.metadata["chunk_end"])) for c in chunks]
        assert splitter.step == 450
        assert offsets == [(0, 500), (450, 950), (900, 1200)]

    def test_window_text_matches_offsets(self) -> None:
        chunks = SlidingWindowSplitter(window_size=500, overlap=50).split(Document(page_content=_words(1200)))
        last = chunks[-1].page_content.split()
        assert last[0] == "w900"
        assert last[-1] == "w1199"
        assert len(last) == 300

    @pytest.mark.parametrize("text", ["", "   ", "\n\t  \n"])
    def test_blank_text_produces_no_chunks(self, text: str) -> None:
        assert SlidingWindowSplitter().split(Document(page_content=text)) == []

    def test_short_document_is_one_window(self) -> None:
        chunks = SlidingWindowSplitter(window_size=500, overlap=50).split(Document(page_content=_words(10)))
        assert len(chunks) == 1
        assert chunks[0].metadata["chunk_end"] == "10"

    def test_metadata_is_inherited(self) -> None:
        doc = Document(page_content=_words(700), metadata={"source": "registro.csv"})
        chunks = SlidingWindowSplitter(window_size=500, overlap=50).split(doc)
        assert all(c.metadata["source"] == "registro.csv" for c in chunks)
        assert [c.metadata["chunk_index"] for c in chunks] == ["0", "1"]
        assert "chunk_index" not in doc.metadata

    @pytest.mark.parametrize("overlap", [500, 600, -1])
    def test_invalid_overlap_raises(self, overlap: int) -> None:
        with pytest.raises(ChunkerConfigError):
            SlidingWindowSplitter(window_size=500, overlap=overlap)

    def test_config_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            SlidingWindowSplitter(window_size=0, overlap=0)


# ── Token budget ───────────────────────────────────────────────────────


class TestTokenBudgetSplitter:
    SENTENCE = "La entidad fue sancionada por incumplir sus obligaciones. "

    def test_short_document_yields_single_chunk(self) -> None:
        chunks = TokenBudgetSplitter().split(Document(page_content="Multa de RD$ 100."))
        assert [c.page_content for c in chunks] == ["Multa de RD$ 100."]

    def test_chunks_respect_budget_and_minimum(self) -> None:
        splitter = TokenBudgetSplitter(target_tokens=504, min_chunk_chars=100, min_chunk_tokens=50)
        chunks = splitter.split(Document(page_content=self.SENTENCE * 200))

        assert len(chunks) > 1
        assert all(estimate_tokens(c.page_content) <= 504 for c in chunks)
        assert all(len(c.page_content) >= 100 for c in chunks[:-1])

    def test_cuts_at_sentence_boundary(self) -> None:
        splitter = TokenBudgetSplitter(target_tokens=10, min_chunk_chars=5, min_chunk_tokens=1)
        text = "Primera frase aqui. Segunda frase aqui. Tercera."
        chunks = splitter.split(Document(page_content=text))

        assert [c.page_content for c in chunks] == ["Primera frase aqui. Segunda frase aqui.", "Tercera."]
        assert (chunks[0].metadata["chunk_start"], chunks[0].metadata["chunk_end"]) == ("0", "39")
        assert (chunks[1].metadata["chunk_start"], chunks[1].metadata["chunk_end"]) == ("40", "48")

    def test_max_chunks_caps_output(self) -> None:
        splitter = TokenBudgetSplitter(target_tokens=50, min_chunk_chars=10, min_chunk_tokens=1, max_chunks=2)
        chunks = splitter.split(Document(page_content=self.SENTENCE * 50))
        assert len(chunks) == 2

    @pytest.mark.parametrize(
        ("min_chunk_chars", "min_chunk_tokens"),
        [(20, 1), (0, 5)],
        ids=["below-min-chars", "below-min-tokens"],
    )
    def test_small_trailing_piece_is_dropped(self, min_chunk_chars: int, min_chunk_tokens: int) -> None:
        splitter = TokenBudgetSplitter(
            target_tokens=10, min_chunk_chars=min_chunk_chars, min_chunk_tokens=min_chunk_tokens
        )
        text = "Esta es una frase de prueba larga. Fin de texto."
        chunks = splitter.split(Document(page_content=text))
        assert [c.page_content for c in chunks] == ["Esta es una frase de prueba larga."]

    def test_dropping_separators_joins_on_the_boundary(self) -> None:
        splitter = TokenBudgetSplitter(target_tokens=10, min_chunk_chars=5, min_chunk_tokens=1, keep_separators=False)
        text = "Primera frase aqui. Segunda frase aqui. Tercera."
        chunks = splitter.split(Document(page_content=text))

        assert [c.page_content for c in chunks] == ["Primera frase aqui", "Segunda frase aqui. Tercera."]
        assert (chunks[1].metadata["chunk_start"], chunks[1].metadata["chunk_end"]) == ("20", "48")

    def test_unpunctuated_text_is_cut_between_words(self) -> None:
        chunks = TokenBudgetSplitter().split(Document(page_content=" ".join(["sancionada"] * 400)))

        assert len(chunks) > 1
        assert all(estimate_tokens(c.page_content) <= 504 for c in chunks)
        assert all(word == "sancionada" for c in chunks for word in c.page_content.split(" "))
        assert sum(len(c.page_content.split()) for c in chunks) == 400

    def test_single_piece_is_kept_regardless_of_minimums(self) -> None:
        chunks = TokenBudgetSplitter(min_chunk_chars=100, min_chunk_tokens=50).split(Document(page_content="Fin."))
        assert [c.page_content for c in chunks] == ["Fin."]

    def test_blank_text_produces_no_chunks(self) -> None:
        assert TokenBudgetSplitter().split(Document(page_content="  \n ")) == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"target_tokens": 0},
            {"max_chunks": 0},
            {"min_chunk_chars": -1},
            {"target_tokens": 10, "min_chunk_tokens": 11},
        ],
    )
    def test_invalid_configuration_raises(self, kwargs: dict) -> None:
        with pytest.raises(ChunkerConfigError):
            TokenBudgetSplitter(**kwargs)


# ── Factory ────────────────────────────────────────────────────────────


class TestBuildChunker:
    def test_builds_window_splitter_from_settings(self) -> None:
        chunker = build_chunker("window", Settings(window_size=100, window_overlap=10))
        assert isinstance(chunker, SlidingWindowSplitter)
        assert chunker.step == 90

    def test_builds_token_splitter_from_settings(self) -> None:
        chunker = build_chunker("token", Settings(token_chunk_size=200, token_min_chunk_tokens=20))
        assert isinstance(chunker, TokenBudgetSplitter)
        assert chunker.target_tokens == 200

    def test_bad_settings_fail_fast(self) -> None:
        with pytest.raises(ChunkerConfigError):
            build_chunker("window", Settings(window_size=50, window_overlap=50))

    def test_unknown_kind_raises(self) -> None:
        with pytest.raises(ChunkerConfigError):
            build_chunker("semantic", Settings())

    def test_split_documents_preserves_order(self) -> None:
        docs = [Document(page_content="uno dos"), Document(page_content="tres")]
        chunks = SlidingWindowSplitter(window_size=5, overlap=1).split_documents(docs)
        assert [c.page_content for c in chunks] == ["uno dos", "tres"]
