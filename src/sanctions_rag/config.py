"""Shared configuration loaded from environment / .env."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_FALLBACK_ANSWER = (
    "Lamento no disponer de esa información en mis registros. "
    "Estoy especializado únicamente en las sanciones publicadas por la SIMV. "
    "Si desea, intente formular la consulta de otra manera o facilitarme más "
    "detalles y con gusto le ayudaré."
)


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local vLLM)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="LLM model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible API. Leave empty to use OpenAI cloud, "
            "e.g. 'http://localhost:11434/v1' for a local Ollama server."
        ),
    )
    llm_temperature: float = 0.0

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "simv_sanciones"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    retrieval_k: int = 4
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)

    # Ingestion ledger
    ledger_database_url: str = "sqlite:///data/ingestion_history.db"

    # Ingestion
    ingestion_source_pattern: str = "data/simv/**/*.*"
    ingestion_chunker: Literal["token", "window"] = "token"
    ingestion_max_workers: int = Field(default=1, ge=1)

    # Token-budget splitter
    token_chunk_size: int = 504
    token_min_chunk_chars: int = 100
    token_min_chunk_tokens: int = 50
    token_max_chunks: int = 100
    token_keep_separators: bool = True

    # Sliding-window splitter
    window_size: int = 500
    window_overlap: int = 50

    # Conversation memory
    memory_max_messages: int = Field(default=6, ge=2, multiple_of=2)

    # Prompts
    fallback_answer: str = DEFAULT_FALLBACK_ANSWER
    plain_system_prompt: str = ""

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Module-level singleton, import `settings` wherever needed.
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for command-line entry points."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
