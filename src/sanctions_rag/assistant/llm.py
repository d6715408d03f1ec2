"""LLM initialisation and the completion-engine interface.

The query orchestrator talks to a :class:`CompletionEngine`, never to a
provider SDK.  :class:`ChatModelCompletionEngine` adapts any LangChain
chat model; :func:`get_llm` builds the configured ``ChatOpenAI`` client.

Two provider modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible server** (vLLM, Ollama, …) — set ``LLM_BASE_URL``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from sanctions_rag.config import settings

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)


def get_llm(temperature: float | None = None) -> ChatOpenAI:
    """Return the configured chat model.

    When ``settings.llm_base_url`` is set the client is pointed at an
    OpenAI-compatible server instead of the OpenAI cloud API.  A dummy
    API key (``"EMPTY"``) is used because local servers do not require
    authentication.
    """
    kwargs: dict = {
        "model": settings.llm_model_name,
        "temperature": settings.llm_temperature if temperature is None else temperature,
    }

    if settings.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", settings.llm_base_url)
        kwargs["base_url"] = settings.llm_base_url
        # Local servers don't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = settings.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = settings.openai_api_key

    return ChatOpenAI(**kwargs)


def build_messages(
    system_prompt: str,
    user_prompt: str,
    prior_turns: Sequence[BaseMessage] = (),
) -> list[BaseMessage]:
    """Assemble ``[system?, *prior_turns, user]`` for a chat model."""
    messages: list[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    messages.extend(prior_turns)
    messages.append(HumanMessage(content=user_prompt))
    return messages


class CompletionEngine(ABC):
    """Streaming text completion."""

    @abstractmethod
    def astream(
        self,
        system_prompt: str,
        user_prompt: str,
        prior_turns: Sequence[BaseMessage] = (),
    ) -> AsyncIterator[str]:
        """Yield answer text chunks in generation order."""
        ...

    async def acomplete(
        self,
        system_prompt: str,
        user_prompt: str,
        prior_turns: Sequence[BaseMessage] = (),
    ) -> str:
        """Non-streaming convenience: the concatenated stream."""
        return "".join([chunk async for chunk in self.astream(system_prompt, user_prompt, prior_turns)])


class ChatModelCompletionEngine(CompletionEngine):
    """Adapter from a LangChain chat model to :class:`CompletionEngine`."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    @classmethod
    def from_settings(cls) -> ChatModelCompletionEngine:
        return cls(get_llm())

    async def astream(
        self,
        system_prompt: str,
        user_prompt: str,
        prior_turns: Sequence[BaseMessage] = (),
    ) -> AsyncIterator[str]:
        messages = build_messages(system_prompt, user_prompt, prior_turns)
        async for chunk in self._llm.astream(messages):
            text = _content_text(chunk.content)
            if text:
                yield text


def _content_text(content: str | list) -> str:
    if isinstance(content, str):
        return content
    # Multi-part content: keep the text parts only.
    return "".join(
        part if isinstance(part, str) else str(part.get("text", ""))
        for part in content
        if isinstance(part, str) or part.get("type") == "text"
    )
