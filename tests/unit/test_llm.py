"""Unit tests for the completion-engine adapter and LLM factory."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from sanctions_rag.assistant.llm import (
    ChatModelCompletionEngine,
    _content_text,
    build_messages,
    get_llm,
)
from sanctions_rag.config import settings


class TestBuildMessages:
    def test_system_prompt_first_then_history_then_user(self) -> None:
        prior = [HumanMessage(content="q0"), AIMessage(content="a0")]
        messages = build_messages("sistema", "q1", prior)

        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
        assert messages[-1].content == "q1"

    def test_empty_system_prompt_is_omitted(self) -> None:
        messages = build_messages("", "hola")
        assert len(messages) == 1
        assert isinstance(messages[0], HumanMessage)


class TestChatModelCompletionEngine:
    def test_streams_model_output(self) -> None:
        model = GenericFakeChatModel(messages=iter([AIMessage(content="Multa de cien mil pesos")]))
        engine = ChatModelCompletionEngine(model)

        async def scenario() -> list[str]:
            return [chunk async for chunk in engine.astream("sistema", "¿monto?")]

        chunks = asyncio.run(scenario())
        assert len(chunks) > 1
        assert "".join(chunks) == "Multa de cien mil pesos"

    def test_acomplete_concatenates(self) -> None:
        model = GenericFakeChatModel(messages=iter([AIMessage(content="Sin registros.")]))
        answer = asyncio.run(ChatModelCompletionEngine(model).acomplete("", "hola"))
        assert answer == "Sin registros."

    def test_content_text_keeps_text_parts(self) -> None:
        content = [{"type": "text", "text": "uno"}, {"type": "image_url", "image_url": "x"}, " dos"]
        assert _content_text(content) == "uno dos"
        assert _content_text("plano") == "plano"


class TestGetLlm:
    def test_compatible_endpoint_gets_dummy_key(self) -> None:
        with (
            patch.object(settings, "llm_base_url", "http://localhost:11434/v1"),
            patch.object(settings, "openai_api_key", ""),
            patch("sanctions_rag.assistant.llm.ChatOpenAI") as chat_cls,
        ):
            get_llm()

        kwargs = chat_cls.call_args.kwargs
        assert kwargs["base_url"] == "http://localhost:11434/v1"
        assert kwargs["api_key"] == "EMPTY"

    def test_temperature_override(self) -> None:
        with patch("sanctions_rag.assistant.llm.ChatOpenAI") as chat_cls:
            get_llm(temperature=0.5)
        assert chat_cls.call_args.kwargs["temperature"] == 0.5
