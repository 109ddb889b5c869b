"""Tests for LLM service — adapters, error mapping, provider selection."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gestor.core.exceptions import LLMProviderError
from gestor.services.llm import Completion, GeminiAdapter, LLMService, OpenAIAdapter


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

class TestGeminiAdapter:

    async def test_generate_text(self):
        with patch("gestor.services.llm.genai.Client") as client_cls:
            adapter = GeminiAdapter(api_key="key")
        response = SimpleNamespace(
            text="Reduza o desperdício de ingredientes.",
            usage_metadata=SimpleNamespace(prompt_token_count=12, candidates_token_count=7),
        )
        client_cls.return_value.aio.models.generate_content = AsyncMock(return_value=response)

        completion = await adapter.generate_text("prompt", "gemini-2.5-flash", system_prompt="sys")

        assert completion == Completion(
            text="Reduza o desperdício de ingredientes.",
            model="gemini-2.5-flash",
            provider="gemini",
            usage={"prompt_tokens": 12, "completion_tokens": 7},
        )
        kwargs = client_cls.return_value.aio.models.generate_content.await_args.kwargs
        assert kwargs["contents"] == "prompt"
        assert kwargs["config"].system_instruction == "sys"

    async def test_provider_failure_is_mapped(self):
        with patch("gestor.services.llm.genai.Client") as client_cls:
            adapter = GeminiAdapter(api_key="key")
        client_cls.return_value.aio.models.generate_content = AsyncMock(
            side_effect=RuntimeError("quota exceeded")
        )

        with pytest.raises(LLMProviderError) as exc_info:
            await adapter.generate_text("prompt", "gemini-2.5-flash")
        assert exc_info.value.details["provider"] == "gemini"

    async def test_missing_key(self):
        with patch("gestor.services.llm.genai.Client"), \
                patch("gestor.services.llm.get_settings") as settings:
            settings.return_value.gemini_api_key = ""
            adapter = GeminiAdapter()
        with pytest.raises(LLMProviderError, match="API key not configured"):
            await adapter.generate_text("prompt", "gemini-2.5-flash")


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

class TestOpenAIAdapter:

    async def test_generate_text(self):
        with patch("gestor.services.llm.AsyncOpenAI") as client_cls:
            adapter = OpenAIAdapter(api_key="key")
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Aumente a margem."))],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=4),
        )
        client_cls.return_value.chat.completions.create = AsyncMock(return_value=response)

        completion = await adapter.generate_text("prompt", "gpt-4o-mini", system_prompt="sys")

        assert completion.text == "Aumente a margem."
        assert completion.provider == "openai"
        messages = client_cls.return_value.chat.completions.create.await_args.kwargs["messages"]
        assert messages == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "prompt"},
        ]

    async def test_provider_failure_is_mapped(self):
        with patch("gestor.services.llm.AsyncOpenAI") as client_cls:
            adapter = OpenAIAdapter(api_key="key")
        client_cls.return_value.chat.completions.create = AsyncMock(
            side_effect=RuntimeError("rate limited")
        )

        with pytest.raises(LLMProviderError, match="rate limited"):
            await adapter.generate_text("prompt", "gpt-4o-mini")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TestLLMService:

    def test_adapters_are_created_once(self, test_settings):
        service = LLMService(test_settings)
        with patch("gestor.services.llm.GeminiAdapter") as adapter_cls:
            first = service.get_adapter("gemini")
            second = service.get_adapter("gemini")
        assert first is second
        adapter_cls.assert_called_once()

    def test_unknown_provider(self, test_settings):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            LLMService(test_settings).get_adapter("claude")

    def test_prewarm_skips_unconfigured(self, test_settings):
        settings = test_settings.model_copy(update={"gemini_api_key": "g", "openai_api_key": ""})
        service = LLMService(settings)
        with patch("gestor.services.llm.GeminiAdapter") as gemini, \
                patch("gestor.services.llm.OpenAIAdapter") as openai:
            service.prewarm_adapters()
        gemini.assert_called_once_with("g")
        openai.assert_not_called()

    async def test_generate_text_uses_defaults(self, test_settings):
        service = LLMService(test_settings)
        adapter = MagicMock()
        adapter.generate_text = AsyncMock(
            return_value=Completion(text="ok", model="gemini-2.5-flash", provider="gemini")
        )
        with patch.object(service, "get_adapter", return_value=adapter) as get_adapter:
            completion = await service.generate_text("prompt", system_prompt="sys")

        assert completion.text == "ok"
        get_adapter.assert_called_once_with("gemini")
        adapter.generate_text.assert_awaited_once_with(
            "prompt", "gemini-2.5-flash", system_prompt="sys"
        )

    def test_providers(self, test_settings):
        assert LLMService(test_settings).get_providers() == ["gemini", "openai"]
