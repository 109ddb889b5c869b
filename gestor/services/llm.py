"""LLM provider adapters for text generation.

Supports multiple providers behind one interface:
- Google Gemini (default)
- OpenAI
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from google import genai
from google.genai import types as genai_types
from openai import AsyncOpenAI

from gestor.core.config import Settings, get_settings
from gestor.core.exceptions import LLMProviderError
from gestor.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Completion:
    """Text generated by a provider."""

    text: str
    model: str
    provider: str
    usage: dict[str, int] | None = None


class LLMAdapter(ABC):
    """Abstract base class for LLM provider adapters."""

    provider_name: str = "base"

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        model: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> Completion:
        """Generate a complete response for a single prompt."""
        ...


class GeminiAdapter(LLMAdapter):
    """Adapter for Google Gemini models."""

    provider_name = "gemini"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key or get_settings().gemini_api_key

        if not self.api_key:
            logger.warning("Gemini API key not configured")

        self.client = genai.Client(api_key=self.api_key)

    async def generate_text(
        self,
        prompt: str,
        model: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> Completion:
        if not self.api_key:
            raise LLMProviderError("gemini", "API key not configured")

        try:
            config = genai_types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                system_instruction=system_prompt,
            )
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.error("Gemini generation error", error=str(e), model=model)
            raise LLMProviderError("gemini", str(e))

        usage = None
        if response.usage_metadata is not None:
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count or 0,
                "completion_tokens": response.usage_metadata.candidates_token_count or 0,
            }
        return Completion(
            text=response.text or "",
            model=model,
            provider=self.provider_name,
            usage=usage,
        )


class OpenAIAdapter(LLMAdapter):
    """Adapter for OpenAI models."""

    provider_name = "openai"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key or get_settings().openai_api_key

        if not self.api_key:
            logger.warning("OpenAI API key not configured")

        self.client = AsyncOpenAI(api_key=self.api_key)

    async def generate_text(
        self,
        prompt: str,
        model: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> Completion:
        if not self.api_key:
            raise LLMProviderError("openai", "API key not configured")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error("OpenAI generation error", error=str(e), model=model)
            raise LLMProviderError("openai", str(e))

        usage = None
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
            }
        content = response.choices[0].message.content if response.choices else None
        return Completion(
            text=content or "",
            model=model,
            provider=self.provider_name,
            usage=usage,
        )


class LLMService:
    """Service class to manage LLM adapters.

    Adapters are created lazily; ``prewarm_adapters`` builds the configured
    ones at startup to avoid first-request latency.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._adapters: dict[str, LLMAdapter] = {}

    @property
    def default_provider(self) -> str:
        return self._settings.default_llm_provider

    @property
    def default_model(self) -> str:
        return self._settings.default_llm_model

    def get_adapter(self, provider: str) -> LLMAdapter:
        """Get or create an adapter for the specified provider."""
        if provider not in self._adapters:
            if provider == "gemini":
                self._adapters[provider] = GeminiAdapter(self._settings.gemini_api_key)
            elif provider == "openai":
                self._adapters[provider] = OpenAIAdapter(self._settings.openai_api_key)
            else:
                raise ValueError(f"Unknown LLM provider: {provider}")

        return self._adapters[provider]

    def prewarm_adapters(self) -> None:
        """Pre-initialize adapters whose API keys are configured."""
        configured = {
            "gemini": self._settings.gemini_api_key,
            "openai": self._settings.openai_api_key,
        }
        for provider, api_key in configured.items():
            if not api_key:
                continue
            try:
                self.get_adapter(provider)
                logger.info("Pre-warmed LLM adapter", provider=provider)
            except Exception as e:
                logger.warning("Failed to pre-warm LLM adapter", provider=provider, error=str(e))

    async def generate_text(
        self,
        prompt: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        system_prompt: str | None = None,
    ) -> Completion:
        """Generate text with the default (or given) provider and model."""
        adapter = self.get_adapter(provider or self.default_provider)
        return await adapter.generate_text(
            prompt,
            model or self.default_model,
            system_prompt=system_prompt,
        )

    def get_providers(self) -> list[str]:
        """Get list of available providers."""
        return ["gemini", "openai"]
