"""Provider clients for OpenAI, Anthropic and a local Ollama runtime."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import anthropic
import httpx
import openai

from ..config import RemeSettings
from .models import Completion, ModelConfig

logger = logging.getLogger(__name__)


class ProviderClient(Protocol):
    """Minimal interface the router needs from a provider."""

    async def complete(
        self,
        model: ModelConfig,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> Completion:
        ...


class OpenAIProvider:
    """Chat completions through ``openai.AsyncOpenAI``."""

    def __init__(self, api_key: str, *, client: Any | None = None) -> None:
        self._api_key = api_key
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def complete(
        self,
        model: ModelConfig,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> Completion:
        params: dict[str, Any] = {
            "model": model.name,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        response = await self._get_client().chat.completions.create(**params)
        content = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else 0
        return Completion(
            content=content,
            tokens=tokens,
            cost=tokens * model.cost_per_token,
            model=model.key,
            provider=model.provider,
        )


class AnthropicProvider:
    """Messages API through ``anthropic.AsyncAnthropic``."""

    def __init__(self, api_key: str, *, client: Any | None = None) -> None:
        self._api_key = api_key
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def complete(
        self,
        model: ModelConfig,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> Completion:
        # Anthropic takes the system prompt as a separate parameter.
        system_parts = [message["content"] for message in messages if message.get("role") == "system"]
        conversation = [message for message in messages if message.get("role") != "system"]
        if json_mode:
            system_parts.append("Respond with a single JSON object and nothing else.")

        params: dict[str, Any] = {
            "model": model.name,
            "messages": conversation,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system_parts:
            params["system"] = "\n\n".join(system_parts)

        response = await self._get_client().messages.create(**params)
        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = getattr(response, "usage", None)
        tokens = (usage.input_tokens + usage.output_tokens) if usage else 0
        return Completion(
            content=content,
            tokens=tokens,
            cost=tokens * model.cost_per_token,
            model=model.key,
            provider=model.provider,
        )


class OllamaProvider:
    """Local models served by Ollama's HTTP API."""

    def __init__(
        self,
        host: str = "http://localhost:11434",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._host = host.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._host, transport=self._transport, timeout=self._timeout)

    async def complete(
        self,
        model: ModelConfig,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> Completion:
        payload: dict[str, Any] = {
            "model": model.name,
            "messages": messages,
            "stream": False,
            "options": {"num_predict": max_tokens, "temperature": temperature},
        }
        if json_mode:
            payload["format"] = "json"

        async with self._client() as client:
            response = await client.post("/api/chat", json=payload)
            response.raise_for_status()
            data = response.json()

        return Completion(
            content=data.get("message", {}).get("content", ""),
            tokens=0,
            cost=0.0,
            model=model.key,
            provider=model.provider,
        )

    async def list_models(self) -> list[str]:
        async with self._client() as client:
            response = await client.get("/api/tags")
            response.raise_for_status()
            data = response.json()
        return [entry["name"] for entry in data.get("models", []) if "name" in entry]


def build_providers(settings: RemeSettings) -> dict[str, ProviderClient]:
    """Instantiate the providers whose credentials are present."""

    providers: dict[str, ProviderClient] = {}
    if settings.openai_api_key:
        providers["openai"] = OpenAIProvider(settings.openai_api_key)
    else:
        logger.warning("OPENAI_API_KEY not provided, OpenAI models will be unavailable")

    if settings.anthropic_api_key:
        providers["anthropic"] = AnthropicProvider(settings.anthropic_api_key)
    else:
        logger.warning("ANTHROPIC_API_KEY not provided, Anthropic models will be unavailable")

    if settings.ollama_host:
        providers["ollama"] = OllamaProvider(settings.ollama_host)
    return providers


__all__ = [
    "AnthropicProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "ProviderClient",
    "build_providers",
]
