"""Capability and cost aware model selection with bounded provider calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping

from .models import DEFAULT_MODELS, KNOWN_PROVIDERS, Completion, ModelConfig, RoutingTask
from .providers import OllamaProvider, ProviderClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7


class ModelRouterError(RuntimeError):
    """Base class for routing and provider failures."""


class UnsupportedProviderError(ModelRouterError):
    """Raised for a provider id the router does not know."""


class ProviderUnavailableError(ModelRouterError):
    """Raised when a known provider has no configured client."""


class ModelTimeoutError(ModelRouterError):
    """Raised when a provider call exceeds the configured timeout."""


class NoModelAvailableError(ModelRouterError):
    """Raised when no registered model satisfies a routing task."""


class ModelRouter:
    """Pick a model for a task and dispatch completions to its provider.

    A failed call against a local model is retried exactly once against the
    fallback cloud model. Cloud failures propagate as ``ModelRouterError``.
    """

    def __init__(
        self,
        providers: Mapping[str, ProviderClient],
        *,
        models: Iterable[ModelConfig] | None = None,
        timeout: float = 15.0,
        primary_model: str = "claude-sonnet-4",
        default_model: str = "claude-3-7-sonnet",
        fallback_model: str = "gpt-4o-mini",
    ) -> None:
        self._providers = dict(providers)
        self._models: dict[str, ModelConfig] = {
            model.key: model for model in (models if models is not None else DEFAULT_MODELS)
        }
        self._timeout = timeout
        self._primary_model = primary_model
        self._default_model = default_model
        self._fallback_model = fallback_model

    @property
    def timeout(self) -> float:
        return self._timeout

    def get_model(self, key: str) -> ModelConfig:
        try:
            return self._models[key]
        except KeyError as exc:
            raise NoModelAvailableError(f"Unknown model '{key}'") from exc

    def available_models(self) -> list[ModelConfig]:
        return list(self._models.values())

    def is_provider_configured(self, provider: str) -> bool:
        return provider in self._providers

    def provider_status(self) -> dict[str, bool]:
        return {provider: provider in self._providers for provider in sorted(KNOWN_PROVIDERS)}

    def route_request(self, task: RoutingTask) -> ModelConfig:
        candidates = [
            model
            for model in self._models.values()
            if task.type in model.capabilities
            and model.max_tokens >= task.tokens
            and self.is_provider_configured(model.provider)
        ]
        if not candidates:
            raise NoModelAvailableError(
                f"No configured model supports '{task.type}' with {task.tokens} tokens"
            )

        if task.complexity == "low" and task.prefer_local is not False:
            for model in candidates:
                if model.local:
                    return model

        cloud = [model for model in candidates if not model.local]
        if task.complexity == "high" or task.urgency == "high":
            primary = self._models.get(self._primary_model)
            if primary is not None and primary in candidates:
                return primary
            if cloud:
                # max() keeps the first entry on ties, preserving registry order
                return max(cloud, key=lambda model: len(model.capabilities))
        else:
            default = self._models.get(self._default_model)
            if default is not None and default in candidates:
                return default
            if cloud:
                return cloud[0]

        # Only local models qualify.
        return candidates[0]

    async def generate_completion(
        self,
        model: ModelConfig,
        messages: list[dict[str, str]],
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> Completion:
        if model.provider not in KNOWN_PROVIDERS:
            raise UnsupportedProviderError(f"Unsupported provider: {model.provider}")

        try:
            return await self._invoke(
                model, messages, max_tokens=max_tokens, temperature=temperature, json_mode=json_mode
            )
        except ModelRouterError as exc:
            if not model.local:
                raise
            fallback = self.get_model(self._fallback_model)
            logger.warning(
                "Local model request failed, falling back to %s",
                fallback.key,
                extra={"model": model.key, "error": str(exc)},
            )
            return await self._invoke(
                fallback, messages, max_tokens=max_tokens, temperature=temperature, json_mode=json_mode
            )

    async def _invoke(
        self,
        model: ModelConfig,
        messages: list[dict[str, str]],
        *,
        max_tokens: int | None,
        temperature: float | None,
        json_mode: bool,
    ) -> Completion:
        provider = self._providers.get(model.provider)
        if provider is None:
            raise ProviderUnavailableError(f"Provider '{model.provider}' is not configured")

        try:
            return await asyncio.wait_for(
                provider.complete(
                    model,
                    messages,
                    max_tokens=min(max_tokens or DEFAULT_MAX_TOKENS, model.max_tokens),
                    temperature=DEFAULT_TEMPERATURE if temperature is None else temperature,
                    json_mode=json_mode,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ModelTimeoutError(
                f"Model '{model.key}' did not respond within {self._timeout:g}s"
            ) from exc
        except ModelRouterError:
            raise
        except Exception as exc:
            raise ModelRouterError(f"Model '{model.key}' request failed: {exc}") from exc

    def _ollama(self) -> OllamaProvider | None:
        provider = self._providers.get("ollama")
        return provider if isinstance(provider, OllamaProvider) else None

    async def list_local_models(self) -> list[str]:
        ollama = self._ollama()
        if ollama is None:
            return []
        try:
            return await asyncio.wait_for(ollama.list_models(), timeout=self._timeout)
        except Exception as exc:
            logger.warning("Failed to list Ollama models: %s", exc)
            return []

    def describe(self) -> list[dict[str, Any]]:
        return [
            {**model.to_json(), "available": self.is_provider_configured(model.provider)}
            for model in self._models.values()
        ]


__all__ = [
    "ModelRouter",
    "ModelRouterError",
    "ModelTimeoutError",
    "NoModelAvailableError",
    "ProviderUnavailableError",
    "UnsupportedProviderError",
]
