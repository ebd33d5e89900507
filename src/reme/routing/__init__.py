"""Model routing across cloud and local providers."""

from .models import DEFAULT_MODELS, Completion, ModelConfig, RoutingTask
from .providers import AnthropicProvider, OllamaProvider, OpenAIProvider, build_providers
from .router import (
    ModelRouter,
    ModelRouterError,
    ModelTimeoutError,
    NoModelAvailableError,
    ProviderUnavailableError,
    UnsupportedProviderError,
)

__all__ = [
    "AnthropicProvider",
    "Completion",
    "DEFAULT_MODELS",
    "ModelConfig",
    "ModelRouter",
    "ModelRouterError",
    "ModelTimeoutError",
    "NoModelAvailableError",
    "OllamaProvider",
    "OpenAIProvider",
    "ProviderUnavailableError",
    "RoutingTask",
    "UnsupportedProviderError",
    "build_providers",
]
