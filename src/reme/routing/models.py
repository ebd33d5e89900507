"""Model registry types for the router."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import Field

from ..storage.models import RemeModel

TaskType = Literal["code", "analysis", "reasoning", "completion", "vision"]
Level = Literal["low", "medium", "high"]

KNOWN_PROVIDERS = frozenset({"openai", "anthropic", "ollama", "local"})


class ModelConfig(RemeModel):
    """A routable model. ``key`` is the registry name, ``name`` the provider-side id."""

    key: str
    name: str
    provider: str
    max_tokens: int
    cost_per_token: float = 0.0
    capabilities: list[str] = Field(default_factory=list)
    local: bool = False


class RoutingTask(RemeModel):
    type: TaskType
    complexity: Level = "medium"
    urgency: Level = "medium"
    tokens: int = Field(default=0, ge=0)
    prefer_local: bool | None = None


@dataclass(slots=True)
class Completion:
    """Normalized provider response."""

    content: str
    tokens: int
    cost: float
    model: str
    provider: str

    def to_json(self) -> dict[str, object]:
        return {
            "content": self.content,
            "tokens": self.tokens,
            "cost": self.cost,
            "model": self.model,
            "provider": self.provider,
        }


_FULL = ["code", "analysis", "reasoning", "vision"]

DEFAULT_MODELS: tuple[ModelConfig, ...] = (
    ModelConfig(
        key="claude-sonnet-4",
        name="claude-sonnet-4-20250514",
        provider="anthropic",
        max_tokens=200000,
        cost_per_token=0.00003,
        capabilities=list(_FULL),
    ),
    ModelConfig(
        key="claude-3-7-sonnet",
        name="claude-3-7-sonnet-20250219",
        provider="anthropic",
        max_tokens=200000,
        cost_per_token=0.00003,
        capabilities=list(_FULL),
    ),
    ModelConfig(
        key="gpt-4o",
        name="gpt-4o",
        provider="openai",
        max_tokens=128000,
        cost_per_token=0.00003,
        capabilities=list(_FULL),
    ),
    ModelConfig(
        key="gpt-4o-mini",
        name="gpt-4o-mini",
        provider="openai",
        max_tokens=128000,
        cost_per_token=0.000015,
        capabilities=["code", "analysis", "reasoning"],
    ),
    ModelConfig(
        key="codegemma",
        name="codegemma:7b",
        provider="ollama",
        max_tokens=8192,
        capabilities=["code", "completion"],
        local=True,
    ),
    ModelConfig(
        key="qwen2.5-coder",
        name="qwen2.5-coder:7b",
        provider="ollama",
        max_tokens=32768,
        capabilities=["code", "analysis", "reasoning"],
        local=True,
    ),
    ModelConfig(
        key="llama3.2",
        name="llama3.2:3b",
        provider="ollama",
        max_tokens=128000,
        capabilities=["reasoning", "analysis"],
        local=True,
    ),
)


__all__ = [
    "Completion",
    "DEFAULT_MODELS",
    "KNOWN_PROVIDERS",
    "Level",
    "ModelConfig",
    "RoutingTask",
    "TaskType",
]
