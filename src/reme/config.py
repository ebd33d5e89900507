"""Configuration management for Reme."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class RemeSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    anthropic_api_key: str | None = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    ollama_host: str = Field(default="http://localhost:11434", validation_alias="OLLAMA_HOST")

    projects_root: Path = Field(default=Path("./projects"), validation_alias="REME_PROJECTS_ROOT")
    chroma_persist_path: Path = Field(
        default=Path("./storage/chroma"), validation_alias="CHROMA_PERSIST_PATH"
    )
    vector_memory: bool = Field(default=True, validation_alias="REME_VECTOR_MEMORY")
    template_paths: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=(Path("templates"),), validation_alias="REME_TEMPLATE_PATHS"
    )

    model_timeout: float = Field(default=15.0, validation_alias="REME_MODEL_TIMEOUT")
    primary_model: str = Field(default="claude-sonnet-4", validation_alias="REME_PRIMARY_MODEL")
    default_model: str = Field(default="claude-3-7-sonnet", validation_alias="REME_DEFAULT_MODEL")
    fallback_model: str = Field(default="gpt-4o-mini", validation_alias="REME_FALLBACK_MODEL")
    agent_model: str | None = Field(default=None, validation_alias="REME_AGENT_MODEL")

    git_user_name: str = Field(default="Reme Bot", validation_alias="REME_GIT_USER_NAME")
    git_user_email: str = Field(default="bot@reme.dev", validation_alias="REME_GIT_USER_EMAIL")

    hot_memory_size: int = Field(default=5, validation_alias="REME_HOT_MEMORY_SIZE")
    warm_memory_size: int = Field(default=3, validation_alias="REME_WARM_MEMORY_SIZE")

    host: str = Field(default="127.0.0.1", validation_alias="REME_HOST")
    port: int = Field(default=5000, validation_alias="REME_PORT")
    log_level: str = Field(default="INFO", validation_alias="REME_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "REME_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("template_paths", mode="before")
    @classmethod
    def _parse_template_paths(cls, value):
        if value is None or value == "":
            return (Path("templates"),)
        if isinstance(value, (list, tuple)):
            return tuple(Path(str(item)) for item in value)
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(os.pathsep) if part.strip()]
            return tuple(Path(part) for part in parts) or (Path("templates"),)
        raise TypeError("REME_TEMPLATE_PATHS must be a list of paths or a path-separated string")

    @field_validator("openai_api_key", "anthropic_api_key", "agent_model", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("model_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("REME_MODEL_TIMEOUT must be > 0")
        return value

    @field_validator("hot_memory_size", "warm_memory_size")
    @classmethod
    def _validate_memory_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("memory tier sizes must be >= 1")
        return value


@lru_cache(maxsize=1)
def get_settings() -> RemeSettings:
    """Return cached settings instance."""

    settings = RemeSettings()
    settings.projects_root = settings.projects_root.expanduser().resolve()
    settings.chroma_persist_path = settings.chroma_persist_path.expanduser().resolve()
    settings.template_paths = tuple(path.expanduser().resolve() for path in settings.template_paths)
    return settings


__all__ = ["RemeSettings", "get_settings"]
