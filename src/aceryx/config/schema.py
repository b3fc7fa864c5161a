"""Pydantic models for aceryx configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Catalog storage backend."""

    backend: Literal["memory", "sqlite"] = "memory"
    url: str = "sqlite+aiosqlite:///~/.local/share/aceryx/catalog.db"


class NativeToolsConfig(BaseModel):
    """Built-in tools exposed by the native protocol."""

    enabled_tools: list[str] = Field(
        default_factory=lambda: ["http_request", "json_transform"]
    )


class HttpToolConfig(BaseModel):
    """Client settings for the ``http_request`` tool."""

    user_agent: str = "Aceryx/1.0"
    timeout: float = Field(default=60.0, gt=0)


class ToolsConfig(BaseModel):
    """Tool registry configuration."""

    enabled_protocols: list[str] = Field(default_factory=lambda: ["native"])
    native: NativeToolsConfig = Field(default_factory=NativeToolsConfig)
    http: HttpToolConfig = Field(default_factory=HttpToolConfig)
    execution_timeout: float = Field(default=30.0, gt=0)
    max_concurrent_executions: int = Field(default=100, ge=0)
    refresh_on_start: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    structured: bool = False


class AceryxConfig(BaseModel):
    """Top-level configuration for aceryx."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
