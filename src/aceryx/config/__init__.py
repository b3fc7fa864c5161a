"""Configuration loading and validation."""

from aceryx.config.loader import load_config, sample_config
from aceryx.config.schema import (
    AceryxConfig,
    HttpToolConfig,
    LoggingConfig,
    NativeToolsConfig,
    StorageConfig,
    ToolsConfig,
)

__all__ = [
    "AceryxConfig",
    "HttpToolConfig",
    "LoggingConfig",
    "NativeToolsConfig",
    "StorageConfig",
    "ToolsConfig",
    "load_config",
    "sample_config",
]
