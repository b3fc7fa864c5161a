"""Core errors and shared utilities."""

from aceryx.core.errors import (
    AceryxError,
    ConfigError,
    ProtocolDiscoveryError,
    ProtocolError,
    StorageError,
    ToolAlreadyRegisteredError,
    ToolCreationError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolNotRegisteredError,
    ToolTimeoutError,
    ToolValidationError,
)

__all__ = [
    "AceryxError",
    "ConfigError",
    "ProtocolDiscoveryError",
    "ProtocolError",
    "StorageError",
    "ToolAlreadyRegisteredError",
    "ToolCreationError",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolNotRegisteredError",
    "ToolTimeoutError",
    "ToolValidationError",
]
