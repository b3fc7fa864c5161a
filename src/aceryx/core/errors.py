"""Exception hierarchy for aceryx.

Every module imports from here. The hierarchy is:

    AceryxError
    ├── ToolError(tool_id)
    │   ├── ToolNotFoundError
    │   ├── ToolValidationError(reason)
    │   ├── ToolTimeoutError(timeout)
    │   └── ToolExecutionError
    ├── ProtocolError(protocol_name)
    │   ├── ProtocolDiscoveryError
    │   └── ToolCreationError
    ├── ConfigError
    └── StorageError
        ├── ToolAlreadyRegisteredError(tool_id)
        └── ToolNotRegisteredError(tool_id)
"""

from __future__ import annotations


class AceryxError(Exception):
    """Base exception for all aceryx errors."""


# ─── Tool Errors ──────────────────────────────────────────────


class ToolError(AceryxError):
    """Base for errors surfaced by ``ToolRegistry.execute_tool``."""

    def __init__(self, tool_id: str, message: str) -> None:
        self.tool_id = tool_id
        super().__init__(message)


class ToolNotFoundError(ToolError):
    """No catalog entry, or no protocol able to instantiate it."""

    def __init__(self, tool_id: str) -> None:
        super().__init__(tool_id, f"Tool not found: {tool_id}")


class ToolValidationError(ToolError):
    """Input rejected by the tool before execution."""

    def __init__(self, tool_id: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            tool_id, f"Input validation failed for tool {tool_id}: {reason}"
        )


class ToolTimeoutError(ToolError):
    """Caller stopped waiting. The underlying work may still be running."""

    def __init__(self, tool_id: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            tool_id, f"Tool execution timed out after {timeout:g}s: {tool_id}"
        )


class ToolExecutionError(ToolError):
    """The tool's own logic failed."""

    def __init__(self, tool_id: str, message: str) -> None:
        super().__init__(tool_id, f"Tool execution failed: {tool_id}: {message}")


# ─── Protocol Errors ──────────────────────────────────────────


class ProtocolError(AceryxError):
    """Base for protocol-related errors."""

    def __init__(self, protocol_name: str, message: str) -> None:
        self.protocol_name = protocol_name
        super().__init__(f"[{protocol_name}] {message}")


class ProtocolDiscoveryError(ProtocolError):
    """Tool discovery failed for one protocol."""


class ToolCreationError(ProtocolError):
    """Protocol cannot instantiate the given definition."""


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(AceryxError):
    """Invalid configuration."""


# ─── Storage Errors ───────────────────────────────────────────


class StorageError(AceryxError):
    """Catalog storage error."""


class ToolAlreadyRegisteredError(StorageError):
    """A definition with this id is already in the catalog."""

    def __init__(self, tool_id: str) -> None:
        self.tool_id = tool_id
        super().__init__(f"Tool with ID {tool_id} already exists")


class ToolNotRegisteredError(StorageError):
    """No definition with this id in the catalog."""

    def __init__(self, tool_id: str) -> None:
        self.tool_id = tool_id
        super().__init__(f"Tool with ID {tool_id} not found")
