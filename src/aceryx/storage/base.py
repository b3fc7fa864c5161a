"""Catalog storage interface.

The registry only ever talks to storage through ``ToolStorage``, so
development (memory) and persistent (SQL) backends are interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from aceryx.tools.base import ToolCategory, ToolDefinition


@dataclass(frozen=True, slots=True)
class StorageHealth:
    """Storage liveness and basic counts."""

    healthy: bool
    backend_type: str
    total_tools: int = 0
    error_message: str | None = None
    last_check: datetime = field(default_factory=lambda: datetime.now(UTC))


@runtime_checkable
class ToolStorage(Protocol):
    """Protocol that all catalog backends must satisfy."""

    async def register_tool(self, definition: ToolDefinition) -> None:
        """Add a new definition.

        Raises:
            ToolAlreadyRegisteredError: If the id is already present.
        """
        ...

    async def get_tool(self, tool_id: str) -> ToolDefinition | None:
        """Return the definition for *tool_id*, or None."""
        ...

    async def list_tools(
        self, category: ToolCategory | None = None
    ) -> list[ToolDefinition]:
        """List definitions sorted by name, optionally by category."""
        ...

    async def update_tool(self, definition: ToolDefinition) -> None:
        """Replace an existing definition, keeping its ``created_at``.

        Raises:
            ToolNotRegisteredError: If the id is not present.
        """
        ...

    async def delete_tool(self, tool_id: str) -> None:
        """Remove a definition. Missing ids are ignored."""
        ...

    async def search_tools(self, query: str) -> list[ToolDefinition]:
        """Case-insensitive search over name, description and category."""
        ...

    async def health_check(self) -> StorageHealth:
        """Report backend health. Must not raise."""
        ...

    async def close(self) -> None:
        """Release connections. The backend is unusable afterwards."""
        ...


def matches_query(definition: ToolDefinition, query: str) -> bool:
    needle = query.lower()
    return (
        needle in definition.name.lower()
        or needle in definition.description.lower()
        or needle in str(definition.category).lower()
    )


def rank_matches(
    definitions: list[ToolDefinition], query: str
) -> list[ToolDefinition]:
    """Order search hits: name matches first, then alphabetically."""
    needle = query.lower()
    return sorted(
        definitions,
        key=lambda d: (needle not in d.name.lower(), d.name),
    )
