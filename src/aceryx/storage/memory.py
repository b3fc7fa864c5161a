"""In-memory catalog backend for development, tests and single-node runs."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING

from aceryx.core.errors import ToolAlreadyRegisteredError, ToolNotRegisteredError
from aceryx.storage.base import StorageHealth, matches_query, rank_matches

if TYPE_CHECKING:
    from aceryx.tools.base import ToolCategory, ToolDefinition


class MemoryToolStorage:
    """Dict-backed catalog. Nothing survives the process.

    Implements the :class:`ToolStorage` protocol. Concurrent upserts to
    the same id are serialized by a lock; the last write wins.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._lock = asyncio.Lock()

    async def register_tool(self, definition: ToolDefinition) -> None:
        async with self._lock:
            if definition.id in self._tools:
                raise ToolAlreadyRegisteredError(definition.id)
            self._tools[definition.id] = definition

    async def get_tool(self, tool_id: str) -> ToolDefinition | None:
        return self._tools.get(tool_id)

    async def list_tools(
        self, category: ToolCategory | None = None
    ) -> list[ToolDefinition]:
        tools = [
            t for t in self._tools.values() if category is None or t.category == category
        ]
        return sorted(tools, key=lambda t: t.name)

    async def update_tool(self, definition: ToolDefinition) -> None:
        async with self._lock:
            existing = self._tools.get(definition.id)
            if existing is None:
                raise ToolNotRegisteredError(definition.id)
            self._tools[definition.id] = replace(
                definition, created_at=existing.created_at
            ).touch()

    async def delete_tool(self, tool_id: str) -> None:
        async with self._lock:
            self._tools.pop(tool_id, None)

    async def search_tools(self, query: str) -> list[ToolDefinition]:
        if not query.strip():
            return await self.list_tools()
        hits = [t for t in self._tools.values() if matches_query(t, query)]
        return rank_matches(hits, query)

    async def health_check(self) -> StorageHealth:
        return StorageHealth(
            healthy=True, backend_type="memory", total_tools=len(self._tools)
        )

    async def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._tools)
