"""Tool catalog backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from aceryx.storage.base import StorageHealth, ToolStorage
from aceryx.storage.memory import MemoryToolStorage
from aceryx.storage.sql import SqlToolStorage

if TYPE_CHECKING:
    from aceryx.config.schema import StorageConfig

__all__ = [
    "MemoryToolStorage",
    "SqlToolStorage",
    "StorageHealth",
    "ToolStorage",
    "create_storage",
]


async def create_storage(config: StorageConfig) -> ToolStorage:
    """Build the catalog backend selected by *config*."""
    if config.backend == "sqlite":
        return await SqlToolStorage.create(config.url)
    return MemoryToolStorage()
