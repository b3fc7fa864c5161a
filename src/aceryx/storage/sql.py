"""SQL catalog backend (SQLAlchemy async ORM).

Each operation runs in its own session and transaction. Database
failures are re-raised as :class:`StorageError`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from aceryx.core.errors import (
    StorageError,
    ToolAlreadyRegisteredError,
    ToolNotRegisteredError,
)
from aceryx.storage.base import StorageHealth, rank_matches
from aceryx.storage.models import Base, ToolRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from aceryx.tools.base import ToolCategory, ToolDefinition

logger = logging.getLogger(__name__)


class SqlToolStorage:
    """Persistent catalog on any SQLAlchemy async URL.

    Implements the :class:`ToolStorage` protocol.
    """

    def __init__(
        self, engine: AsyncEngine, factory: async_sessionmaker[AsyncSession]
    ) -> None:
        self._engine = engine
        self._factory = factory

    @classmethod
    async def create(cls, url: str) -> SqlToolStorage:
        """Build an engine for *url* and create the schema if missing."""
        if "~" in url:
            url = url.replace("~", str(Path.home()))

        engine_kwargs: dict[str, object] = {}
        if url.startswith("sqlite"):
            db_path = url.split("///")[-1] if "///" in url else ""
            if db_path and db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            if ":memory:" in url or "///" not in url:
                # In-memory SQLite needs StaticPool so all sessions share
                # the same connection (and thus the same database).
                from sqlalchemy.pool import StaticPool

                engine_kwargs["poolclass"] = StaticPool
                engine_kwargs["connect_args"] = {"check_same_thread": False}

        engine = create_async_engine(url, **engine_kwargs)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            await engine.dispose()
            msg = f"Cannot initialize tool catalog at {url}: {e}"
            raise StorageError(msg) from e

        return cls(engine, async_sessionmaker(engine, expire_on_commit=False))

    async def close(self) -> None:
        await self._engine.dispose()

    async def register_tool(self, definition: ToolDefinition) -> None:
        try:
            async with self._factory() as session, session.begin():
                if await session.get(ToolRecord, definition.id) is not None:
                    raise ToolAlreadyRegisteredError(definition.id)
                session.add(ToolRecord.from_definition(definition))
        except IntegrityError as e:
            # Lost a race with a concurrent register of the same id
            raise ToolAlreadyRegisteredError(definition.id) from e
        except SQLAlchemyError as e:
            msg = f"Failed to register tool {definition.id}: {e}"
            raise StorageError(msg) from e

    async def get_tool(self, tool_id: str) -> ToolDefinition | None:
        try:
            async with self._factory() as session:
                record = await session.get(ToolRecord, tool_id)
                return record.to_definition() if record is not None else None
        except SQLAlchemyError as e:
            msg = f"Failed to load tool {tool_id}: {e}"
            raise StorageError(msg) from e

    async def list_tools(
        self, category: ToolCategory | None = None
    ) -> list[ToolDefinition]:
        stmt = select(ToolRecord).order_by(ToolRecord.name)
        if category is not None:
            stmt = stmt.where(ToolRecord.category == category.value)
        try:
            async with self._factory() as session:
                result = await session.execute(stmt)
                return [r.to_definition() for r in result.scalars().all()]
        except SQLAlchemyError as e:
            msg = f"Failed to list tools: {e}"
            raise StorageError(msg) from e

    async def update_tool(self, definition: ToolDefinition) -> None:
        try:
            async with self._factory() as session, session.begin():
                record = await session.get(ToolRecord, definition.id)
                if record is None:
                    raise ToolNotRegisteredError(definition.id)
                record.apply(definition.touch())
        except SQLAlchemyError as e:
            msg = f"Failed to update tool {definition.id}: {e}"
            raise StorageError(msg) from e

    async def delete_tool(self, tool_id: str) -> None:
        try:
            async with self._factory() as session, session.begin():
                record = await session.get(ToolRecord, tool_id)
                if record is not None:
                    await session.delete(record)
        except SQLAlchemyError as e:
            msg = f"Failed to delete tool {tool_id}: {e}"
            raise StorageError(msg) from e

    async def search_tools(self, query: str) -> list[ToolDefinition]:
        if not query.strip():
            return await self.list_tools()
        pattern = f"%{query.lower()}%"
        stmt = select(ToolRecord).where(
            or_(
                func.lower(ToolRecord.name).like(pattern),
                func.lower(ToolRecord.description).like(pattern),
                func.lower(ToolRecord.category).like(pattern),
            )
        )
        try:
            async with self._factory() as session:
                result = await session.execute(stmt)
                hits = [r.to_definition() for r in result.scalars().all()]
        except SQLAlchemyError as e:
            msg = f"Failed to search tools: {e}"
            raise StorageError(msg) from e
        return rank_matches(hits, query)

    async def health_check(self) -> StorageHealth:
        backend = self._engine.dialect.name
        try:
            async with self._factory() as session:
                total = await session.scalar(select(func.count(ToolRecord.id)))
        except SQLAlchemyError as e:
            logger.warning("Catalog health check failed: %s", e)
            return StorageHealth(
                healthy=False, backend_type=backend, error_message=str(e)
            )
        return StorageHealth(healthy=True, backend_type=backend, total_tools=total or 0)
