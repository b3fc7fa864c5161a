"""Tool registry: protocol aggregation, catalog refresh, cached execution.

The registry owns the ordered list of protocols and an in-memory cache
of live tool instances. Tool definitions live in the storage
collaborator. Refresh, lookup and execution all tolerate partial
protocol failure. ``execute_tool`` surfaces tool failures as
:class:`ToolError` subclasses; a failing catalog lookup propagates as
:class:`StorageError`.

An evicted instance is cleaned up only once no execution is running on
it, so a refresh never pulls resources out from under a live call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aceryx.core.errors import (
    ProtocolDiscoveryError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
    ToolValidationError,
)
from aceryx.tools.base import ProtocolHealth, RegistryHealth
from aceryx.tools.context import DEFAULT_TIMEOUT, ExecutionContext

if TYPE_CHECKING:
    from aceryx.storage.base import ToolStorage
    from aceryx.tools.base import Tool, ToolCategory, ToolDefinition, ToolProtocol

logger = logging.getLogger(__name__)


def _discard_outcome(task: asyncio.Future[Any]) -> None:
    """Retrieve an abandoned task's outcome so asyncio does not warn about it."""
    if not task.cancelled():
        task.exception()


class ToolRegistry:
    """Central hub for tool discovery, caching and execution.

    Usage::

        registry = ToolRegistry(MemoryToolStorage())
        registry.add_protocol(NativeProtocol())
        await registry.refresh_tools()

        result = await registry.execute_tool(
            "json_transform",
            {"data": {"a": 1}, "operation": "extract", "path": "a"},
            ExecutionContext(user_id="alice", timeout=5),
        )

    Cache states per tool id: absent -> resolving -> cached. Every
    ``refresh_tools()`` (or ``invalidate()``) drops all cached instances.
    Cache writes take ``_cache_lock``; reads are plain dict lookups. No
    lock is ever held across a protocol, storage or tool call.

    With a concurrency limit, a slot is held until the tool's execution
    actually finishes, including executions abandoned on timeout.
    """

    def __init__(
        self,
        storage: ToolStorage,
        *,
        default_timeout: float = DEFAULT_TIMEOUT,
        max_concurrent_executions: int = 0,
    ) -> None:
        """Create a registry over a catalog backend.

        Args:
            storage: Catalog collaborator holding tool definitions.
            default_timeout: Seconds to wait when a context carries no
                usable timeout.
            max_concurrent_executions: Upper bound on tools executing at
                once. 0 = no limit.
        """
        self._storage = storage
        self._protocols: list[ToolProtocol] = []
        self._cache: dict[str, Tool] = {}
        self._pending: dict[str, asyncio.Task[Tool | None]] = {}
        self._cache_lock = asyncio.Lock()
        # Bumped on every invalidation; resolutions started under an
        # older generation are handed to their callers but never cached.
        self._generation = 0
        # Running executions per instance, and evicted instances whose
        # cleanup waits for those executions to drain. Keyed by id().
        self._active: dict[int, int] = {}
        self._retired: dict[int, Tool] = {}
        self._default_timeout = default_timeout
        self._slots = (
            asyncio.Semaphore(max_concurrent_executions)
            if max_concurrent_executions > 0
            else None
        )

    # ── Setup ────────────────────────────────────────────────────

    def add_protocol(self, protocol: ToolProtocol) -> None:
        """Register a protocol. Setup time only, before serving traffic.

        Raises:
            ValueError: If a protocol with the same name is already
                registered.
        """
        name = protocol.protocol_name
        if any(p.protocol_name == name for p in self._protocols):
            msg = f"Protocol already registered: {name}"
            raise ValueError(msg)
        logger.info("Adding protocol: %s", name)
        self._protocols.append(protocol)

    @property
    def protocols(self) -> list[ToolProtocol]:
        """Registered protocols in registration order."""
        return list(self._protocols)

    @property
    def storage(self) -> ToolStorage:
        return self._storage

    @property
    def cached_tool_count(self) -> int:
        return len(self._cache)

    # ── Refresh ──────────────────────────────────────────────────

    async def refresh_tools(self) -> int:
        """Reconcile every protocol's tools into the catalog.

        Protocols are processed in registration order and definitions in
        discovery order. Each definition is registered, or updated if
        registration fails. A protocol whose discovery fails is skipped
        for this cycle. The instance cache is cleared afterwards.

        Returns:
            Number of definitions registered or updated. Never raises for
            protocol or storage failures.
        """
        total = 0
        for protocol in self._protocols:
            name = protocol.protocol_name
            logger.info("Refreshing tools from protocol: %s", name)
            try:
                hook = getattr(protocol, "refresh", None)
                if hook is not None:
                    await hook()
                definitions = await protocol.discover_tools()
            except Exception as e:
                error = ProtocolDiscoveryError(name, f"Failed to discover tools: {e}")
                logger.error("%s", error, exc_info=True)
                continue

            for definition in definitions:
                if await self._upsert(definition):
                    total += 1

        await self._retire(await self._evict())

        logger.info("Tool refresh complete. Discovered %d tools", total)
        return total

    async def _upsert(self, definition: ToolDefinition) -> bool:
        try:
            await self._storage.register_tool(definition)
        except Exception as register_err:
            try:
                await self._storage.update_tool(definition)
            except Exception as update_err:
                logger.warning(
                    "Failed to register/update tool %s: %s (update error: %s)",
                    definition.id,
                    register_err,
                    update_err,
                )
                return False
            logger.debug("Updated existing tool: %s", definition.id)
            return True
        logger.debug("Registered tool: %s", definition.id)
        return True

    # ── Cache ────────────────────────────────────────────────────

    async def invalidate(self, tool_id: str | None = None) -> None:
        """Drop one cached instance, or all of them when *tool_id* is None."""
        await self._retire(await self._evict(tool_id))

    async def _evict(self, tool_id: str | None = None) -> list[Tool]:
        async with self._cache_lock:
            self._generation += 1
            if tool_id is None:
                evicted = list(self._cache.values())
                self._cache.clear()
                self._pending.clear()
            else:
                self._pending.pop(tool_id, None)
                tool = self._cache.pop(tool_id, None)
                evicted = [tool] if tool is not None else []
        return evicted

    async def _retire(self, tools: list[Tool]) -> None:
        idle: list[Tool] = []
        for tool in tools:
            if id(tool) in self._active:
                self._retired[id(tool)] = tool
            else:
                idle.append(tool)
        await self._cleanup(idle)

    def _hold(self, tool: Tool) -> None:
        key = id(tool)
        self._active[key] = self._active.get(key, 0) + 1

    async def _release(self, tool: Tool) -> None:
        key = id(tool)
        remaining = self._active[key] - 1
        if remaining:
            self._active[key] = remaining
            return
        del self._active[key]
        retired = self._retired.pop(key, None)
        if retired is not None:
            await self._cleanup([retired])

    async def _cleanup(self, tools: list[Tool]) -> None:
        for tool in tools:
            cleanup = getattr(tool, "cleanup", None)
            if cleanup is None:
                continue
            try:
                await cleanup()
            except Exception:
                logger.warning(
                    "Cleanup failed for tool %s", tool.definition.id, exc_info=True
                )

    # ── Lookup ───────────────────────────────────────────────────

    async def get_tool(self, tool_id: str) -> Tool | None:
        """Return a live instance for *tool_id*, creating it on a cache miss.

        Concurrent misses for the same id share one resolution.

        Returns:
            The tool, or None if the catalog has no such definition or no
            registered protocol can instantiate it.

        Raises:
            StorageError: If the catalog lookup itself fails.
        """
        cached = self._cache.get(tool_id)
        if cached is not None:
            return cached

        task = self._pending.get(tool_id)
        if task is None:
            task = asyncio.ensure_future(self._resolve(tool_id, self._generation))
            self._pending[tool_id] = task

            def _forget(done: asyncio.Task[Tool | None]) -> None:
                if self._pending.get(tool_id) is done:
                    del self._pending[tool_id]
                _discard_outcome(done)

            task.add_done_callback(_forget)

        return await asyncio.shield(task)

    async def _resolve(self, tool_id: str, generation: int) -> Tool | None:
        definition = await self._storage.get_tool(tool_id)
        if definition is None:
            return None

        for protocol in self._protocols:
            try:
                tool = await protocol.create_tool(definition)
            except Exception as e:
                logger.debug(
                    "Protocol %s cannot create tool %s: %s",
                    protocol.protocol_name,
                    tool_id,
                    e,
                )
                continue

            async with self._cache_lock:
                if generation == self._generation:
                    self._cache[tool_id] = tool
                    self._retired.pop(id(tool), None)
            return tool

        logger.warning("No protocol could create tool: %s", tool_id)
        return None

    # ── Execution ────────────────────────────────────────────────

    async def execute_tool(
        self,
        tool_id: str,
        input_data: Any,
        context: ExecutionContext | None = None,
    ) -> dict[str, Any]:
        """Validate and run a tool under the context's deadline.

        The tool receives a fork of *context*, so variables set during one
        call never leak into another. The deadline covers waiting for a
        concurrency slot as well as the run itself. On timeout the caller
        stops waiting and the execution is cancelled best-effort; it may
        keep running.

        Returns:
            The tool's output, verbatim.

        Raises:
            ToolNotFoundError: Unknown id, or no protocol claims it.
            ToolValidationError: Input rejected; the tool did not run.
            ToolTimeoutError: Deadline expired before the tool finished.
            ToolExecutionError: The tool raised.
            StorageError: The catalog lookup failed.
        """
        context = context if context is not None else ExecutionContext()
        log_extra = {"tool_id": tool_id, "request_id": context.request_id}

        tool = await self.get_tool(tool_id)
        if tool is None:
            raise ToolNotFoundError(tool_id)

        self._hold(tool)
        started = False
        try:
            try:
                tool.validate_input(input_data)
            except Exception as e:
                raise ToolValidationError(tool_id, str(e)) from e

            timeout = self._default_timeout
            if context.timeout and context.timeout > 0:
                timeout = context.timeout
            loop = asyncio.get_running_loop()
            deadline = loop.time() + timeout

            if self._slots is not None:
                try:
                    async with asyncio.timeout_at(deadline):
                        await self._slots.acquire()
                except TimeoutError:
                    logger.warning(
                        "Timed out after %gs waiting for an execution slot: %s",
                        timeout,
                        tool_id,
                        extra=log_extra,
                    )
                    raise ToolTimeoutError(tool_id, timeout) from None

            remaining = deadline - loop.time()
            if remaining <= 0:
                if self._slots is not None:
                    self._slots.release()
                raise ToolTimeoutError(tool_id, timeout)

            logger.debug("Executing tool %s", tool_id, extra=log_extra)
            task = asyncio.ensure_future(
                self._track(tool, input_data, context.fork())
            )
            started = True
        finally:
            if not started:
                await self._release(tool)

        return await self._wait(task, tool_id, timeout, remaining, log_extra)

    async def _track(
        self, tool: Tool, input_data: Any, context: ExecutionContext
    ) -> dict[str, Any]:
        """Run the tool, then give back its slot and its hold."""
        try:
            return await tool.execute(input_data, context)
        finally:
            if self._slots is not None:
                self._slots.release()
            await self._release(tool)

    async def _wait(
        self,
        task: asyncio.Future[dict[str, Any]],
        tool_id: str,
        timeout: float,
        remaining: float,
        log_extra: dict[str, Any],
    ) -> dict[str, Any]:
        try:
            done, _ = await asyncio.wait({task}, timeout=remaining)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            task.cancel()
            task.add_done_callback(_discard_outcome)
            logger.warning(
                "Tool execution timed out after %gs: %s",
                timeout,
                tool_id,
                extra=log_extra,
            )
            raise ToolTimeoutError(tool_id, timeout)

        if task.cancelled():
            raise ToolExecutionError(tool_id, "execution was cancelled")
        error = task.exception()
        if error is not None:
            raise ToolExecutionError(tool_id, str(error)) from error
        return task.result()

    # ── Health ───────────────────────────────────────────────────

    async def health_check(self) -> RegistryHealth:
        """Aggregate protocol health. Never mutates the cache or catalog."""
        reports = await asyncio.gather(
            *(self._protocol_health(p) for p in self._protocols)
        )
        return RegistryHealth(
            healthy=all(r.healthy for r in reports),
            protocols=list(reports),
            cached_tools=len(self._cache),
        )

    async def _protocol_health(self, protocol: ToolProtocol) -> ProtocolHealth:
        try:
            return await protocol.health_check()
        except Exception as e:
            logger.warning(
                "Health check failed for protocol %s: %s", protocol.protocol_name, e
            )
            return ProtocolHealth.unhealthy(protocol.protocol_name, str(e))

    # ── Catalog ──────────────────────────────────────────────────

    async def list_tools(
        self, category: ToolCategory | None = None
    ) -> list[ToolDefinition]:
        return await self._storage.list_tools(category)

    async def get_definition(self, tool_id: str) -> ToolDefinition | None:
        return await self._storage.get_tool(tool_id)

    async def search_tools(self, query: str) -> list[ToolDefinition]:
        return await self._storage.search_tools(query)
