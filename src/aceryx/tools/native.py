"""Native protocol: built-in tools that run in-process."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING

from aceryx.core.errors import ToolCreationError
from aceryx.tools.base import ProtocolHealth
from aceryx.tools.http_request import HttpRequestTool
from aceryx.tools.json_transform import JsonTransformTool

if TYPE_CHECKING:
    from aceryx.config.schema import HttpToolConfig
    from aceryx.tools.base import Tool, ToolDefinition

logger = logging.getLogger(__name__)

ToolFactory = Callable[[], "Tool"]

PROTOCOL_NAME = "native"


def builtin_factories(
    http_config: HttpToolConfig | None = None,
) -> dict[str, ToolFactory]:
    """Factories for the tools shipped with aceryx, keyed by tool id."""
    return {
        "http_request": lambda: HttpRequestTool(http_config),
        "json_transform": JsonTransformTool,
    }


class NativeProtocol:
    """Protocol serving in-process tools from a table of factories.

    Each ``create_tool`` call builds a fresh instance; the registry owns
    its lifetime from then on.
    """

    def __init__(
        self,
        factories: Mapping[str, ToolFactory] | None = None,
        *,
        http_config: HttpToolConfig | None = None,
        enabled_tools: Iterable[str] | None = None,
    ) -> None:
        table = dict(factories) if factories is not None else builtin_factories(http_config)
        if enabled_tools is not None:
            wanted = set(enabled_tools)
            unknown = wanted - table.keys()
            if unknown:
                logger.warning(
                    "Ignoring unknown native tools: %s", ", ".join(sorted(unknown))
                )
            table = {k: v for k, v in table.items() if k in wanted}
        self._factories = table
        # One throwaway instance per factory to capture its definition.
        self._definitions = {tool_id: make().definition for tool_id, make in table.items()}

    @property
    def protocol_name(self) -> str:
        return PROTOCOL_NAME

    @property
    def tool_ids(self) -> list[str]:
        return list(self._factories)

    async def discover_tools(self) -> list[ToolDefinition]:
        return list(self._definitions.values())

    async def create_tool(self, definition: ToolDefinition) -> Tool:
        factory = self._factories.get(definition.id)
        if factory is None:
            raise ToolCreationError(
                PROTOCOL_NAME, f"Tool not found in native protocol: {definition.id}"
            )
        return factory()

    async def health_check(self) -> ProtocolHealth:
        return ProtocolHealth(
            protocol_name=PROTOCOL_NAME,
            healthy=True,
            tool_count=len(self._factories),
        )
