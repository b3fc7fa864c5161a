"""Tool model, protocols, built-in tools and the registry."""

from aceryx.tools.base import (
    ContainerExecution,
    ExecutionMode,
    ModuleExecution,
    NativeExecution,
    ProcessExecution,
    ProtocolHealth,
    RegistryHealth,
    Tool,
    ToolCategory,
    ToolDefinition,
    ToolProtocol,
)
from aceryx.tools.context import ExecutionContext
from aceryx.tools.http_request import HttpRequestTool
from aceryx.tools.json_transform import JsonTransformTool
from aceryx.tools.native import NativeProtocol
from aceryx.tools.registry import ToolRegistry

__all__ = [
    "ContainerExecution",
    "ExecutionContext",
    "ExecutionMode",
    "HttpRequestTool",
    "JsonTransformTool",
    "ModuleExecution",
    "NativeExecution",
    "NativeProtocol",
    "ProcessExecution",
    "ProtocolHealth",
    "RegistryHealth",
    "Tool",
    "ToolCategory",
    "ToolDefinition",
    "ToolProtocol",
    "ToolRegistry",
]
