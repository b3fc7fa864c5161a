"""Tests for tool data classes, categories and execution modes."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from aceryx.tools.base import (
    ContainerExecution,
    ModuleExecution,
    ModulePermissions,
    NativeExecution,
    NativePermissions,
    ProcessExecution,
    ProtocolHealth,
    RegistryHealth,
    ResourceLimits,
    Tool,
    ToolCategory,
    ToolDefinition,
    ToolProtocol,
    execution_mode_from_dict,
    execution_mode_to_dict,
)
from tests.fixtures.protocols import EchoTool, StaticProtocol, make_definition

# ── ToolCategory ────────────────────────────────────────────────────


class TestToolCategory:
    def test_display_value(self) -> None:
        assert str(ToolCategory.DATABASE) == "Database"
        assert str(ToolCategory.AI) == "AI"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("HTTP", ToolCategory.HTTP),
            ("http", ToolCategory.HTTP),
            ("Database", ToolCategory.DATABASE),
            ("DATABASE", ToolCategory.DATABASE),
            (" custom ", ToolCategory.CUSTOM),
        ],
    )
    def test_parse(self, text: str, expected: ToolCategory) -> None:
        assert ToolCategory.parse(text) is expected

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match=r"Unknown tool category"):
            ToolCategory.parse("Robots")

    def test_closed_set(self) -> None:
        assert len(ToolCategory) == 7


# ── Execution modes ─────────────────────────────────────────────────


class TestExecutionMode:
    def test_kinds(self) -> None:
        assert ModuleExecution.kind == "wasm"
        assert ContainerExecution.kind == "container"
        assert ProcessExecution.kind == "process"
        assert NativeExecution.kind == "native"

    def test_defaults(self) -> None:
        assert ModulePermissions() == ModulePermissions(
            network_access=True,
            filesystem_access=False,
            environment_access=False,
            max_memory_mb=64,
        )
        assert ResourceLimits().memory_mb == 512
        assert ProcessExecution().sandbox.allowed_paths == ("/tmp",)
        assert NativePermissions().network_domains == ()

    def test_module_to_dict(self) -> None:
        data = execution_mode_to_dict(
            ModuleExecution(permissions=ModulePermissions(max_memory_mb=16))
        )
        assert data["kind"] == "wasm"
        assert data["permissions"]["max_memory_mb"] == 16

    def test_process_sandbox_paths_survive(self) -> None:
        mode = ProcessExecution(runtime="python3")
        data = execution_mode_to_dict(mode)
        assert data["sandbox"]["allowed_paths"] == ["/tmp"]
        assert execution_mode_from_dict(json.loads(json.dumps(data))) == mode

    def test_native_permissions_survive(self) -> None:
        mode = NativeExecution(
            binary_path="/usr/bin/tool",
            permissions=NativePermissions(network_domains=("example.com",)),
        )
        restored = execution_mode_from_dict(execution_mode_to_dict(mode))
        assert restored == mode

    def test_container_from_dict(self) -> None:
        mode = execution_mode_from_dict(
            {"kind": "container", "image": "alpine:3", "resources": {"cpu_cores": 2.0}}
        )
        assert isinstance(mode, ContainerExecution)
        assert mode.image == "alpine:3"
        assert mode.resources.cpu_cores == 2.0
        assert mode.resources.memory_mb == 512

    def test_unknown_kind_raises(self) -> None:
        with pytest.raises(ValueError, match=r"Unknown execution mode"):
            execution_mode_from_dict({"kind": "quantum"})


# ── ToolDefinition ──────────────────────────────────────────────────


class TestToolDefinition:
    def test_defaults(self) -> None:
        d = ToolDefinition(
            id="t", name="T", description="", category=ToolCategory.CUSTOM
        )
        assert isinstance(d.execution_mode, ModuleExecution)
        assert d.metadata == {}
        assert d.created_at.tzinfo is not None

    def test_is_immutable(self) -> None:
        d = make_definition()
        with pytest.raises(AttributeError):
            d.name = "other"  # type: ignore[misc]

    def test_touch_updates_only_updated_at(self) -> None:
        past = datetime(2020, 1, 1, tzinfo=UTC)
        d = make_definition(created_at=past, updated_at=past)
        touched = d.touch()
        assert touched.created_at == past
        assert touched.updated_at > past
        assert touched.id == d.id

    def test_dict_round_trip(self) -> None:
        d = make_definition(
            "lookup",
            category=ToolCategory.DATABASE,
            input_schema={"type": "object", "required": ["q"]},
            execution_mode=ContainerExecution(image="pg:16"),
            metadata={"owner": "data-team", "tags": ["sql"]},
        )
        data = json.loads(json.dumps(d.to_dict()))
        assert data["category"] == "Database"
        assert data["execution_mode"]["kind"] == "container"
        assert ToolDefinition.from_dict(data) == d

    def test_from_dict_fills_missing_fields(self) -> None:
        d = ToolDefinition.from_dict({"id": "x", "name": "X"})
        assert d.category is ToolCategory.CUSTOM
        assert isinstance(d.execution_mode, ModuleExecution)
        assert d.description == ""


# ── Health ──────────────────────────────────────────────────────────


class TestHealth:
    def test_unhealthy_factory(self) -> None:
        h = ProtocolHealth.unhealthy("mcp", "timeout")
        assert not h.healthy
        assert h.error_message == "timeout"
        assert h.tool_count == 0

    def test_registry_health_to_dict(self) -> None:
        report = RegistryHealth(
            healthy=True,
            protocols=[ProtocolHealth(protocol_name="native", healthy=True, tool_count=2)],
            cached_tools=1,
        )
        data = report.to_dict()
        assert data["healthy"] is True
        assert data["protocols"][0]["tool_count"] == 2
        json.dumps(data)


# ── Contracts ───────────────────────────────────────────────────────


class TestContracts:
    def test_mock_tool_satisfies_protocol(self) -> None:
        assert isinstance(EchoTool(make_definition()), Tool)

    def test_mock_protocol_satisfies_protocol(self) -> None:
        assert isinstance(StaticProtocol(), ToolProtocol)

    def test_plain_object_is_not_a_tool(self) -> None:
        assert not isinstance(object(), Tool)
