"""Tool and protocol contracts plus their data classes.

Defines the ``Tool`` and ``ToolProtocol`` protocols that every tool
implementation and discovery source must satisfy, and the
protocol-agnostic ``ToolDefinition`` they exchange. Data classes are
immutable where possible (frozen dataclasses with slots).
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from aceryx.tools.context import ExecutionContext


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ToolCategory(enum.Enum):
    """Closed set of tool categories."""

    AI = "AI"  # LLMs, ML models
    HTTP = "HTTP"  # REST APIs, webhooks
    DATABASE = "Database"  # SQL, NoSQL queries
    FILES = "Files"  # File operations, storage
    MESSAGING = "Messaging"  # Kafka, RabbitMQ, email
    ENTERPRISE = "Enterprise"  # Pega, SAP, Salesforce
    CUSTOM = "Custom"  # User-defined tools

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> ToolCategory:
        """Resolve a display value or member name, case-insensitively.

        Raises:
            ValueError: If *text* names no category.
        """
        needle = text.strip().lower()
        for member in cls:
            if needle in (member.value.lower(), member.name.lower()):
                return member
        msg = f"Unknown tool category: {text}"
        raise ValueError(msg)


# ── Execution modes ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ModulePermissions:
    network_access: bool = True
    filesystem_access: bool = False
    environment_access: bool = False
    max_memory_mb: int = 64


@dataclass(frozen=True, slots=True)
class ResourceLimits:
    cpu_cores: float = 1.0
    memory_mb: int = 512
    timeout_seconds: int = 30


@dataclass(frozen=True, slots=True)
class ProcessSandbox:
    allowed_paths: tuple[str, ...] = ("/tmp",)
    network_isolation: bool = True
    user_namespace: bool = True


@dataclass(frozen=True, slots=True)
class NativePermissions:
    read_paths: tuple[str, ...] = ()
    write_paths: tuple[str, ...] = ()
    network_domains: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ModuleExecution:
    """Runs as a sandboxed module."""

    kind: ClassVar[str] = "wasm"
    permissions: ModulePermissions = field(default_factory=ModulePermissions)


@dataclass(frozen=True, slots=True)
class ContainerExecution:
    """Runs inside a container image."""

    kind: ClassVar[str] = "container"
    image: str = ""
    resources: ResourceLimits = field(default_factory=ResourceLimits)


@dataclass(frozen=True, slots=True)
class ProcessExecution:
    """Runs as a sandboxed subprocess under *runtime*."""

    kind: ClassVar[str] = "process"
    runtime: str = ""
    sandbox: ProcessSandbox = field(default_factory=ProcessSandbox)


@dataclass(frozen=True, slots=True)
class NativeExecution:
    """Runs a native binary."""

    kind: ClassVar[str] = "native"
    binary_path: str = ""
    permissions: NativePermissions = field(default_factory=NativePermissions)


ExecutionMode = ModuleExecution | ContainerExecution | ProcessExecution | NativeExecution

_MODES: dict[str, type[Any]] = {
    ModuleExecution.kind: ModuleExecution,
    ContainerExecution.kind: ContainerExecution,
    ProcessExecution.kind: ProcessExecution,
    NativeExecution.kind: NativeExecution,
}


def execution_mode_to_dict(mode: ExecutionMode) -> dict[str, Any]:
    """Serialize an execution mode to a JSON-safe dict tagged with ``kind``."""
    data = asdict(mode)
    for key, value in data.items():
        if isinstance(value, dict):
            data[key] = {
                k: list(v) if isinstance(v, tuple) else v for k, v in value.items()
            }
    return {"kind": mode.kind, **data}


def execution_mode_from_dict(data: dict[str, Any]) -> ExecutionMode:
    """Inverse of :func:`execution_mode_to_dict`.

    Raises:
        ValueError: If ``kind`` is missing or unknown.
    """
    fields = dict(data)
    kind = fields.pop("kind", None)
    if kind not in _MODES:
        msg = f"Unknown execution mode: {kind}"
        raise ValueError(msg)

    if kind == ModuleExecution.kind:
        return ModuleExecution(
            permissions=ModulePermissions(**fields.get("permissions", {}))
        )
    if kind == ContainerExecution.kind:
        return ContainerExecution(
            image=fields.get("image", ""),
            resources=ResourceLimits(**fields.get("resources", {})),
        )
    if kind == ProcessExecution.kind:
        sandbox = dict(fields.get("sandbox", {}))
        if "allowed_paths" in sandbox:
            sandbox["allowed_paths"] = tuple(sandbox["allowed_paths"])
        return ProcessExecution(
            runtime=fields.get("runtime", ""),
            sandbox=ProcessSandbox(**sandbox),
        )
    perms = {k: tuple(v) for k, v in fields.get("permissions", {}).items()}
    return NativeExecution(
        binary_path=fields.get("binary_path", ""),
        permissions=NativePermissions(**perms),
    )


# ── Definitions ──────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Protocol-agnostic description of a callable action.

    ``id`` is assigned by the discovering protocol and must stay stable
    across refreshes so the catalog treats re-discovery as an update.
    """

    id: str
    name: str
    description: str
    category: ToolCategory
    input_schema: dict[str, Any] = field(default_factory=dict)
    output_schema: dict[str, Any] = field(default_factory=dict)
    execution_mode: ExecutionMode = field(default_factory=ModuleExecution)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def touch(self) -> ToolDefinition:
        """Return a copy with ``updated_at`` set to now."""
        return replace(self, updated_at=_utcnow())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "input_schema": self.input_schema,
            "output_schema": self.output_schema,
            "execution_mode": execution_mode_to_dict(self.execution_mode),
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolDefinition:
        now = _utcnow()
        created = data.get("created_at")
        updated = data.get("updated_at")
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            category=ToolCategory.parse(data.get("category", "Custom")),
            input_schema=data.get("input_schema") or {},
            output_schema=data.get("output_schema") or {},
            execution_mode=execution_mode_from_dict(
                data.get("execution_mode") or {"kind": ModuleExecution.kind}
            ),
            metadata=data.get("metadata") or {},
            created_at=datetime.fromisoformat(created) if created else now,
            updated_at=datetime.fromisoformat(updated) if updated else now,
        )


# ── Health ───────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProtocolHealth:
    """Self-reported liveness of one protocol."""

    protocol_name: str
    healthy: bool
    error_message: str | None = None
    tool_count: int = 0
    last_refresh: datetime = field(default_factory=_utcnow)

    @classmethod
    def unhealthy(cls, protocol_name: str, error: str) -> ProtocolHealth:
        """Synthetic report for a protocol whose health check raised."""
        return cls(protocol_name=protocol_name, healthy=False, error_message=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol_name": self.protocol_name,
            "healthy": self.healthy,
            "error_message": self.error_message,
            "tool_count": self.tool_count,
            "last_refresh": self.last_refresh.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class RegistryHealth:
    """Aggregate health across all registered protocols."""

    healthy: bool
    protocols: list[ProtocolHealth]
    cached_tools: int
    last_check: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "protocols": [p.to_dict() for p in self.protocols],
            "cached_tools": self.cached_tools,
            "last_check": self.last_check.isoformat(),
        }


# ── Contracts ────────────────────────────────────────────────────


@runtime_checkable
class Tool(Protocol):
    """Executable handle bound to exactly one :class:`ToolDefinition`.

    Instances are shared by every caller that hits the registry cache,
    so ``execute`` must be safe for concurrent use. An optional
    ``async cleanup()`` is called when the instance is evicted.
    """

    @property
    def definition(self) -> ToolDefinition:
        """The exact definition this instance was created from."""
        ...

    def validate_input(self, input_data: Any) -> None:
        """Check input shape without side effects.

        Raises:
            ValueError: If the input is rejected.
        """
        ...

    async def execute(
        self, input_data: Any, context: ExecutionContext
    ) -> dict[str, Any]:
        """Run the tool.

        Raises:
            Exception: On execution failure.
        """
        ...


@runtime_checkable
class ToolProtocol(Protocol):
    """A pluggable source of tool discovery and instantiation.

    An optional ``async refresh()`` hook is called before each discovery.
    """

    @property
    def protocol_name(self) -> str:
        """Stable identifier, unique within one registry (e.g. 'native')."""
        ...

    async def discover_tools(self) -> list[ToolDefinition]:
        """Enumerate every tool currently available from this protocol."""
        ...

    async def create_tool(self, definition: ToolDefinition) -> Tool:
        """Instantiate a tool this protocol previously discovered.

        Raises:
            ToolCreationError: If the definition is not owned by this protocol.
        """
        ...

    async def health_check(self) -> ProtocolHealth:
        """Report liveness and tool count. May raise."""
        ...
