"""Per-call execution context passed into every tool run."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any

ANONYMOUS_USER = "anonymous"
DEFAULT_TIMEOUT = 30.0


def _request_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class ExecutionContext:
    """Request-scoped state for one tool invocation.

    Constructed fresh by the caller for every invocation and never
    persisted. ``flow_id`` is a back-reference only. ``timeout`` is in
    seconds.
    """

    user_id: str = ANONYMOUS_USER
    flow_id: str | None = None
    node_id: str | None = None
    request_id: str = field(default_factory=_request_id)
    timeout: float = DEFAULT_TIMEOUT
    variables: dict[str, Any] = field(default_factory=dict)

    def with_flow(self, flow_id: str, node_id: str | None = None) -> ExecutionContext:
        return replace(self, flow_id=flow_id, node_id=node_id)

    def with_timeout(self, timeout: float) -> ExecutionContext:
        return replace(self, timeout=timeout)

    def with_variables(self, variables: dict[str, Any]) -> ExecutionContext:
        return replace(self, variables=dict(variables))

    def get_variable(self, key: str, default: Any = None) -> Any:
        return self.variables.get(key, default)

    def set_variable(self, key: str, value: Any) -> None:
        self.variables[key] = value

    def fork(self) -> ExecutionContext:
        """Copy with a private ``variables`` dict; keeps ``request_id``."""
        return replace(self, variables=dict(self.variables))
