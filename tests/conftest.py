"""Shared test fixtures for aceryx."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pytest

from aceryx.config.loader import ENV_SETTINGS
from aceryx.storage.memory import MemoryToolStorage
from aceryx.tools.registry import ToolRegistry
from tests.fixtures.protocols import StaticProtocol, make_definition

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from aceryx.tools.base import ToolDefinition


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[None]:
    """Keep user/project config files and logging handlers out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in ("ACERYX_CONFIG", *ENV_SETTINGS):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    root = logging.getLogger("aceryx")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)


@pytest.fixture
def storage() -> MemoryToolStorage:
    return MemoryToolStorage()


@pytest.fixture
def registry(storage: MemoryToolStorage) -> ToolRegistry:
    return ToolRegistry(storage, default_timeout=5.0)


@pytest.fixture
def echo_protocol() -> StaticProtocol:
    """Protocol serving a single ``echo`` tool."""
    return StaticProtocol.with_echo("mock", "echo")


@pytest.fixture
def make_def() -> Any:
    """Factory fixture for ToolDefinition with sensible defaults."""

    def _make(tool_id: str = "echo", **overrides: Any) -> ToolDefinition:
        return make_definition(tool_id, **overrides)

    return _make
