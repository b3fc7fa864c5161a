"""Layered configuration for aceryx.

Sources, lowest priority first:

- model defaults from :mod:`aceryx.config.schema`
- ``$XDG_CONFIG_HOME/aceryx/config.toml`` (``~/.config`` when unset)
- ``aceryx.toml`` in the working directory
- the file named by ``$ACERYX_CONFIG``
- the ``path`` given to :func:`load_config` (the CLI's ``--config``)
- single-setting environment variables such as ``ACERYX_LOG_LEVEL``
- the ``overrides`` mapping given to :func:`load_config`

Tables merge key by key; anything else is replaced outright.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from aceryx.core.errors import ConfigError

from .schema import AceryxConfig

CONFIG_ENV = "ACERYX_CONFIG"

# Environment variable -> (table, key). Handy for containers that
# change one setting without shipping a file.
ENV_SETTINGS: dict[str, tuple[str, str]] = {
    "ACERYX_STORAGE_BACKEND": ("storage", "backend"),
    "ACERYX_STORAGE_URL": ("storage", "url"),
    "ACERYX_LOG_LEVEL": ("logging", "level"),
}


def config_sources(path: str | Path | None = None) -> list[Path]:
    """Config files that apply right now, lowest priority first.

    Implicit locations are skipped when absent. Locations the caller
    asked for explicitly must exist.

    Raises:
        ConfigError: If ``$ACERYX_CONFIG`` or *path* names a missing file.
    """
    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    implicit = [Path(xdg) / "aceryx" / "config.toml", Path.cwd() / "aceryx.toml"]
    sources = [p for p in implicit if p.is_file()]

    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        sources.append(
            _existing(env_path, f"{CONFIG_ENV} points to non-existent file")
        )
    if path is not None:
        sources.append(_existing(path, "Config file not found"))
    return sources


def _existing(path: str | Path, problem: str) -> Path:
    p = Path(path)
    if not p.is_file():
        msg = f"{problem}: {path}"
        raise ConfigError(msg)
    return p


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e


def _env_settings() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for var, (table, key) in ENV_SETTINGS.items():
        value = os.environ.get(var)
        if value:
            layer.setdefault(table, {})[key] = value
    return layer


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*; nested tables merge too."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _deep_merge(current, value)
        merged[key] = value
    return merged


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> AceryxConfig:
    """Build the effective configuration from every source.

    Raises:
        ConfigError: Missing explicit file, unreadable or invalid TOML, or
            a value the schema rejects.
    """
    layers = [_read_toml(p) for p in config_sources(path)]
    layers.append(_env_settings())
    layers.append(overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        merged = _deep_merge(merged, layer)

    try:
        return AceryxConfig.model_validate(merged)
    except ValidationError as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e


_DEVELOPMENT_TEMPLATE = """\
# Aceryx configuration (development)

[storage]
# "memory" keeps the catalog in-process; "sqlite" persists it.
backend = "memory"

[tools]
enabled_protocols = ["native"]
execution_timeout = 30.0
max_concurrent_executions = 100
refresh_on_start = true

[tools.native]
enabled_tools = ["http_request", "json_transform"]

[tools.http]
user_agent = "Aceryx/1.0"
timeout = 60.0

[logging]
level = "DEBUG"
file = ""
structured = false
"""

_PRODUCTION_TEMPLATE = """\
# Aceryx configuration (production)

[storage]
backend = "sqlite"
url = "sqlite+aiosqlite:////var/lib/aceryx/catalog.db"

[tools]
enabled_protocols = ["native"]
execution_timeout = 60.0
max_concurrent_executions = 1000
refresh_on_start = true

[tools.native]
enabled_tools = ["http_request", "json_transform"]

[tools.http]
user_agent = "Aceryx/1.0"
timeout = 60.0

[logging]
level = "INFO"
file = "/var/log/aceryx/aceryx.log"
structured = true
"""


def sample_config(*, production: bool = False) -> str:
    """Return a commented TOML config template."""
    return _PRODUCTION_TEMPLATE if production else _DEVELOPMENT_TEMPLATE
