"""Tests for configuration loading and validation."""

from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING

import pytest

from aceryx.config import AceryxConfig, load_config, sample_config
from aceryx.config.loader import _deep_merge, config_sources
from aceryx.core.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


# ── Defaults ─────────────────────────────────────────────────────


class TestDefaults:
    def test_defaults(self) -> None:
        config = AceryxConfig()
        assert config.storage.backend == "memory"
        assert config.tools.enabled_protocols == ["native"]
        assert config.tools.native.enabled_tools == ["http_request", "json_transform"]
        assert config.tools.execution_timeout == 30.0
        assert config.tools.max_concurrent_executions == 100
        assert config.tools.refresh_on_start is True
        assert config.tools.http.user_agent == "Aceryx/1.0"
        assert config.logging.level == "INFO"

    def test_load_without_files(self) -> None:
        assert load_config() == AceryxConfig()


# ── Merge ────────────────────────────────────────────────────────


class TestDeepMerge:
    def test_nested_override(self) -> None:
        base = {"tools": {"execution_timeout": 30, "refresh_on_start": True}}
        merged = _deep_merge(base, {"tools": {"execution_timeout": 5}})
        assert merged == {"tools": {"execution_timeout": 5, "refresh_on_start": True}}
        assert base["tools"]["execution_timeout"] == 30

    def test_non_dict_replaces(self) -> None:
        merged = _deep_merge({"a": {"b": 1}}, {"a": 2})
        assert merged == {"a": 2}


# ── File discovery ───────────────────────────────────────────────


class TestDiscovery:
    def test_project_file(self, tmp_path: Path) -> None:
        _write(tmp_path / "aceryx.toml", "[tools]\nexecution_timeout = 12.5\n")
        assert load_config().tools.execution_timeout == 12.5

    def test_user_file_overridden_by_project(self, tmp_path: Path) -> None:
        _write(
            tmp_path / "xdg" / "aceryx" / "config.toml",
            '[logging]\nlevel = "DEBUG"\n[tools]\nexecution_timeout = 1.0\n',
        )
        _write(tmp_path / "aceryx.toml", "[tools]\nexecution_timeout = 2.0\n")
        config = load_config()
        assert config.logging.level == "DEBUG"
        assert config.tools.execution_timeout == 2.0

    def test_env_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path / "env.toml", '[storage]\nbackend = "sqlite"\n')
        monkeypatch.setenv("ACERYX_CONFIG", str(path))
        assert load_config().storage.backend == "sqlite"

    def test_env_path_missing_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACERYX_CONFIG", "/nonexistent/aceryx.toml")
        with pytest.raises(ConfigError, match=r"ACERYX_CONFIG"):
            load_config()

    def test_explicit_path_and_overrides(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "explicit.toml", "[tools]\nmax_concurrent_executions = 5\n")
        config = load_config(
            path=path, overrides={"tools": {"max_concurrent_executions": 7}}
        )
        assert config.tools.max_concurrent_executions == 7

    def test_explicit_path_missing_raises(self) -> None:
        with pytest.raises(ConfigError, match=r"not found"):
            load_config(path="/nonexistent.toml")

    def test_sources_in_priority_order(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        user = _write(tmp_path / "xdg" / "aceryx" / "config.toml", "")
        project = _write(tmp_path / "aceryx.toml", "")
        env = _write(tmp_path / "env.toml", "")
        explicit = _write(tmp_path / "explicit.toml", "")
        monkeypatch.setenv("ACERYX_CONFIG", str(env))
        assert config_sources(explicit) == [user, project, env, explicit]

    def test_no_sources(self) -> None:
        assert config_sources() == []


# ── Environment settings ─────────────────────────────────────────


class TestEnvSettings:
    def test_env_overrides_files(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write(tmp_path / "aceryx.toml", '[logging]\nlevel = "INFO"\n')
        monkeypatch.setenv("ACERYX_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("ACERYX_STORAGE_BACKEND", "sqlite")
        monkeypatch.setenv("ACERYX_STORAGE_URL", "sqlite+aiosqlite:///tmp/c.db")
        config = load_config()
        assert config.logging.level == "DEBUG"
        assert config.storage.backend == "sqlite"
        assert config.storage.url == "sqlite+aiosqlite:///tmp/c.db"

    def test_overrides_beat_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACERYX_LOG_LEVEL", "DEBUG")
        config = load_config(overrides={"logging": {"level": "ERROR"}})
        assert config.logging.level == "ERROR"

    def test_invalid_env_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACERYX_STORAGE_BACKEND", "redis")
        with pytest.raises(ConfigError, match=r"validation failed"):
            load_config()


# ── Validation ───────────────────────────────────────────────────


class TestValidation:
    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "bad.toml", "[tools\n")
        with pytest.raises(ConfigError, match=r"Invalid TOML"):
            load_config(path=path)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ConfigError, match=r"validation failed"):
            load_config(overrides={"storage": {"backend": "redis"}})

    def test_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigError):
            load_config(overrides={"tools": {"execution_timeout": 0}})

    def test_negative_concurrency(self) -> None:
        with pytest.raises(ConfigError):
            load_config(overrides={"tools": {"max_concurrent_executions": -1}})


# ── Templates ────────────────────────────────────────────────────


class TestSampleConfig:
    @pytest.mark.parametrize("production", [False, True])
    def test_template_is_valid(self, production: bool) -> None:
        data = tomllib.loads(sample_config(production=production))
        config = AceryxConfig.model_validate(data)
        assert config.tools.enabled_protocols == ["native"]

    def test_production_uses_sqlite_and_json_logs(self) -> None:
        data = tomllib.loads(sample_config(production=True))
        config = AceryxConfig.model_validate(data)
        assert config.storage.backend == "sqlite"
        assert config.logging.structured is True
