"""Main CLI application.

Click commands for inspecting and exercising the tool registry:
tools (list, show, search, categories, refresh, execute), health,
config.
"""

from __future__ import annotations

import asyncio
import json as json_mod
import sys
import time
from typing import TYPE_CHECKING, Any

import click

from aceryx import __version__
from aceryx.config.loader import load_config, sample_config
from aceryx.core.errors import AceryxError, ConfigError, ToolNotFoundError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aceryx.cli.display import CatalogDisplay
    from aceryx.config.schema import AceryxConfig
    from aceryx.tools.registry import ToolRegistry


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> AceryxConfig:
    """Load config and configure logging, with user-friendly errors."""
    from aceryx.core.logging import setup_logging

    try:
        config = load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy
    setup_logging(config.logging)
    return config


def _display() -> CatalogDisplay:
    from aceryx.cli.display import CatalogDisplay

    return CatalogDisplay()


async def _setup_registry(config: AceryxConfig) -> ToolRegistry:
    """Build storage, registry and protocols from config.

    Refreshes the catalog when ``tools.refresh_on_start`` is set.
    """
    from aceryx.storage import create_storage
    from aceryx.tools.native import NativeProtocol
    from aceryx.tools.registry import ToolRegistry

    storage = await create_storage(config.storage)
    registry = ToolRegistry(
        storage,
        default_timeout=config.tools.execution_timeout,
        max_concurrent_executions=config.tools.max_concurrent_executions,
    )

    for name in config.tools.enabled_protocols:
        if name == "native":
            registry.add_protocol(
                NativeProtocol(
                    http_config=config.tools.http,
                    enabled_tools=config.tools.native.enabled_tools,
                )
            )
        else:
            await storage.close()
            msg = f"Unknown protocol in tools.enabled_protocols: {name}"
            raise ConfigError(msg)

    if config.tools.refresh_on_start:
        await registry.refresh_tools()
    return registry


def _run_with_registry(
    config: AceryxConfig,
    action: Callable[[ToolRegistry], Awaitable[Any]],
) -> Any:
    """Run *action* against a fresh registry, mapping errors to exit 1."""

    async def _main() -> Any:
        registry = await _setup_registry(config)
        try:
            return await action(registry)
        finally:
            await registry.invalidate()
            await registry.storage.close()

    try:
        return asyncio.run(_main())
    except AceryxError as e:
        _error(str(e))
        raise  # unreachable


# ── Group ────────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="aceryx")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """aceryx - Protocol-agnostic tool execution fabric.

    Discover, inspect and run tools through one registry.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── tools ────────────────────────────────────────────────────────


@cli.group(invoke_without_command=True)
@click.pass_context
def tools(ctx: click.Context) -> None:
    """Inspect and run catalog tools."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _parse_category(value: str | None) -> Any:
    if value is None:
        return None
    from aceryx.tools.base import ToolCategory

    try:
        return ToolCategory.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@tools.command("list")
@click.option("--category", default=None, help="Filter by category (e.g. HTTP).")
@click.option("--json", "as_json", is_flag=True, default=False, help="JSON output.")
@click.pass_context
def tools_list(ctx: click.Context, category: str | None, as_json: bool) -> None:
    """List tools in the catalog."""
    parsed = _parse_category(category)
    config = _load_config(ctx.obj["config_path"])

    async def _action(registry: ToolRegistry) -> None:
        definitions = await registry.list_tools(parsed)
        if as_json:
            click.echo(json_mod.dumps([d.to_dict() for d in definitions], indent=2))
        else:
            _display().tool_table(definitions)

    _run_with_registry(config, _action)


@tools.command("show")
@click.argument("tool_id")
@click.option("--json", "as_json", is_flag=True, default=False, help="JSON output.")
@click.pass_context
def tools_show(ctx: click.Context, tool_id: str, as_json: bool) -> None:
    """Show the full definition of TOOL_ID."""
    config = _load_config(ctx.obj["config_path"])

    async def _action(registry: ToolRegistry) -> None:
        definition = await registry.get_definition(tool_id)
        if definition is None:
            raise ToolNotFoundError(tool_id)
        if as_json:
            click.echo(json_mod.dumps(definition.to_dict(), indent=2))
        else:
            _display().tool_detail(definition)

    _run_with_registry(config, _action)


@tools.command("search")
@click.argument("query")
@click.pass_context
def tools_search(ctx: click.Context, query: str) -> None:
    """Search tools by name, description or category."""
    config = _load_config(ctx.obj["config_path"])

    async def _action(registry: ToolRegistry) -> None:
        hits = await registry.search_tools(query)
        if not hits:
            click.echo(f"No results for '{query}'.")
            return
        _display().tool_table(hits)

    _run_with_registry(config, _action)


@tools.command("categories")
def tools_categories() -> None:
    """List tool categories."""
    _display().categories()


@tools.command("refresh")
@click.pass_context
def tools_refresh(ctx: click.Context) -> None:
    """Re-discover tools from every enabled protocol."""
    config = _load_config(ctx.obj["config_path"])
    # Refresh explicitly below; avoid doing it twice.
    config.tools.refresh_on_start = False

    async def _action(registry: ToolRegistry) -> None:
        count = await registry.refresh_tools()
        click.echo(f"Refreshed {count} tools.")

    _run_with_registry(config, _action)


@tools.command("execute")
@click.argument("tool_id")
@click.option(
    "--input",
    "input_json",
    default="{}",
    help="Tool input as a JSON document.",
)
@click.option("--user", "user_id", default=None, help="User id for the context.")
@click.option("--flow", "flow_id", default=None, help="Flow id for the context.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Execution timeout in seconds (overrides config).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="JSON output.")
@click.pass_context
def tools_execute(
    ctx: click.Context,
    tool_id: str,
    input_json: str,
    user_id: str | None,
    flow_id: str | None,
    timeout: float | None,
    as_json: bool,
) -> None:
    """Execute TOOL_ID with the given input."""
    try:
        input_data = json_mod.loads(input_json)
    except json_mod.JSONDecodeError as e:
        _error(f"Invalid --input JSON: {e}")
        return

    config = _load_config(ctx.obj["config_path"])

    async def _action(registry: ToolRegistry) -> None:
        from aceryx.tools.context import ANONYMOUS_USER, ExecutionContext

        context = ExecutionContext(
            user_id=user_id or ANONYMOUS_USER,
            timeout=timeout if timeout is not None else config.tools.execution_timeout,
        )
        if flow_id:
            context = context.with_flow(flow_id)

        start = time.monotonic()
        output = await registry.execute_tool(tool_id, input_data, context)
        elapsed = time.monotonic() - start

        if as_json:
            click.echo(json_mod.dumps(output, indent=2, default=str))
        else:
            _display().result(tool_id, output, elapsed)

    _run_with_registry(config, _action)


# ── health ───────────────────────────────────────────────────────


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="JSON output.")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Report protocol and catalog health."""
    config = _load_config(ctx.obj["config_path"])

    async def _action(registry: ToolRegistry) -> bool:
        report = await registry.health_check()
        storage_health = await registry.storage.health_check()
        if as_json:
            payload = report.to_dict()
            payload["storage"] = {
                "healthy": storage_health.healthy,
                "backend_type": storage_health.backend_type,
                "total_tools": storage_health.total_tools,
                "error_message": storage_health.error_message,
            }
            click.echo(json_mod.dumps(payload, indent=2))
        else:
            _display().health(report)
            click.echo(
                f"Storage: {storage_health.backend_type} "
                f"({storage_health.total_tools} tools)"
            )
        return report.healthy

    if not _run_with_registry(config, _action):
        sys.exit(1)


# ── config ───────────────────────────────────────────────────────


@cli.command("config")
@click.option(
    "--production",
    is_flag=True,
    default=False,
    help="Emit the production template instead of development.",
)
def config_cmd(production: bool) -> None:
    """Print a sample configuration file."""
    click.echo(sample_config(production=production), nl=False)
