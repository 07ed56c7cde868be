"""`time-ledger config` subcommands."""

import json
import shutil
import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from time_ledger.core.config import ConfigManager

console = Console()
error_console = Console(stderr=True)


def _abort(message: str) -> NoReturn:
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def get_config_manager(ctx: click.Context) -> ConfigManager:
    """ConfigManager for the --config path given to the root command."""
    config_path: Optional[str] = (ctx.obj or {}).get("config_path")
    try:
        return ConfigManager(Path(config_path) if config_path else None)
    except ValueError as e:
        _abort(str(e))


def convert_value(value: str) -> Any:
    """Turn a command-line string into bool, None or int where it looks like one."""
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    if lowered in ("null", "none"):
        return None
    try:
        return int(value)
    except ValueError:
        return value


@click.group()  # type: ignore[misc]
def config() -> None:
    """View and change settings (timezone, day start, display).

    Settings live in ~/.time-ledger/config.yml unless --config is given.
    """


@config.command("show")  # type: ignore[misc]
@click.option("--json", "as_json", is_flag=True, help="Print the raw settings as JSON")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_show(ctx: click.Context, as_json: bool) -> None:
    """List every setting.

    Example:
        time-ledger config show --json
    """
    manager = get_config_manager(ctx)
    if as_json:
        print(json.dumps(manager.to_dict(), indent=2))
        return

    table = Table(title="Time Ledger Settings")
    table.add_column("Section", style="dim")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for dotted in manager.get_all_keys():
        section, _, name = dotted.rpartition(".")
        value = manager.get(dotted)
        table.add_row(section or "-", name, "null" if value is None else str(value))

    console.print(table)
    console.print(f"[dim]File:[/dim] {manager.config_path}")


@config.command("get")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_get(ctx: click.Context, key: str) -> None:
    """Print one setting, or a whole section as JSON.

    Example:
        time-ledger config get general.day_start_offset
    """
    value = get_config_manager(ctx).get(key)
    if value is None:
        _abort(f"Configuration key '{key}' not found or unset")
    console.print(json.dumps(value, indent=2) if isinstance(value, dict) else str(value))


@config.command("set")  # type: ignore[misc]
@click.argument("key")  # type: ignore[misc]
@click.argument("value")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Change a setting. 'true'/'false' are booleans and 'null' clears a value.

    Example:
        time-ledger config set general.timezone Europe/Berlin
        time-ledger config set general.day_start_offset 4
    """
    manager = get_config_manager(ctx)
    parsed = convert_value(value)
    try:
        manager.set(key, parsed)
    except ValueError as e:
        _abort(str(e))
    console.print(f"[green]✓[/green] {key} = {parsed}")


@config.command("reset")  # type: ignore[misc]
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_reset(ctx: click.Context, yes: bool) -> None:
    """Restore default settings, keeping a copy of the current file.

    Example:
        time-ledger config reset -y
    """
    manager = get_config_manager(ctx)
    if not yes and not click.confirm("Reset all settings to defaults?"):
        console.print("Cancelled")
        return

    saved = manager.config_path.with_suffix(".yml.backup")
    if manager.config_path.exists():
        shutil.copy(manager.config_path, saved)
        console.print(f"[dim]Previous settings saved to {saved}[/dim]")
    manager.reset()
    console.print("[green]✓[/green] Settings reset to defaults")


@config.command("path")  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def config_path(ctx: click.Context) -> None:
    """Print the settings file location."""
    console.print(str(get_config_manager(ctx).config_path))
