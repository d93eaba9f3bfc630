"""Command line interface for inspecting and managing stored sessions."""

from __future__ import annotations

import difflib
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from tabstate.config import ConfigError, ConfigManager, TabstateConfig, resolve_with_precedence
from tabstate.config.resolver import assign_path
from tabstate.state import SessionStore, StateError

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _emit(message: Any, *, quiet: bool) -> None:
    if not quiet:
        console.print(message)


def _format_timestamp(value: int) -> str:
    if value <= 0:
        return "never"
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _configure_logging(config: TabstateConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config() -> TabstateConfig:
    manager = ConfigManager()
    try:
        config = manager.load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    _configure_logging(config)
    return config


def _store(ctx: click.Context, config: TabstateConfig) -> SessionStore:
    override = ctx.find_root().params.get("session_dir")
    if override:
        return SessionStore(Path(override))
    return SessionStore(config.storage.resolve_session_dir())


def _config_lines(manager: ConfigManager) -> list[str]:
    return [
        line
        for line in manager.read_text().splitlines()
        if not line.startswith("# Last updated")
    ]


def _resolve_quiet(ctx: click.Context, quiet: bool, config: TabstateConfig) -> bool:
    if ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE:
        return quiet
    return config.cli.quiet_default


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--session-dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Session directory to use instead of the configured one.",
)
@click.version_option(package_name="tabstate")
def cli(session_dir: Optional[str]) -> None:
    """Inspect and manage saved editor sessions."""


@cli.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit sessions as JSON.")
@click.option("--limit", type=int, default=None, help="Show at most this many sessions.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def list_sessions(ctx: click.Context, json_output: bool, limit: Optional[int], quiet: bool) -> None:
    """List saved sessions, most recently modified first."""
    config = _load_config()
    store = _store(ctx, config)
    try:
        sessions = store.list()
        last_loaded = store.read_last_loaded()
    except StateError as exc:
        _handle_cli_error(str(exc), code="store_error", json_output=json_output, original=exc)
        return

    effective_limit = limit if limit is not None else config.cli.list_limit
    if effective_limit and effective_limit > 0:
        sessions = sessions[:effective_limit]

    if json_output:
        console.print_json(
            data={
                "sessions": [entry.model_dump(mode="json", by_alias=True) for entry in sessions],
                "last_loaded": last_loaded,
            }
        )
        return

    quiet_enabled = _resolve_quiet(ctx, quiet, config)
    if not sessions:
        _emit("[yellow]No sessions found.[/yellow]", quiet=quiet_enabled)
        return

    table = Table(title=f"Sessions in {store.root}")
    table.add_column("Name", overflow="fold")
    table.add_column("Modified")
    table.add_column("Last loaded", justify="center")
    for entry in sessions:
        marker = "*" if entry.name == last_loaded else ""
        table.add_row(escape(entry.name), _format_timestamp(entry.last_modified), marker)
    _emit(table, quiet=quiet_enabled)


@cli.command()
@click.argument("name")
@click.option("--json", "json_output", is_flag=True, help="Emit the stored snapshot as JSON.")
@click.pass_context
def show(ctx: click.Context, name: str, json_output: bool) -> None:
    """Display the groups and documents stored in session NAME."""
    config = _load_config()
    store = _store(ctx, config)
    try:
        snapshot = store.load(name)
    except StateError as exc:
        _handle_cli_error(str(exc), code="load_failed", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data=snapshot.to_payload())
        return

    console.print(
        f"[bold]{escape(name)}[/bold] (version {snapshot.version}, "
        f"saved {_format_timestamp(snapshot.created_at)})"
    )
    focused_group = snapshot.focused_group_index
    for group in snapshot.groups:
        marker = " [green](active)[/green]" if group.index == focused_group else ""
        table = Table(title=f"Group {group.index}: {escape(group.working_directory)}{marker}")
        table.add_column("Document", overflow="fold")
        table.add_column("Line", justify="right")
        table.add_column("Column", justify="right")
        table.add_column("Last active")
        focused_document = group.focused_document_index
        for position, document in enumerate(group.documents, start=1):
            label = escape(document.path)
            if position == focused_document:
                label = f"[green]{label}[/green]"
            table.add_row(
                label,
                str(document.cursor_line),
                str(document.cursor_column),
                _format_timestamp(document.last_active_at),
            )
        console.print(table)


@cli.command()
@click.argument("name")
@click.option("--yes", is_flag=True, help="Delete without asking for confirmation.")
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def delete(ctx: click.Context, name: str, yes: bool, json_output: bool, quiet: bool) -> None:
    """Delete session NAME and its index entry."""
    config = _load_config()
    store = _store(ctx, config)
    if json_output and not yes:
        _handle_cli_error(
            "Deleting with --json requires --yes.",
            code="confirmation_required",
            json_output=True,
        )
        return
    if not yes and not click.confirm(f"Delete session '{name}'?", default=False):
        console.print("[yellow]Deletion cancelled.[/yellow]")
        return
    try:
        store.delete(name)
        if store.read_last_loaded() == name:
            store.clear_last_loaded()
    except StateError as exc:
        _handle_cli_error(str(exc), code="delete_failed", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data={"deleted": name})
        return
    quiet_enabled = _resolve_quiet(ctx, quiet, config)
    _emit(f"[green]Session deleted: {escape(name)}[/green]", quiet=quiet_enabled)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit the session name as JSON.")
@click.pass_context
def last(ctx: click.Context, json_output: bool) -> None:
    """Print the session that would be restored automatically at startup."""
    config = _load_config()
    store = _store(ctx, config)
    try:
        name = store.read_last_loaded() or store.get_most_recent()
    except StateError as exc:
        _handle_cli_error(str(exc), code="store_error", json_output=json_output, original=exc)
        return
    if name is None:
        _handle_cli_error(
            "No sessions have been saved yet.", code="no_sessions", json_output=json_output
        )
        return
    if json_output:
        console.print_json(data={"name": name})
        return
    click.echo(name)


@cli.group()
def config() -> None:
    """Manage tabstate configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        config = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()

    before = _config_lines(manager)
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'autosave.debounce_ms'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.load_file_overrides()
    try:
        assign_path(file_data, segments, parsed_value, label="file")
        resolve_with_precedence(defaults=TabstateConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = _config_lines(manager)
    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )

    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session."""
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=TabstateConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


__all__ = ["cli"]
