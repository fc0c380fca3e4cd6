"""Shared utilities for mariadb-ws CLI modules."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from mariadb_ws.core.config import Settings, get_settings
from mariadb_ws.core.config_store import ConfigStore, JsonDocumentStorage
from mariadb_ws.core.errors import MariadbWsError
from mariadb_ws.core.prompts import Prompter, get_prompter
from mariadb_ws.models.service import Service
from mariadb_ws.services.admin import AdminAggregator
from mariadb_ws.services.docker import DockerRuntime
from mariadb_ws.services.lifecycle import ServiceLifecycle
from mariadb_ws.services.pipeline import DataPipeline


@dataclass
class Workspace:
    """Collaborators one CLI command works with."""

    settings: Settings
    store: ConfigStore
    runtime: DockerRuntime
    prompter: Prompter
    lifecycle: ServiceLifecycle
    admin: AdminAggregator
    pipeline: DataPipeline


def get_runtime() -> DockerRuntime:
    """Return the container runtime used by CLI commands."""
    return DockerRuntime()


def get_workspace(interactive: Optional[bool] = None) -> Workspace:
    """Wire the config store, runtime and services for one command."""
    settings = get_settings()
    store = ConfigStore(JsonDocumentStorage(settings.config_path))
    runtime = get_runtime()
    prompter = get_prompter(interactive)

    return Workspace(
        settings=settings,
        store=store,
        runtime=runtime,
        prompter=prompter,
        lifecycle=ServiceLifecycle(store, runtime, settings, prompter),
        admin=AdminAggregator(store, runtime, settings),
        pipeline=DataPipeline(store, runtime, settings, prompter),
    )


def _starting_with(values: List[str], incomplete: str) -> List[str]:
    return [value for value in values if value.startswith(incomplete)]


def _completion_service(ws: Workspace, ctx: typer.Context) -> Service:
    return ws.store.get_service_or_default(ctx.params.get("service"))


def complete_service(incomplete: str) -> List[str]:
    """Complete configured service names."""
    try:
        ws = get_workspace(interactive=False)
        return _starting_with([s.name for s in ws.store.services], incomplete)
    except MariadbWsError:
        return []


def complete_database(ctx: typer.Context, incomplete: str) -> List[str]:
    """Complete databases that live in the service container."""
    try:
        ws = get_workspace(interactive=False)
        service = _completion_service(ws, ctx)
        return _starting_with(ws.pipeline.list_databases(service), incomplete)
    except MariadbWsError:
        return []


def complete_dump_database(ctx: typer.Context, incomplete: str) -> List[str]:
    """Complete databases that have backups in the dump directory."""
    try:
        ws = get_workspace(interactive=False)
        service = _completion_service(ws, ctx)
        return _starting_with(ws.pipeline.list_dump_databases(service), incomplete)
    except MariadbWsError:
        return []


def complete_dump_file(ctx: typer.Context, incomplete: str) -> List[str]:
    """Complete backup files of the selected database."""
    database = ctx.params.get("database")
    if not database:
        return []
    try:
        ws = get_workspace(interactive=False)
        service = _completion_service(ws, ctx)
        return _starting_with(ws.pipeline.list_dump_files(service, database), incomplete)
    except MariadbWsError:
        return []


def parse_env(items: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated KEY=VALUE options."""
    env: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise typer.BadParameter("Environment variables must be KEY=VALUE", param_name="env")
        key, value = item.split("=", 1)
        env[key] = value
    return env


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands.

    Args:
        log_file: Path to log file (optional)
        verbose: Enable verbose logging
    """
    from mariadb_ws.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    """Print success message with consistent formatting."""
    console.print(f"[green]{prefix}[/green] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    """Print info message with consistent formatting."""
    console.print(f"[cyan]{prefix}[/cyan] {message}")
