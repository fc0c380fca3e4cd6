"""Database shell, dump, backup and restore commands."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from mariadb_ws.cli_support import (
    complete_database,
    complete_dump_database,
    complete_dump_file,
    complete_service,
    get_workspace,
    handle_cli_error,
    print_success,
)
from mariadb_ws.core.errors import MariadbWsError


def register_data_commands(app: typer.Typer, console: Console) -> None:
    """Attach data pipeline commands to the main CLI."""

    @app.command("shell")
    def shell_command(
        service: Optional[str] = typer.Argument(None, help="Service name (default service when omitted).", autocompletion=complete_service),
        database: Optional[str] = typer.Option(None, "--database", "-d", help="Database name.", autocompletion=complete_database),
    ) -> None:
        """Open the mariadb client inside a service container."""
        ws = get_workspace()
        try:
            exit_code = ws.pipeline.shell(service, database)
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        if exit_code != 0:
            raise typer.Exit(exit_code)

    @app.command("dump")
    def dump_command(
        service: Optional[str] = typer.Argument(None, help="Service name (default service when omitted).", autocompletion=complete_service),
        database: Optional[str] = typer.Option(None, "--database", "-d", help="Database name.", autocompletion=complete_database),
    ) -> None:
        """Write a SQL dump of a database to stdout."""
        ws = get_workspace()
        try:
            ws.pipeline.dump(service, database)
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

    @app.command("backup")
    def backup_command(
        service: Optional[str] = typer.Argument(None, help="Service name (default service when omitted).", autocompletion=complete_service),
        database: Optional[str] = typer.Option(None, "--database", "-d", help="Database name.", autocompletion=complete_database),
        filename: Optional[str] = typer.Option(None, "--filename", "-f", help="File name (without .sql).", autocompletion=complete_dump_file),
        delete: bool = typer.Option(False, "--delete", "-D", help="Delete a backup file instead."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Auto confirm file deletion."),
    ) -> None:
        """Back up a database into the dump directory."""
        ws = get_workspace()
        try:
            if delete:
                path = ws.pipeline.delete_backup(service, database, filename, yes=yes)
                print_success(console, f'File "{path.name}" deleted')
                return

            path = ws.pipeline.backup(service, database, filename)
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Backup written to {path}")

    @app.command("restore")
    def restore_command(
        service: Optional[str] = typer.Argument(None, help="Service name (default service when omitted).", autocompletion=complete_service),
        database: Optional[str] = typer.Option(None, "--database", "-d", help="Database name.", autocompletion=complete_dump_database),
        filename: Optional[str] = typer.Option(None, "--filename", "-f", help="Backup file name.", autocompletion=complete_dump_file),
    ) -> None:
        """Restore a database from a backup file."""
        ws = get_workspace()
        try:
            path = ws.pipeline.restore(service, database, filename)
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Restored {path.name}")
