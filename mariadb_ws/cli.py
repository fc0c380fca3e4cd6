#!/usr/bin/env python3
"""mariadb-ws CLI - MariaDB services in Docker with a shared phpMyAdmin."""
from typing import Optional

import typer
from rich.console import Console

from mariadb_ws.cli_data_commands import register_data_commands
from mariadb_ws.cli_service_commands import register_service_commands
from mariadb_ws.cli_support import setup_file_logging
from mariadb_ws.core.logger import set_verbose

app = typer.Typer(
    name="mariadb-ws",
    help="""mariadb-ws - MariaDB services for your workspace

Quick start:
  mariadb-ws create app -p secret -s volume   # Register a service
  mariadb-ws start                            # Start the default service
  mariadb-ws backup -d mydb                   # Dump a database to a file
  mariadb-ws restore -d mydb                  # Load it back

More commands: mariadb-ws --help
""",
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file."),
) -> None:
    set_verbose(verbose)
    if log_file:
        setup_file_logging(log_file=log_file, verbose=verbose)


register_service_commands(app, console)
register_data_commands(app, console)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
