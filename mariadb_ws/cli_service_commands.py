"""Service registry and container lifecycle commands."""
from __future__ import annotations

from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from mariadb_ws.cli_support import (
    complete_service,
    get_workspace,
    handle_cli_error,
    parse_env,
    print_info,
    print_success,
)
from mariadb_ws.core.errors import MariadbWsError
from mariadb_ws.models.service import StorageMode


def register_service_commands(app: typer.Typer, console: Console) -> None:
    """Attach service lifecycle commands to the main CLI."""

    @app.command("init")
    def init_command(
        root_password: Optional[str] = typer.Option(None, "--root-password", "-p", help="Root password for phpMyAdmin."),
    ) -> None:
        """Set the root password used by the admin front-end."""
        ws = get_workspace()
        try:
            ws.lifecycle.init(root_password)
        except MariadbWsError as exc:
            handle_cli_error(exc, console)
        print_success(console, "Root password saved")

    @app.command("create")
    def create_command(
        service: Optional[str] = typer.Argument(None, help="Service name."),
        username: Optional[str] = typer.Option(None, "--username", "-u", help="User name."),
        password: Optional[str] = typer.Option(None, "--password", "-p", help="Password."),
        root_password: Optional[str] = typer.Option(None, "--root-password", help="Root password (defaults to --password)."),
        host: Optional[str] = typer.Option(None, "--host", "-h", help="External host."),
        storage: Optional[StorageMode] = typer.Option(None, "--storage", "-s", case_sensitive=False, help="Storage backend."),
        volume: Optional[str] = typer.Option(None, "--volume", help="Custom volume name (volume storage)."),
        image: Optional[str] = typer.Option(None, "--image", "-i", help="Image name (default: mariadb)."),
        image_version: Optional[str] = typer.Option(None, "--image-version", "-I", help="Image version (default: latest)."),
        env: Optional[List[str]] = typer.Option(None, "--env", "-e", help="Extra container environment (KEY=VALUE).", metavar="KEY=VALUE"),
    ) -> None:
        """Register a new MariaDB service."""
        ws = get_workspace()
        try:
            if not service:
                service = ws.prompter.text("Service name:")

            created = ws.lifecycle.create(
                service,
                username=username,
                password=password,
                host=host,
                storage=storage.value if storage else None,
                volume=volume,
                image_name=image,
                image_version=image_version,
                root_password=root_password,
                env=parse_env(env),
            )

            if created.is_external:
                ws.admin.sync()
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Service {created.name} created")

    @app.command("destroy")
    def destroy_command(
        service: str = typer.Argument(..., help="Service name.", autocompletion=complete_service),
        yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation."),
        force: bool = typer.Option(False, "--force", "-f", help="Allow destroying the default service."),
    ) -> None:
        """Remove a service together with its container and data."""
        ws = get_workspace()
        try:
            ws.lifecycle.destroy(service, yes=yes, force=force)
            ws.admin.sync()
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Service {service} destroyed")

    @app.command("use")
    def use_command(
        service: Optional[str] = typer.Argument(None, help="Service to make the default.", autocompletion=complete_service),
    ) -> None:
        """Show or set the default service."""
        ws = get_workspace()
        try:
            if not service:
                console.print(ws.lifecycle.get_default().name, highlight=False)
                return

            ws.lifecycle.set_default(service)
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Default service is now {service}")

    @app.command("list")
    def list_command() -> None:
        """List configured services."""
        ws = get_workspace()
        try:
            table = Table(title="MariaDB services")
            table.add_column("Name", style="cyan")
            table.add_column("Host")
            table.add_column("User")
            table.add_column("External")
            table.add_column("Storage")
            table.add_column("Image")
            table.add_column("IP")

            for item in ws.store.services:
                ip = ""
                if not item.is_external:
                    container = ws.runtime.get_container(item.container_name)
                    if container is not None:
                        ip = ws.runtime.container_ip(container, ws.settings.network) or ""

                table.add_row(
                    item.name + (" (default)" if ws.store.default == item.name else ""),
                    item.host or item.container_name,
                    item.username or ("root" if not item.is_external else ""),
                    "yes" if item.is_external else "no",
                    item.storage.value if item.storage and not item.is_external else "",
                    "" if item.is_external else item.image_tag,
                    ip or "-",
                )
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        if not ws.store.services:
            print_info(console, "No services configured")
            return

        console.print(table)

    app.command("ls", hidden=True)(list_command)

    @app.command("start")
    def start_command(
        service: Optional[str] = typer.Argument(None, help="Service name (default service when omitted).", autocompletion=complete_service),
        restart: bool = typer.Option(False, "--restart", "-r", help="Recreate the container."),
    ) -> None:
        """Start a service container."""
        ws = get_workspace()
        try:
            started = ws.lifecycle.start(service, restart=restart)
            ws.admin.sync()
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Service {started.name} started")

    @app.command("stop")
    def stop_command(
        service: Optional[str] = typer.Argument(None, help="Service name (default service when omitted).", autocompletion=complete_service),
    ) -> None:
        """Stop a service container (data is kept)."""
        ws = get_workspace()
        try:
            stopped = ws.lifecycle.stop(service)
            ws.admin.sync()
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Service {stopped.name} stopped")

    @app.command("upgrade")
    def upgrade_command(
        service: Optional[str] = typer.Argument(None, help="Service name (default service when omitted).", autocompletion=complete_service),
        storage: Optional[StorageMode] = typer.Option(None, "--storage", "-s", case_sensitive=False, help="New storage backend."),
        volume: Optional[str] = typer.Option(None, "--volume", help="New volume name."),
        image: Optional[str] = typer.Option(None, "--image", "-i", help="New image name."),
        image_version: Optional[str] = typer.Option(None, "--image-version", "-I", help="New image version."),
    ) -> None:
        """Change storage or image settings; restart the service to apply them."""
        ws = get_workspace()
        try:
            updated = ws.lifecycle.upgrade(
                service,
                storage=storage.value if storage else None,
                volume=volume,
                image_name=image,
                image_version=image_version,
            )
        except MariadbWsError as exc:
            handle_cli_error(exc, console)

        print_success(console, f"Service {updated.name} updated")
        print_info(console, f"Run 'mariadb-ws start {updated.name} --restart' to apply")
