"""phpMyAdmin front-end shared by all services.

The admin container is rebuilt from scratch on every sync so its server list
always matches the services that currently have containers (plus every
external service).
"""
from pathlib import Path
from typing import List, Optional

from mariadb_ws.core.config import Settings, get_settings
from mariadb_ws.core.config_store import ConfigStore
from mariadb_ws.core.logger import get_logger
from mariadb_ws.models.service import Service

logger = get_logger(__name__)

CONFIG_FILE = "config.user.inc.php"
SCRATCH_DIRS = ("dump", "save", "upload")

CONFIG_HEADER = """<?php
/* Generated by mariadb-ws. Changes are overwritten on every service start/stop. */
$cfg['Servers'] = [];
$i = 0;
"""


def php_quote(value: str) -> str:
    """Quote a value as a single-quoted PHP string literal."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def render_server(service: Service) -> str:
    """Render the $cfg['Servers'] block for one service."""
    host = service.host or service.container_name
    credentials = service.admin_credentials
    user = credentials["user"]
    password = credentials["password"]

    lines = [
        "$i++;",
        f"$cfg['Servers'][$i]['verbose'] = {php_quote(service.name)};",
        f"$cfg['Servers'][$i]['host'] = {php_quote(host)};",
    ]

    if user and password:
        lines.append("$cfg['Servers'][$i]['auth_type'] = 'config';")
        lines.append(f"$cfg['Servers'][$i]['user'] = {php_quote(user)};")
        lines.append(f"$cfg['Servers'][$i]['password'] = {php_quote(password)};")
    elif user:
        lines.append("$cfg['Servers'][$i]['auth_type'] = 'cookie';")
        lines.append(f"$cfg['Servers'][$i]['user'] = {php_quote(user)};")

    return "\n".join(lines)


def render_config(services: List[Service]) -> str:
    return CONFIG_HEADER + "\n".join(render_server(s) for s in services) + "\n"


class AdminAggregator:
    """Keeps the phpMyAdmin container in sync with the configured services."""

    def __init__(self, store: ConfigStore, runtime, settings: Optional[Settings] = None):
        self.store = store
        self.runtime = runtime
        self.settings = settings or get_settings()

    @property
    def container_name(self) -> str:
        return self.store.admin_hostname

    @property
    def config_path(self) -> Path:
        return self.settings.plugin_dir / CONFIG_FILE

    def reachable_services(self) -> List[Service]:
        """Internal services that currently have a container (running or not)."""
        servers: List[Service] = []
        for service in self.store.services:
            if service.is_external:
                continue
            if self.runtime.get_container(service.container_name) is None:
                continue
            servers.append(service)
        return servers

    def sync(self) -> List[Service]:
        """Rebuild the admin front-end.

        Returns:
            Services listed in the front-end (empty when it was not started)
        """
        servers = self.reachable_services()
        external = [s for s in self.store.services if s.is_external]

        self.runtime.remove_container(self.container_name)

        if not servers and not external:
            logger.debug("No services to administer, admin front-end stays down")
            return []

        servers.extend(external)

        logger.info("Phpmyadmin starting...")
        self.write_config(servers)
        self.start_container()

        return servers

    def write_config(self, servers: List[Service]) -> None:
        plugin_dir = self.settings.plugin_dir
        plugin_dir.mkdir(parents=True, exist_ok=True)

        self.config_path.write_text(render_config(servers))

        for name in SCRATCH_DIRS:
            (plugin_dir / name).mkdir(parents=True, exist_ok=True)

        # phpMyAdmin runs as www-data and needs to write save/ and upload/
        for name in ("save", "upload"):
            try:
                (plugin_dir / name).chmod(0o777)
            except OSError as e:
                logger.warning(f"Could not adjust permissions of {plugin_dir / name}: {e}")

    def start_container(self) -> None:
        plugin_dir = self.settings.plugin_dir
        container = self.runtime.get_container(self.container_name)

        if container is None:
            self.runtime.pull_image(self.settings.admin_image)

            env = {
                "VIRTUAL_HOST": self.container_name,
                "VIRTUAL_PORT": "80",
                "PMA_USER": "root",
                "PMA_PASSWORD": self.store.root_password or "",
            }

            container = self.runtime.create_container(
                name=self.container_name,
                image=self.settings.admin_image,
                env=env,
                volumes=[
                    f"{self.config_path}:/etc/phpmyadmin/{CONFIG_FILE}",
                    f"{plugin_dir / 'save'}:/etc/phpmyadmin/save",
                    f"{plugin_dir / 'upload'}:/etc/phpmyadmin/upload",
                ],
                network=self.settings.network,
                restart="always",
            )

        if not self.runtime.is_running(container):
            self.runtime.start_container(container)
            self.refresh_proxy()

    def refresh_proxy(self) -> None:
        """Start the reverse proxy so it picks up the admin hostname."""
        proxy = self.runtime.get_container(self.settings.proxy_container)

        if proxy is None:
            logger.debug(f"Proxy container {self.settings.proxy_container} not found, skipping")
            return

        if not self.runtime.is_running(proxy):
            logger.info(f"Starting proxy {self.settings.proxy_container}")
            self.runtime.start_container(proxy)
