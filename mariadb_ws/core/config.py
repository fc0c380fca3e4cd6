"""mariadb-ws runtime configuration and settings."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _default_data_dir() -> Path:
    return Path.home() / ".workspace"


@dataclass
class Settings:
    """Runtime settings for mariadb-ws operations.

    Attributes:
        data_dir: Root of all workspace state (default: ~/.workspace)
        network: Docker network the containers are attached to (default: workspace)
        admin_image: phpMyAdmin image reference
        proxy_container: Reverse proxy container refreshed after admin start
        min_volume_api: Lowest Docker API version with named volume support
    """

    data_dir: Path = field(default_factory=_default_data_dir)
    network: str = "workspace"
    admin_image: str = "phpmyadmin/phpmyadmin:latest"
    proxy_container: str = "proxy.workspace"
    min_volume_api: str = "1.21"

    @property
    def plugin_dir(self) -> Path:
        """Directory holding config.json, dumps and admin front-end state."""
        return self.data_dir / "plugins" / "mariadb"

    @property
    def db_dir(self) -> Path:
        """Parent of the per-service data directories (filesystem storage)."""
        return self.data_dir / "db" / "mariadb"

    @property
    def config_path(self) -> Path:
        return self.plugin_dir / "config.json"

    @property
    def dump_dir(self) -> Path:
        return self.plugin_dir / "dump"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Environment variables:
            MARIADB_WS_DATA_DIR: Workspace data root
            MARIADB_WS_NETWORK: Docker network name
            MARIADB_WS_ADMIN_IMAGE: phpMyAdmin image
            MARIADB_WS_PROXY_CONTAINER: Reverse proxy container name
            MARIADB_WS_MIN_VOLUME_API: Minimum Docker API version for volumes

        Returns:
            Settings instance with values from environment or defaults
        """
        data_dir = os.getenv("MARIADB_WS_DATA_DIR")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else _default_data_dir(),
            network=os.getenv("MARIADB_WS_NETWORK", cls.network),
            admin_image=os.getenv("MARIADB_WS_ADMIN_IMAGE", cls.admin_image),
            proxy_container=os.getenv("MARIADB_WS_PROXY_CONTAINER", cls.proxy_container),
            min_volume_api=os.getenv("MARIADB_WS_MIN_VOLUME_API", cls.min_volume_api),
        )


# Global settings instance (can be overridden)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings.

    Returns:
        Settings instance (creates from environment if not set)
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Override the global settings (None resets to environment defaults)."""
    global _settings
    _settings = settings
