"""Service lifecycle management (create, start, stop, destroy, upgrade)."""
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from mariadb_ws.core.config import Settings, get_settings
from mariadb_ws.core.config_store import ConfigStore
from mariadb_ws.core.errors import (
    AbortedError,
    ExternalServiceError,
    PasswordMismatchError,
    ProtectedDefaultError,
    ServiceExistsError,
    UnsupportedFeatureError,
)
from mariadb_ws.core.logger import get_logger
from mariadb_ws.core.prompts import Prompter, get_prompter
from mariadb_ws.models.service import Service, StorageMode

logger = get_logger(__name__)

DATA_DIR = "/var/lib/mysql"


class ServiceLifecycle:
    """Reconciles configured services with their Docker containers."""

    def __init__(
        self,
        store: ConfigStore,
        runtime,
        settings: Optional[Settings] = None,
        prompter: Optional[Prompter] = None,
    ):
        self.store = store
        self.runtime = runtime
        self.settings = settings or get_settings()
        self.prompter = prompter or get_prompter()

    def service_dir(self, service: Service) -> Path:
        """Host directory holding a filesystem-mode service's data."""
        return self.settings.db_dir / service.name

    def _require_volumes(self) -> None:
        if not self.runtime.supports_volumes(self.settings.min_volume_api):
            raise UnsupportedFeatureError(
                f"Volume storage needs Docker API >= {self.settings.min_volume_api}, "
                f"engine reports {self.runtime.api_version}"
            )

    # =========================================================================
    # Registry operations
    # =========================================================================

    def create(
        self,
        name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        host: Optional[str] = None,
        storage: Optional[str] = None,
        volume: Optional[str] = None,
        image_name: Optional[str] = None,
        image_version: Optional[str] = None,
        root_password: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> Service:
        """Register a new service, prompting for missing credentials."""
        if self.store.has_service(name):
            raise ServiceExistsError(name)

        if host and not username:
            username = self.prompter.text("User:")

        if not password:
            password = self.prompter.password("Password:")
            confirm = self.prompter.password("Confirm password:")
            if password != confirm:
                raise PasswordMismatchError()

        if not host and not storage:
            storage = self.prompter.select(
                "Storage:", [StorageMode.VOLUME.value, StorageMode.FILESYSTEM.value]
            )

        service = Service.from_dict({
            "name": name,
            "host": host,
            "username": username,
            "password": password,
            "root_password": root_password,
            "storage": storage,
            "volume": volume,
            "image_name": image_name,
            "image_version": image_version,
            "env": env,
        })

        self.store.set_service(service)
        self.store.save()

        logger.info(f"Service {name} created")
        return service

    def upgrade(
        self,
        name: Optional[str] = None,
        storage: Optional[str] = None,
        volume: Optional[str] = None,
        image_name: Optional[str] = None,
        image_version: Optional[str] = None,
    ) -> Service:
        """Change storage, volume or image of a service.

        Only the configuration changes; the running container keeps its old
        settings until the service is restarted.
        """
        service = self.store.get_service_or_default(name)

        if service.is_external:
            raise ExternalServiceError(service.name, service.host)

        if storage == StorageMode.VOLUME.value:
            self._require_volumes()

        updated = self.store.update_service(
            service.name,
            storage=storage,
            volume=volume,
            image_name=image_name,
            image_version=image_version,
        )
        self.store.save()

        logger.info(f"Service {service.name} updated, restart it to apply the changes")
        return updated

    def init(self, root_password: Optional[str] = None) -> None:
        """Set the admin front-end root password."""
        if not root_password:
            root_password = self.prompter.text("Root password:", default=self.store.root_password)

        self.store.root_password = root_password
        self.store.save()

    def set_default(self, name: str) -> None:
        self.store.set_default(name)
        self.store.save()

    def get_default(self) -> Service:
        return self.store.get_service_or_default(None)

    # =========================================================================
    # Container operations
    # =========================================================================

    def container_env(self, service: Service) -> Dict[str, str]:
        """Environment for the service container; empty credentials are left out."""
        env: Dict[str, str] = dict(service.env)

        if service.username:
            env["MARIADB_USER"] = service.username

        if service.password:
            env["MARIADB_PASSWORD"] = service.password

        if service.effective_root_password:
            env["MARIADB_ROOT_PASSWORD"] = service.effective_root_password

        if service.password_hash:
            env["MARIADB_ROOT_PASSWORD_HASH"] = service.password_hash

        return env

    def provision_storage(self, service: Service) -> List[str]:
        """Make sure the storage backend exists.

        Returns:
            Volume specs mounting the storage at the data directory
        """
        if service.storage is StorageMode.VOLUME:
            self._require_volumes()

            if not self.runtime.has_volume(service.volume_name):
                logger.info(f"Creating volume {service.volume_name}")
                self.runtime.create_volume(service.volume_name)

            return [f"{service.volume_name}:{DATA_DIR}"]

        path = self.service_dir(service)
        path.mkdir(parents=True, exist_ok=True)
        return [f"{path}:{DATA_DIR}"]

    def ensure_started(self, service: Service, restart: bool = False) -> None:
        """Bring the service container to the running state.

        Safe to call repeatedly: containers, volumes and directories are only
        created when missing.
        """
        if service.is_external:
            raise ExternalServiceError(service.name, service.host)

        self.runtime.pull_image(service.image_tag)

        if restart:
            self.runtime.remove_container(service.container_name)

        container = self.runtime.get_container(service.container_name)

        if container is None:
            logger.info(f"Starting {service.name} service...")

            volumes = self.provision_storage(service)
            container = self.runtime.create_container(
                name=service.container_name,
                image=service.image_tag,
                env=self.container_env(service),
                volumes=volumes,
                network=self.settings.network,
                restart="always",
            )

        if not self.runtime.is_running(container):
            self.runtime.start_container(container)

    def start(self, name: Optional[str] = None, restart: bool = False) -> Service:
        service = self.store.get_service_or_default(name)
        self.ensure_started(service, restart=restart)
        return service

    def stop(self, name: Optional[str] = None) -> Service:
        """Remove the service container; storage is kept."""
        service = self.store.get_service_or_default(name)

        if service.is_external:
            raise ExternalServiceError(service.name, service.host)

        logger.info(f"Stopping {service.name} service...")
        self.runtime.remove_container(service.container_name)
        return service

    def destroy(self, name: str, yes: bool = False, force: bool = False) -> Service:
        """Remove a service together with its container and storage.

        Args:
            name: Service name
            yes: Skip the confirmation prompt
            force: Allow destroying the default service
        """
        service = self.store.get_service(name)

        if self.store.default == service.name and not force:
            raise ProtectedDefaultError(service.name)

        if not yes:
            confirmed = self.prompter.confirm(
                f'Destroy service "{service.name}" and its data?', default=False
            )
            if not confirmed:
                raise AbortedError(f'Destroy of "{service.name}"')

        if not service.is_external:
            self.runtime.remove_container(service.container_name)
            self._destroy_storage(service)

        self.store.unset_service(service.name)
        self.store.save()

        logger.info(f"Service {service.name} destroyed")
        return service

    def _destroy_storage(self, service: Service) -> None:
        if service.storage is StorageMode.VOLUME:
            if not service.uses_default_volume:
                logger.info(
                    f"Skipping custom volume {service.volume_name} of {service.name}, "
                    "remove it manually if it's no longer needed"
                )
                return

            self._require_volumes()

            if self.runtime.has_volume(service.volume_name):
                self.runtime.remove_volume(service.volume_name)
            return

        path = self.service_dir(service)
        if path.exists():
            shutil.rmtree(path)
        else:
            logger.debug(f"Data directory {path} already removed")
