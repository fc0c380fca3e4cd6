"""Service registry persisted as a single JSON document."""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from mariadb_ws.core.errors import (
    ConfigDocumentError,
    NoDefaultServiceError,
    ServiceNotFoundError,
)
from mariadb_ws.core.logger import get_logger
from mariadb_ws.models.service import Service

logger = get_logger(__name__)

DEFAULT_ADMIN_HOSTNAME = "dbadmin-mariadb.workspace"


class JsonDocumentStorage:
    """Reads and writes the registry document on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[Dict[str, Any]]:
        """Load the document.

        Returns:
            Parsed document, or None when the file does not exist
        """
        if not self.path.exists():
            return None

        with open(self.path, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigDocumentError(self.path, e)

        if not isinstance(data, dict):
            raise ConfigDocumentError(self.path, "expected a JSON object")

        logger.debug(f"Loaded config from {self.path}")
        return data

    def write(self, document: Dict[str, Any]) -> None:
        """Write the document atomically (temp file, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_file = self.path.with_suffix('.tmp')
        with open(temp_file, 'w') as f:
            json.dump(document, f, indent=4)

        temp_file.replace(self.path)
        logger.debug(f"Saved config to {self.path}")


class MemoryDocumentStorage:
    """Keeps the registry document in memory (used by tests and dry runs)."""

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self.document = document
        self.writes = 0

    def read(self) -> Optional[Dict[str, Any]]:
        return json.loads(json.dumps(self.document)) if self.document is not None else None

    def write(self, document: Dict[str, Any]) -> None:
        self.document = json.loads(json.dumps(document))
        self.writes += 1


class ConfigStore:
    """Ordered collection of services plus the default pointer.

    Mutations only touch memory; call save() to make them durable.
    """

    def __init__(self, storage):
        """Initialize the store.

        Args:
            storage: Object with read() -> dict|None and write(dict)
        """
        self.storage = storage
        self._default: Optional[str] = None
        self._admin_hostname: str = DEFAULT_ADMIN_HOSTNAME
        self._root_password: Optional[str] = None
        self._services: List[Service] = []
        self._loaded = False

    @property
    def source(self) -> str:
        return str(getattr(self.storage, "path", "config document"))

    def load(self) -> "ConfigStore":
        """Read the persisted document (idempotent).

        Raises:
            ConfigDocumentError: If the document or one of its services is invalid
        """
        if self._loaded:
            return self

        data = self.storage.read() or {}

        services: List[Service] = []
        for entry in data.get("services") or []:
            if not isinstance(entry, dict):
                raise ConfigDocumentError(self.source, f"service entry {entry!r} is not an object")
            try:
                service = Service.from_dict(entry)
            except (TypeError, ValueError) as e:
                raise ConfigDocumentError(self.source, e)
            services = [s for s in services if s.name != service.name]
            services.append(service)

        default = data.get("default") or None
        if default and not any(s.name == default for s in services):
            logger.warning(f"Default service '{default}' is not configured, clearing it")
            default = None

        self._services = services
        self._default = default
        self._admin_hostname = data.get("adminHostname") or DEFAULT_ADMIN_HOSTNAME
        self._root_password = data.get("rootPassword") or None
        self._loaded = True
        return self

    @property
    def default(self) -> Optional[str]:
        self.load()
        return self._default

    @default.setter
    def default(self, name: Optional[str]) -> None:
        self.load()
        self._default = name

    @property
    def admin_hostname(self) -> str:
        self.load()
        return self._admin_hostname

    @admin_hostname.setter
    def admin_hostname(self, hostname: str) -> None:
        self.load()
        self._admin_hostname = hostname

    @property
    def root_password(self) -> Optional[str]:
        self.load()
        return self._root_password

    @root_password.setter
    def root_password(self, password: Optional[str]) -> None:
        self.load()
        self._root_password = password

    @property
    def services(self) -> List[Service]:
        self.load()
        return list(self._services)

    def get_service(self, name: str) -> Service:
        self.load()
        for service in self._services:
            if service.name == name:
                return service
        raise ServiceNotFoundError(name)

    def get_service_or_default(self, name: Optional[str] = None) -> Service:
        """Resolve ``name``, or the default service when no name is given."""
        self.load()
        if name:
            return self.get_service(name)

        if not self.default:
            raise NoDefaultServiceError()

        return self.get_service(self.default)

    def has_service(self, name: str) -> bool:
        self.load()
        return any(service.name == name for service in self._services)

    def has_default_service(self) -> bool:
        self.load()
        return bool(self.default) and self.has_service(self.default)

    def set_service(self, service: Service) -> None:
        """Insert or replace a service by name.

        The first service added to an empty store becomes the default.
        """
        self.load()
        first = not self._services

        for index, existing in enumerate(self._services):
            if existing.name == service.name:
                self._services[index] = service
                break
        else:
            self._services.append(service)

        if first or not self.default:
            self.default = service.name

    def update_service(self, name: str, **changes: Any) -> Optional[Service]:
        """Merge ``changes`` into a stored service; no-op when absent.

        Returns:
            The updated service, or None when ``name`` is not registered
        """
        self.load()
        for index, existing in enumerate(self._services):
            if existing.name == name:
                updated = existing.merged(**changes)
                self._services[index] = updated
                return updated
        return None

    def unset_service(self, name: str) -> None:
        """Remove a service, clearing the default pointer if it targeted it."""
        self.load()
        self._services = [s for s in self._services if s.name != name]

        if self.default == name:
            self.default = None

    def set_default(self, name: str) -> None:
        self.load()
        if not self.has_service(name):
            raise ServiceNotFoundError(name)
        self.default = name

    def to_dict(self) -> Dict[str, Any]:
        self.load()
        data: Dict[str, Any] = {}
        if self.default:
            data["default"] = self.default
        data["adminHostname"] = self.admin_hostname
        if self.root_password:
            data["rootPassword"] = self.root_password
        data["services"] = [service.to_dict() for service in self._services]
        return data

    def save(self) -> None:
        """Persist the full document through the storage port."""
        self.storage.write(self.to_dict())
