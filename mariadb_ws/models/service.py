"""Service entity: one configured MariaDB instance."""
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional

DEFAULT_IMAGE_NAME = "mariadb"
DEFAULT_IMAGE_VERSION = "latest"
VOLUME_PREFIX = "wocker-mariadb"


class StorageMode(str, Enum):
    """Where an internal service keeps its data directory."""
    FILESYSTEM = "filesystem"
    VOLUME = "volume"


class ServiceKind(Enum):
    """Internal services run in a managed container, external ones only point at a host."""
    INTERNAL = "internal"
    EXTERNAL = "external"


# Persisted document keys -> attribute names
_DOCUMENT_KEYS = {
    "name": "name",
    "host": "host",
    "username": "username",
    "password": "password",
    "passwordHash": "password_hash",
    "rootPassword": "root_password",
    "storage": "storage",
    "volume": "volume",
    "imageName": "image_name",
    "imageVersion": "image_version",
    "env": "env",
}

# Accepted spellings beyond the document keys
_ALIASES = {
    "user": "username",
    "image": "image_name",
    "password_hash": "password_hash",
    "root_password": "root_password",
    "image_name": "image_name",
    "image_version": "image_version",
}


@dataclass(frozen=True)
class Service:
    """A MariaDB service, either container-managed (internal) or host-backed (external)."""

    name: str
    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    password_hash: Optional[str] = None
    root_password: Optional[str] = None
    storage: Optional[StorageMode] = None
    volume: Optional[str] = None
    image_name: str = DEFAULT_IMAGE_NAME
    image_version: str = DEFAULT_IMAGE_VERSION
    env: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Service name is required")

        storage = self.storage
        if isinstance(storage, str) and not isinstance(storage, StorageMode):
            try:
                storage = StorageMode(storage)
            except ValueError:
                raise ValueError(
                    f"Invalid storage '{storage}' for service {self.name}: "
                    f"expected one of {[m.value for m in StorageMode]}"
                )
        if not self.host and storage is None:
            storage = StorageMode.FILESYSTEM
        object.__setattr__(self, "storage", storage)

        if self.root_password is None and not self.username and self.password:
            object.__setattr__(self, "root_password", self.password)

        object.__setattr__(self, "env", dict(self.env or {}))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Service":
        """Build a Service from a document entry or CLI options.

        Accepts the camelCase document keys, snake_case attribute names and the
        legacy ``user``/``image`` aliases. Unknown keys are ignored.
        """
        values: Dict[str, Any] = {}
        for key, value in data.items():
            attr = _DOCUMENT_KEYS.get(key) or _ALIASES.get(key)
            if attr is None or value is None:
                continue
            # Explicit keys win over legacy aliases
            if attr in values and key in _ALIASES and key not in _DOCUMENT_KEYS:
                continue
            values[attr] = value

        if values.get("image_name") == "":
            values.pop("image_name")
        if values.get("image_version") == "":
            values.pop("image_version")

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted document shape, omitting unset fields."""
        data: Dict[str, Any] = {}
        for key, attr in _DOCUMENT_KEYS.items():
            value = getattr(self, attr)
            if value is None or value == {}:
                continue
            if isinstance(value, StorageMode):
                value = value.value
            data[key] = value
        return data

    def merged(self, **changes: Any) -> "Service":
        """Return a copy with ``changes`` applied (None values are skipped)."""
        known = {f.name for f in fields(self)}
        patch = {}
        for key, value in changes.items():
            attr = key if key in known else _DOCUMENT_KEYS.get(key) or _ALIASES.get(key)
            if attr is None:
                raise ValueError(f"Unknown service field: {key}")
            if attr == "name":
                continue
            if value is not None:
                patch[attr] = value
        return replace(self, **patch)

    @property
    def kind(self) -> ServiceKind:
        return ServiceKind.EXTERNAL if self.host else ServiceKind.INTERNAL

    @property
    def is_external(self) -> bool:
        return self.kind is ServiceKind.EXTERNAL

    @property
    def container_name(self) -> str:
        return f"mariadb-{self.name}.ws"

    @property
    def image_tag(self) -> str:
        return f"{self.image_name}:{self.image_version}"

    @property
    def default_volume(self) -> str:
        return f"{VOLUME_PREFIX}-{self.name}"

    @property
    def volume_name(self) -> str:
        """Explicit volume when configured, else the default volume."""
        return self.volume or self.default_volume

    @property
    def uses_default_volume(self) -> bool:
        return self.volume_name == self.default_volume

    @property
    def effective_root_password(self) -> Optional[str]:
        """Root password handed to the container, falling back to the user password."""
        return self.root_password or self.password

    @property
    def auth_args(self) -> List[str]:
        """Client authentication flags for mariadb/mariadb-dump."""
        args: List[str] = []

        if not self.host:
            args.append("-uroot")
            if self.effective_root_password:
                args.append(f"-p{self.effective_root_password}")
        else:
            if self.username:
                args.append(f"-u{self.username}")
            if self.password:
                args.append(f"-p{self.password}")

        return args

    @property
    def admin_credentials(self) -> Dict[str, Optional[str]]:
        """Credentials the admin front-end uses for this service."""
        if self.is_external:
            return {"user": self.username, "password": self.password}
        return {"user": "root", "password": self.effective_root_password}
