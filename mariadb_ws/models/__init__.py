"""Data models for mariadb-ws."""
from mariadb_ws.models.service import (
    DEFAULT_IMAGE_NAME,
    DEFAULT_IMAGE_VERSION,
    Service,
    ServiceKind,
    StorageMode,
)

__all__ = [
    'DEFAULT_IMAGE_NAME',
    'DEFAULT_IMAGE_VERSION',
    'Service',
    'ServiceKind',
    'StorageMode',
]
