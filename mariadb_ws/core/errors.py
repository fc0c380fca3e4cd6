"""Error types raised by mariadb-ws operations.

Every failure the CLI reports derives from MariadbWsError, so commands catch
one base class and exit non-zero with the message.
"""
from typing import Optional


class MariadbWsError(Exception):
    """Base class for all mariadb-ws failures."""
    pass


class ServiceNotFoundError(MariadbWsError):
    """Raised when a service name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Service "{name}" not found')


class ServiceExistsError(MariadbWsError):
    """Raised when creating a service whose name is already taken."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Service "{name}" already exists')


class NoDefaultServiceError(MariadbWsError):
    """Raised when no service name was given and no default is set."""

    def __init__(self):
        super().__init__("Default service isn't set")


class ExternalServiceError(MariadbWsError):
    """Raised for container operations on a host-backed service."""

    def __init__(self, name: str, host: str):
        self.name = name
        self.host = host
        super().__init__(f'Service "{name}" is external ({host}) and has no container')


class NotRunningError(MariadbWsError):
    """Raised when an operation needs the service container and there is none."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Service "{name}" isn\'t started')


class ProtectedDefaultError(MariadbWsError):
    """Raised when destroying the default service without force."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Can\'t destroy default service "{name}" without --force')


class AbortedError(MariadbWsError):
    """Raised when the user declines a destructive action."""

    def __init__(self, action: str = "Operation"):
        super().__init__(f"{action} aborted")


class CanceledError(MariadbWsError):
    """Raised when the user declines a backup deletion."""

    def __init__(self):
        super().__init__("Canceled")


class DatabaseRequiredError(MariadbWsError):
    """Raised when no database was given and prompting is not possible."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f'Database name missing for service "{service}"')


class BackupNotFoundError(MariadbWsError):
    """Raised when a backup file does not exist."""

    def __init__(self, service: str, database: str, filename: str):
        self.service = service
        self.database = database
        self.filename = filename
        super().__init__(
            f'File "{filename}" does not exist in dumps of {service}/{database}'
        )


class UnsupportedFeatureError(MariadbWsError):
    """Raised when the container runtime lacks a required capability."""
    pass


class PasswordMismatchError(MariadbWsError):
    """Raised when the password confirmation differs."""

    def __init__(self):
        super().__init__("Password didn't match")


class PromptUnavailableError(MariadbWsError):
    """Raised when a value must be prompted for in a non-interactive session."""

    def __init__(self, message: str):
        super().__init__(f"{message.rstrip(':')} is required (no interactive terminal)")


class ContainerRuntimeError(MariadbWsError):
    """Raised when the Docker engine rejects a request."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message if cause is None else f"{message}: {cause}")


class ImagePullError(ContainerRuntimeError):
    """Raised when an image cannot be pulled."""

    def __init__(self, image: str, cause: Optional[Exception] = None):
        self.image = image
        super().__init__(f"Failed to pull image {image}", cause)


class ConfigDocumentError(MariadbWsError):
    """Raised when the persisted service registry cannot be read."""

    def __init__(self, source, reason):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid config document {source}: {reason}")


class InvalidNameError(MariadbWsError):
    """Raised when a database or file name would escape the dump directory."""

    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__(f'Invalid {kind} "{value}": path separators and ".." are not allowed')
