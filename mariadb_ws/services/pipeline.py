"""Streaming data operations: shell, dump, backup, restore and backup cleanup.

Every operation executes the MariaDB client binaries inside the service
container and moves bytes between the exec streams and local files.
"""
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

from mariadb_ws.core.config import Settings, get_settings
from mariadb_ws.core.config_store import ConfigStore
from mariadb_ws.core.errors import (
    BackupNotFoundError,
    CanceledError,
    ContainerRuntimeError,
    DatabaseRequiredError,
    InvalidNameError,
    NotRunningError,
)
from mariadb_ws.core.logger import get_logger
from mariadb_ws.core.prompts import Prompter, get_prompter
from mariadb_ws.models.service import Service
from mariadb_ws.services.docker.streams import (
    STDOUT,
    close_socket,
    close_write,
    copy_stdout,
    iter_frames,
    log_stderr,
    send_all,
)

logger = get_logger(__name__)

BACKUP_DATE_FORMAT = "%Y-%m-%d %H-%M"
BACKUP_SUFFIX = ".sql"
CHUNK_SIZE = 64 * 1024
EXIT_COMMAND = b"exit\n"

SYSTEM_DATABASES = {"information_schema", "mysql", "performance_schema", "sys"}


def filter_databases(output: str) -> List[str]:
    """Parse headerless SHOW DATABASES output, dropping the system schemas."""
    databases = []
    for line in output.splitlines():
        name = line.strip()
        if not name or name in SYSTEM_DATABASES:
            continue
        databases.append(name)
    return databases


def check_name(kind: str, value: str) -> str:
    """Reject names that would leave their directory in the dump tree."""
    if value in ("", ".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise InvalidNameError(kind, value)
    return value


class DataPipeline:
    """Moves data in and out of service containers."""

    def __init__(
        self,
        store: ConfigStore,
        runtime,
        settings: Optional[Settings] = None,
        prompter: Optional[Prompter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.runtime = runtime
        self.settings = settings or get_settings()
        self.prompter = prompter or get_prompter()
        self.clock = clock

    @property
    def interactive(self) -> bool:
        return self.prompter.interactive

    # =========================================================================
    # Helpers
    # =========================================================================

    def _container(self, service: Service):
        container = self.runtime.get_container(service.container_name)
        if container is None:
            raise NotRunningError(service.name)
        return container

    def dump_dir(self, service: Service, database: Optional[str] = None) -> Path:
        path = self.settings.dump_dir / service.name
        return path / check_name("database", database) if database else path

    def query(self, service: Service, sql: str) -> str:
        """Run a statement through the mariadb client and return its output."""
        container = self._container(service)
        cmd = ["mariadb", *service.auth_args, "-N", "-e", sql]

        exec_id = self.runtime.exec_create(container, cmd)
        chunks = []
        for stdout, stderr in self.runtime.exec_stream(exec_id):
            if stdout:
                chunks.append(stdout)
            if stderr:
                log_stderr(stderr)
        return b"".join(chunks).decode("utf-8", errors="replace")

    def list_databases(self, service: Service) -> List[str]:
        return filter_databases(self.query(service, "SHOW DATABASES;"))

    def list_dump_databases(self, service: Service) -> List[str]:
        path = self.dump_dir(service)
        if not path.is_dir():
            return []
        return sorted(p.name for p in path.iterdir() if p.is_dir())

    def list_dump_files(self, service: Service, database: str) -> List[str]:
        path = self.dump_dir(service, database)
        if not path.is_dir():
            return []
        return sorted(p.name for p in path.iterdir() if p.is_file())

    def _resolve_database(self, service: Service, database: Optional[str]) -> str:
        if database:
            return database
        if not self.interactive:
            raise DatabaseRequiredError(service.name)
        return self.prompter.select("Database:", self.list_databases(service))

    def _resolve_dump_database(self, service: Service, database: Optional[str]) -> str:
        if database:
            return database
        if not self.interactive:
            raise DatabaseRequiredError(service.name)
        return self.prompter.select("Database:", self.list_dump_databases(service))

    def _resolve_dump_file(self, service: Service, database: str, filename: Optional[str]) -> Path:
        if not filename:
            filename = self.prompter.select("File:", self.list_dump_files(service, database))

        path = self.dump_dir(service, database) / check_name("file name", filename)
        if not path.exists() and not filename.endswith(BACKUP_SUFFIX):
            candidate = path.with_name(filename + BACKUP_SUFFIX)
            if candidate.exists():
                path = candidate

        if not path.is_file():
            raise BackupNotFoundError(service.name, database, filename)
        return path

    def _check_exit(self, exec_id: str, what: str) -> None:
        exit_code = self.runtime.exec_exit_code(exec_id)
        if exit_code:
            raise ContainerRuntimeError(f"{what} exited with code {exit_code}")

    # =========================================================================
    # Operations
    # =========================================================================

    def shell(self, name: Optional[str] = None, database: Optional[str] = None) -> int:
        """Open an interactive mariadb client session.

        Returns:
            Exit code of the client
        """
        service = self.store.get_service_or_default(name)
        self._container(service)

        database = self._resolve_database(service, database)

        cmd = ["mariadb", *service.auth_args, database]
        return self.runtime.exec_interactive(service.container_name, cmd, tty=self.interactive)

    def dump(
        self,
        name: Optional[str] = None,
        database: Optional[str] = None,
        sink: Optional[BinaryIO] = None,
    ) -> int:
        """Stream mariadb-dump output to ``sink`` (stdout by default).

        Returns:
            Number of bytes written
        """
        service = self.store.get_service_or_default(name)
        container = self._container(service)
        database = self._resolve_database(service, database)

        if sink is None:
            sink = sys.stdout.buffer

        cmd = ["mariadb-dump", database, "--add-drop-table", *service.auth_args]
        exec_id = self.runtime.exec_create(container, cmd)

        written = copy_stdout(self.runtime.exec_stream(exec_id), sink, flush=True)
        self._check_exit(exec_id, f"mariadb-dump of {service.name}/{database}")
        return written

    def backup(
        self,
        name: Optional[str] = None,
        database: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> Path:
        """Dump a database into ``dump/<service>/<database>/<filename>.sql``.

        Returns:
            Path of the written backup
        """
        service = self.store.get_service_or_default(name)
        container = self._container(service)
        database = self._resolve_database(service, database)

        if not filename:
            filename = self.prompter.text(
                "File:",
                default=self.clock().strftime(BACKUP_DATE_FORMAT),
                suffix=BACKUP_SUFFIX,
            )
        if filename.endswith(BACKUP_SUFFIX):
            filename = filename[:-len(BACKUP_SUFFIX)]
        check_name("file name", filename)

        target_dir = self.dump_dir(service, database)
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / f"{filename}{BACKUP_SUFFIX}"

        cmd = [
            "mariadb-dump", database,
            "--add-drop-table",
            "--hex-blob",
            *service.auth_args,
        ]
        exec_id = self.runtime.exec_create(container, cmd, stdin=True)

        logger.info(f"Backing up {service.name}/{database} to {path}")
        try:
            with open(path, "wb") as file:
                written = copy_stdout(self.runtime.exec_stream(exec_id), file)
            self._check_exit(exec_id, f"mariadb-dump of {service.name}/{database}")
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {written} bytes to {path}")
        return path

    def restore(
        self,
        name: Optional[str] = None,
        database: Optional[str] = None,
        filename: Optional[str] = None,
        output: Optional[BinaryIO] = None,
    ) -> Path:
        """Feed a backup file into the mariadb client.

        Client output is mirrored to ``output`` (stdout by default). After the
        whole file has been sent, ``exit`` and end of input end the client session.

        Returns:
            Path of the restored backup
        """
        service = self.store.get_service_or_default(name)
        container = self._container(service)

        database = self._resolve_dump_database(service, database)
        path = self._resolve_dump_file(service, database, filename)

        if output is None:
            output = sys.stdout.buffer

        cmd = ["mariadb", database, *service.auth_args]
        exec_id = self.runtime.exec_create(container, cmd, stdin=True)
        sock = self.runtime.exec_socket(exec_id)

        errors: List[BaseException] = []
        reader = threading.Thread(
            target=self._mirror_output,
            args=(sock, output, errors),
            name="restore-output",
            daemon=True,
        )
        reader.start()

        what = f"Restore of {path.name} into {service.name}/{database}"
        logger.info(f"Restoring {path.name} into {service.name}/{database}")
        try:
            with open(path, "rb") as source:
                for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
                    self._send(sock, chunk, what)
            self._send(sock, EXIT_COMMAND, what)
            # EOF ends the client even when the last statement lacks a newline
            close_write(sock)
        except BaseException:
            close_socket(sock)
            reader.join()
            raise

        reader.join()
        close_socket(sock)

        if errors:
            raise ContainerRuntimeError(f"{what} failed", errors[0])

        self._check_exit(exec_id, what)
        return path

    @staticmethod
    def _send(sock, data: bytes, what: str) -> None:
        try:
            send_all(sock, data)
        except OSError as e:
            raise ContainerRuntimeError(f"{what} failed", e)

    @staticmethod
    def _mirror_output(sock, output: BinaryIO, errors: List[BaseException]) -> None:
        try:
            for stream, data in iter_frames(sock):
                if stream == STDOUT:
                    output.write(data)
                    output.flush()
                else:
                    log_stderr(data)
        except Exception as e:
            # Reported by restore() once the reader has been joined
            errors.append(e)

    def delete_backup(
        self,
        name: Optional[str] = None,
        database: Optional[str] = None,
        filename: Optional[str] = None,
        yes: bool = False,
    ) -> Path:
        """Delete a backup file after confirmation."""
        service = self.store.get_service_or_default(name)
        database = self._resolve_dump_database(service, database)
        path = self._resolve_dump_file(service, database, filename)

        if not yes:
            if not self.prompter.confirm(f'Delete "{path.name}"?', default=False):
                raise CanceledError()

        path.unlink()
        logger.info(f'File "{path.name}" deleted')
        return path
