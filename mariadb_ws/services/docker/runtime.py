"""Docker engine access for service and admin containers.

Thin wrapper over the docker SDK that turns engine errors into
ContainerRuntimeError and treats removal of missing objects as a no-op.
"""
import shlex
import subprocess
from typing import Dict, Iterator, List, Optional, Tuple

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound
from docker.utils import parse_repository_tag

from mariadb_ws.core.errors import ContainerRuntimeError, ImagePullError
from mariadb_ws.core.logger import get_logger

logger = get_logger(__name__)


def _version_tuple(version: str) -> Tuple[int, ...]:
    parts = []
    for piece in str(version).split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


class DockerRuntime:
    """Container, volume and exec primitives backed by the Docker engine."""

    def __init__(self, client: Optional["docker.DockerClient"] = None):
        """Initialize runtime.

        Args:
            client: Docker client to use (created from the environment when omitted)
        """
        self._client = client

    @property
    def client(self) -> "docker.DockerClient":
        if self._client is None:
            try:
                self._client = docker.from_env()
            except DockerException as e:
                raise ContainerRuntimeError("Docker engine is not reachable", e)
        return self._client

    # =========================================================================
    # Capabilities
    # =========================================================================

    @property
    def api_version(self) -> str:
        return self.client.api.api_version

    def supports_volumes(self, min_version: str = "1.21") -> bool:
        """Check whether the engine API supports named volumes."""
        return _version_tuple(self.api_version) >= _version_tuple(min_version)

    # =========================================================================
    # Images
    # =========================================================================

    def pull_image(self, image: str) -> None:
        """Pull an image reference (``name:tag``)."""
        repository, tag = parse_repository_tag(image)
        logger.debug(f"Pulling image {repository}:{tag or 'latest'}")
        try:
            self.client.images.pull(repository, tag=tag or "latest")
        except (APIError, ImageNotFound) as e:
            raise ImagePullError(image, e)

    # =========================================================================
    # Containers
    # =========================================================================

    def get_container(self, name: str):
        """Return the container called ``name``, or None when it doesn't exist."""
        try:
            return self.client.containers.get(name)
        except NotFound:
            return None
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to inspect container {name}", e)

    def create_container(
        self,
        name: str,
        image: str,
        env: Optional[Dict[str, str]] = None,
        volumes: Optional[List[str]] = None,
        network: Optional[str] = None,
        restart: str = "always",
    ):
        """Create (but don't start) a container.

        Args:
            name: Container name
            image: Image reference
            env: Environment variables
            volumes: Mount specs in ``source:target`` form
            network: Network to attach to (created if missing)
            restart: Restart policy name
        """
        if network:
            self.ensure_network(network)

        logger.debug(f"Creating container {name} from {image}")
        try:
            return self.client.containers.create(
                image=image,
                name=name,
                environment=env or {},
                volumes=volumes or [],
                network=network,
                restart_policy={"Name": restart},
                detach=True,
            )
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to create container {name}", e)

    def is_running(self, container) -> bool:
        """Re-inspect a container and report whether it runs."""
        try:
            container.reload()
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to inspect container {container.name}", e)
        return bool(container.attrs.get("State", {}).get("Running"))

    def start_container(self, container) -> None:
        try:
            container.start()
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to start container {container.name}", e)

    def remove_container(self, name: str) -> bool:
        """Force-remove a container.

        Returns:
            True if a container was removed, False if it did not exist
        """
        container = self.get_container(name)
        if container is None:
            return False

        try:
            container.remove(force=True)
        except NotFound:
            return False
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to remove container {name}", e)

        logger.debug(f"Removed container {name}")
        return True

    def container_ip(self, container, network: str) -> Optional[str]:
        networks = container.attrs.get("NetworkSettings", {}).get("Networks", {}) or {}
        address = (networks.get(network) or {}).get("IPAddress")
        return address or None

    def ensure_network(self, name: str) -> None:
        try:
            self.client.networks.get(name)
        except NotFound:
            logger.info(f"Creating network {name}")
            try:
                self.client.networks.create(name, driver="bridge")
            except APIError as e:
                raise ContainerRuntimeError(f"Failed to create network {name}", e)
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to inspect network {name}", e)

    # =========================================================================
    # Volumes
    # =========================================================================

    def has_volume(self, name: str) -> bool:
        try:
            self.client.volumes.get(name)
            return True
        except NotFound:
            return False
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to inspect volume {name}", e)

    def create_volume(self, name: str) -> None:
        try:
            self.client.volumes.create(name=name)
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to create volume {name}", e)
        logger.debug(f"Created volume {name}")

    def remove_volume(self, name: str) -> bool:
        """Remove a named volume.

        Returns:
            True if removed, False if it did not exist
        """
        try:
            self.client.volumes.get(name).remove()
        except NotFound:
            return False
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to remove volume {name}", e)
        logger.debug(f"Removed volume {name}")
        return True

    # =========================================================================
    # Exec
    # =========================================================================

    def exec_create(
        self,
        container,
        cmd: List[str],
        stdin: bool = False,
        tty: bool = False,
    ) -> str:
        """Create an exec instance with stdout/stderr attached.

        Returns:
            Exec ID
        """
        try:
            result = self.client.api.exec_create(
                container.id,
                cmd,
                stdout=True,
                stderr=True,
                stdin=stdin,
                tty=tty,
            )
        except APIError as e:
            raise ContainerRuntimeError(f"Failed to exec in {container.name}", e)
        return result["Id"]

    def exec_stream(self, exec_id: str) -> Iterator[Tuple[Optional[bytes], Optional[bytes]]]:
        """Start an exec and yield ``(stdout, stderr)`` chunks as they arrive."""
        try:
            return self.client.api.exec_start(exec_id, stream=True, demux=True)
        except APIError as e:
            raise ContainerRuntimeError("Failed to start exec", e)

    def exec_socket(self, exec_id: str, tty: bool = False):
        """Start an exec and return its hijacked bidirectional socket."""
        try:
            return self.client.api.exec_start(exec_id, socket=True, tty=tty)
        except APIError as e:
            raise ContainerRuntimeError("Failed to start exec", e)

    def exec_exit_code(self, exec_id: str) -> Optional[int]:
        try:
            return self.client.api.exec_inspect(exec_id).get("ExitCode")
        except APIError as e:
            raise ContainerRuntimeError("Failed to inspect exec", e)

    def exec_interactive(self, container_name: str, cmd: List[str], tty: bool = True) -> int:
        """Relay an exec session to the current terminal until it exits.

        Uses the docker CLI so the session gets a real pseudo-terminal.

        Returns:
            Exit code of the remote command
        """
        base_cmd: List[str] = ["docker", "exec", "-i"]
        if tty:
            base_cmd.append("-t")
        base_cmd.append(container_name)
        base_cmd.extend(cmd)

        logger.debug(f"Executing: {shlex.join(base_cmd[:4])} ...")
        try:
            result = subprocess.run(base_cmd, check=False)
        except FileNotFoundError as e:
            raise ContainerRuntimeError("docker CLI not found on PATH", e)
        if result.returncode != 0:
            logger.debug(f"Session exited with code {result.returncode}")
        return result.returncode
