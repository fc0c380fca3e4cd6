"""Shared test fixtures for mariadb-ws tests."""
import socket
import struct
import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import pytest

from mariadb_ws.core.config import Settings
from mariadb_ws.core.config_store import ConfigStore, MemoryDocumentStorage
from mariadb_ws.core.prompts import NonInteractivePrompter, Prompter
from mariadb_ws.services.admin import AdminAggregator
from mariadb_ws.services.lifecycle import ServiceLifecycle
from mariadb_ws.services.pipeline import DataPipeline


class FakeContainer:
    """In-memory stand-in for a docker SDK container."""

    def __init__(self, name, image, env, volumes, network):
        self.name = name
        self.id = f"id-{name}"
        self.image = image
        self.env = env
        self.volumes = volumes
        self.network = network
        self.running = False
        self.start_calls = 0

    @property
    def attrs(self):
        networks = {self.network: {"IPAddress": "172.18.0.5"}} if self.network else {}
        return {
            "State": {"Running": self.running, "Status": "running" if self.running else "created"},
            "NetworkSettings": {"Networks": networks},
        }


class RestoreServer:
    """Container side of a restore exec session over a socket pair.

    ``hangup`` closes the session before reading anything. ``until_eof``
    keeps reading past ``exit`` until the client half-closes its side.
    """

    def __init__(self, reply: bytes = b"", stderr: bytes = b"", hangup: bool = False, until_eof: bool = False):
        self.reply = reply
        self.stderr = stderr
        self.hangup = hangup
        self.until_eof = until_eof
        self.received = b""
        self.saw_eof = False
        self.client, self.server = socket.socketpair()
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        if self.hangup:
            self.server.close()
            return
        while self.until_eof or not self.received.endswith(b"exit\n"):
            data = self.server.recv(65536)
            if not data:
                self.saw_eof = True
                break
            self.received += data
        if self.reply:
            self.server.sendall(struct.pack(">BxxxL", 1, len(self.reply)) + self.reply)
        if self.stderr:
            self.server.sendall(struct.pack(">BxxxL", 2, len(self.stderr)) + self.stderr)
        self.server.close()


class FakeRuntime:
    """Records calls the way DockerRuntime would perform them."""

    def __init__(self, api_version: str = "1.43"):
        self.api_version = api_version
        self.containers: Dict[str, FakeContainer] = {}
        self.volumes: set = set()
        self.pulled: List[str] = []
        self.calls: List[Tuple] = []
        self.execs: Dict[str, Dict] = {}
        self.outputs: Dict[str, List[Tuple[Optional[bytes], Optional[bytes]]]] = {}
        self.exit_codes: Dict[str, int] = {}
        self.restore_server: Optional[RestoreServer] = None
        self.interactive_calls: List[Tuple] = []
        self.pull_error: Optional[Exception] = None

    def supports_volumes(self, min_version: str = "1.21") -> bool:
        return tuple(int(p) for p in self.api_version.split(".")) >= tuple(
            int(p) for p in min_version.split(".")
        )

    def pull_image(self, image):
        if self.pull_error is not None:
            raise self.pull_error
        self.pulled.append(image)

    def get_container(self, name):
        return self.containers.get(name)

    def create_container(self, name, image, env=None, volumes=None, network=None, restart="always"):
        assert name not in self.containers, f"duplicate container {name}"
        self.calls.append(("create_container", name))
        container = FakeContainer(name, image, env or {}, volumes or [], network)
        self.containers[name] = container
        return container

    def is_running(self, container):
        return container.running

    def start_container(self, container):
        self.calls.append(("start_container", container.name))
        container.running = True
        container.start_calls += 1

    def remove_container(self, name):
        self.calls.append(("remove_container", name))
        return self.containers.pop(name, None) is not None

    def container_ip(self, container, network):
        return container.attrs["NetworkSettings"]["Networks"].get(network, {}).get("IPAddress")

    def has_volume(self, name):
        return name in self.volumes

    def create_volume(self, name):
        assert name not in self.volumes, f"duplicate volume {name}"
        self.calls.append(("create_volume", name))
        self.volumes.add(name)

    def remove_volume(self, name):
        self.calls.append(("remove_volume", name))
        if name in self.volumes:
            self.volumes.discard(name)
            return True
        return False

    def exec_create(self, container, cmd, stdin=False, tty=False):
        exec_id = f"exec-{len(self.execs) + 1}"
        self.execs[exec_id] = {"container": container.name, "cmd": list(cmd), "stdin": stdin, "tty": tty}
        return exec_id

    def exec_stream(self, exec_id):
        program = self.execs[exec_id]["cmd"][0]
        return iter(self.outputs.get(program, []))

    def serve_restore(self, **options) -> RestoreServer:
        self.restore_server = RestoreServer(**options)
        return self.restore_server

    def exec_socket(self, exec_id, tty=False):
        if self.restore_server is None:
            self.restore_server = RestoreServer()
        return self.restore_server.client

    def exec_exit_code(self, exec_id):
        program = self.execs[exec_id]["cmd"][0]
        return self.exit_codes.get(program, 0)

    def exec_interactive(self, container_name, cmd, tty=True):
        self.interactive_calls.append((container_name, list(cmd), tty))
        return 0


class ScriptedPrompter(Prompter):
    """Prompter answering from queues instead of the terminal."""

    interactive = True

    def __init__(self, texts=None, passwords=None, selects=None, confirms=None):
        self.texts = list(texts or [])
        self.passwords = list(passwords or [])
        self.selects = list(selects or [])
        self.confirms = list(confirms or [])
        self.asked: List[Tuple[str, str, object]] = []

    def text(self, message, default=None, suffix=""):
        self.asked.append(("text", message, default))
        return self.texts.pop(0) if self.texts else default

    def password(self, message):
        self.asked.append(("password", message, None))
        return self.passwords.pop(0)

    def select(self, message, options):
        self.asked.append(("select", message, list(options)))
        return self.selects.pop(0)

    def confirm(self, message, default=False):
        self.asked.append(("confirm", message, default))
        return self.confirms.pop(0)


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary workspace."""
    return Settings(data_dir=tmp_path / "workspace")


@pytest.fixture
def storage():
    return MemoryDocumentStorage()


@pytest.fixture
def store(storage):
    return ConfigStore(storage)


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def prompter():
    return ScriptedPrompter()


@pytest.fixture
def lifecycle(store, runtime, settings, prompter):
    return ServiceLifecycle(store, runtime, settings, prompter)


@pytest.fixture
def admin(store, runtime, settings):
    return AdminAggregator(store, runtime, settings)


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 1, 15, 10, 30, 12)


@pytest.fixture
def pipeline(store, runtime, settings, prompter, fixed_clock):
    return DataPipeline(store, runtime, settings, prompter, clock=fixed_clock)


@pytest.fixture
def batch_pipeline(store, runtime, settings, fixed_clock):
    """Pipeline running without a terminal."""
    return DataPipeline(store, runtime, settings, NonInteractivePrompter(), clock=fixed_clock)
