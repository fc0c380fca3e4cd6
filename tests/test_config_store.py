"""Tests for the service registry and its persistence."""
import json

import pytest

from mariadb_ws.core.config_store import (
    DEFAULT_ADMIN_HOSTNAME,
    ConfigStore,
    JsonDocumentStorage,
    MemoryDocumentStorage,
)
from mariadb_ws.core.errors import ConfigDocumentError, NoDefaultServiceError, ServiceNotFoundError
from mariadb_ws.models.service import Service, StorageMode


def test_missing_document_yields_empty_store(tmp_path):
    store = ConfigStore(JsonDocumentStorage(tmp_path / "config.json"))

    assert store.services == []
    assert store.default is None
    assert store.admin_hostname == DEFAULT_ADMIN_HOSTNAME
    assert not store.has_default_service()


def test_first_service_becomes_default(store):
    store.set_service(Service(name="app", storage="volume"))
    store.set_service(Service(name="other"))

    assert store.default == "app"
    assert store.get_service_or_default().name == "app"
    assert store.get_service_or_default("other").name == "other"


def test_get_service_unknown_raises(store):
    with pytest.raises(ServiceNotFoundError, match='"ghost"'):
        store.get_service("ghost")

    assert store.has_service("ghost") is False


def test_get_service_or_default_without_default(store):
    with pytest.raises(NoDefaultServiceError):
        store.get_service_or_default()


def test_set_service_replaces_in_place(store):
    store.set_service(Service(name="a"))
    store.set_service(Service(name="b"))
    store.set_service(Service(name="a", storage="volume"))

    assert [s.name for s in store.services] == ["a", "b"]
    assert store.get_service("a").storage is StorageMode.VOLUME


def test_update_service_merges_fields(store):
    store.set_service(Service(name="app", password="pw"))

    updated = store.update_service("app", storage="volume", image_version="11.4")

    assert updated.storage is StorageMode.VOLUME
    assert updated.password == "pw"
    assert store.get_service("app").image_tag == "mariadb:11.4"


def test_update_service_absent_is_noop(store):
    assert store.update_service("ghost", storage="volume") is None
    assert store.services == []


def test_removing_only_service_clears_default(store):
    store.set_service(Service(name="app"))
    store.unset_service("app")

    assert store.default is None
    assert not store.has_default_service()


def test_removing_non_default_keeps_default(store):
    store.set_service(Service(name="app"))
    store.set_service(Service(name="other"))
    store.unset_service("other")

    assert store.default == "app"


def test_set_default_requires_known_service(store):
    store.set_service(Service(name="app"))
    store.set_service(Service(name="other"))

    store.set_default("other")
    assert store.default == "other"

    with pytest.raises(ServiceNotFoundError):
        store.set_default("ghost")


def test_save_and_reload_round_trip(tmp_path):
    path = tmp_path / "plugins" / "mariadb" / "config.json"
    store = ConfigStore(JsonDocumentStorage(path))
    store.set_service(Service(name="app", password="pw", storage="volume", volume="shared"))
    store.set_service(Service(name="remote", host="db.example.com", username="bob", password="pw2"))
    store.set_service(Service(name="files", username="u", password="p", root_password="r"))
    store.set_default("remote")
    store.root_password = "toor"
    store.save()

    reloaded = ConfigStore(JsonDocumentStorage(path))

    assert reloaded.default == "remote"
    assert reloaded.root_password == "toor"
    assert [s.name for s in reloaded.services] == ["app", "remote", "files"]
    for original in store.services:
        assert reloaded.get_service(original.name) == original


def test_save_writes_camel_case_document(tmp_path):
    path = tmp_path / "config.json"
    store = ConfigStore(JsonDocumentStorage(path))
    store.set_service(Service(name="app", password="pw"))
    store.save()

    document = json.loads(path.read_text())
    assert document["default"] == "app"
    assert document["adminHostname"] == DEFAULT_ADMIN_HOSTNAME
    assert document["services"][0]["rootPassword"] == "pw"
    assert not (tmp_path / "config.tmp").exists()


def test_load_reads_legacy_document():
    storage = MemoryDocumentStorage({
        "default": "db",
        "services": [{"name": "db", "user": "root", "password": "root", "storage": "volume"}],
    })
    store = ConfigStore(storage)

    service = store.get_service_or_default()
    assert service.username == "root"
    assert service.storage is StorageMode.VOLUME


def test_load_drops_dangling_default():
    store = ConfigStore(MemoryDocumentStorage({"default": "gone", "services": []}))

    assert store.default is None


def test_mutations_are_not_durable_until_save(storage, store):
    store.set_service(Service(name="app"))

    assert storage.document is None
    store.save()
    assert storage.document["services"][0]["name"] == "app"
    assert storage.writes == 1


def test_reloaded_store_reads_default_before_services(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "default": "app",
        "adminHostname": "admin.test",
        "rootPassword": "toor",
        "services": [{"name": "app"}],
    }))

    store = ConfigStore(JsonDocumentStorage(path))
    assert store.default == "app"
    assert ConfigStore(JsonDocumentStorage(path)).admin_hostname == "admin.test"
    assert ConfigStore(JsonDocumentStorage(path)).root_password == "toor"


def test_has_service_on_fresh_store(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"default": "app", "services": [{"name": "app"}]}))

    store = ConfigStore(JsonDocumentStorage(path))

    assert store.has_service("app")
    assert store.has_default_service()


def test_value_set_before_first_read_survives_load():
    store = ConfigStore(MemoryDocumentStorage({"rootPassword": "old", "services": [{"name": "app"}]}))

    store.root_password = "new"

    assert store.root_password == "new"
    assert [s.name for s in store.services] == ["app"]


def test_malformed_json_names_the_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    store = ConfigStore(JsonDocumentStorage(path))

    with pytest.raises(ConfigDocumentError, match="config.json"):
        store.load()
    assert path.read_text() == "{not json"


def test_non_object_document_is_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]")

    with pytest.raises(ConfigDocumentError, match="expected a JSON object"):
        ConfigStore(JsonDocumentStorage(path)).load()


@pytest.mark.parametrize("entry", [
    "app",
    {"name": "app", "storage": "floppy"},
    {"storage": "volume"},
])
def test_invalid_service_entry_is_rejected(tmp_path, entry):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"services": [entry]}))

    with pytest.raises(ConfigDocumentError, match="Invalid config document"):
        ConfigStore(JsonDocumentStorage(path)).load()
