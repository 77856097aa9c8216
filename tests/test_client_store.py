import json
import os
import stat
import sys

from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config.paths import StatePaths
from core import file_utils
from core.exceptions import StateParseError, StorageError
from data.client_store import ClientStore
from data.models import ClientRecord, parse_timestamp


@pytest.fixture
def paths(tmp_path):
    return StatePaths(str(tmp_path / "state"))


@pytest.fixture
def store(paths):
    return ClientStore(paths, uuid_factory=lambda: "generated-uuid")


def write_state(paths, payload):
    os.makedirs(paths.clients_dir, exist_ok=True)
    with open(paths.clients_file, "w", encoding="utf-8") as f:
        f.write(payload)


def test_missing_file_is_empty(store):
    assert store.load() == {}


def test_blank_file_is_empty(store, paths):
    write_state(paths, "  \n\t")
    assert store.load() == {}


def test_malformed_json_raises_parse_error(store, paths):
    write_state(paths, "{not json")
    with pytest.raises(StateParseError):
        store.load()


def test_non_object_document_raises_parse_error(store, paths):
    write_state(paths, "[1, 2, 3]")
    with pytest.raises(StateParseError):
        store.load()


def test_invalid_timestamp_raises_parse_error(store, paths):
    write_state(paths, json.dumps({"a": {"id": "a", "uuid": "u", "created_at": "yesterday"}}))
    with pytest.raises(StateParseError):
        store.load()


def test_partial_record_is_healed_and_persisted(store, paths):
    write_state(paths, json.dumps({"alice": {"name": ""}}))

    clients = store.load()

    record = clients["alice"]
    assert record.id == "alice"
    assert record.name == "alice"
    assert record.uuid == "generated-uuid"
    assert record.address == "generated-uuid"
    assert record.config_path == paths.client_config_file("alice")
    assert record.created_at is not None

    with open(paths.clients_file, encoding="utf-8") as f:
        on_disk = json.load(f)
    assert on_disk["alice"]["uuid"] == "generated-uuid"
    assert on_disk["alice"]["created_at"].endswith("Z")


def test_zero_timestamp_is_healed(store, paths):
    write_state(paths, json.dumps({
        "bob": {
            "id": "bob",
            "name": "Bob",
            "uuid": "u-1",
            "address": "u-1",
            "config_path": "/x/bob.json",
            "created_at": "0001-01-01T00:00:00Z",
        }
    }))
    record = store.load()["bob"]
    assert record.created_at is not None
    assert record.created_at.year > 2000


def test_complete_record_is_not_rewritten(store, paths):
    payload = json.dumps({
        "bob": {
            "id": "bob",
            "name": "Bob",
            "uuid": "u-1",
            "address": "u-1",
            "config_path": "/x/bob.json",
            "created_at": "2024-05-01T10:00:00.123456789Z",
        }
    })
    write_state(paths, payload)

    record = store.load()["bob"]

    assert record.created_at == parse_timestamp("2024-05-01T10:00:00.123456Z")
    with open(paths.clients_file, encoding="utf-8") as f:
        assert f.read() == payload


def test_save_writes_sorted_pretty_json_with_private_mode(store, paths):
    clients = {
        "zed": ClientRecord(id="wrong", name="Zed", uuid="u-z", config_path="", created_at=None),
        "amy": ClientRecord(id="amy", name="Amy", uuid="u-a", config_path="/x/amy.json", created_at=None),
    }

    store.save(clients)

    with open(paths.clients_file, encoding="utf-8") as f:
        raw = f.read()
    assert raw.endswith("\n")
    assert raw.startswith('{\n  "amy"')
    document = json.loads(raw)
    assert list(document) == ["amy", "zed"]
    assert document["zed"]["id"] == "zed"
    assert document["zed"]["config_path"] == paths.client_config_file("zed")
    assert stat.S_IMODE(os.stat(paths.clients_file).st_mode) == 0o600
    assert not os.path.exists(paths.clients_file + ".tmp")


def test_unknown_fields_survive_round_trip(store, paths):
    write_state(paths, json.dumps({
        "amy": {
            "id": "amy",
            "name": "Amy",
            "uuid": "u-a",
            "address": "u-a",
            "config_path": "/x/amy.json",
            "created_at": "2024-05-01T10:00:00Z",
            "note": "laptop",
        }
    }))
    clients = store.load()
    store.save(clients)

    with open(paths.clients_file, encoding="utf-8") as f:
        assert json.load(f)["amy"]["note"] == "laptop"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-05-01T10:00:00.12345Z", "2024-05-01T10:00:00.123450+00:00"),
        ("2024-05-01T10:00:00.1Z", "2024-05-01T10:00:00.100000+00:00"),
        ("2024-05-01T10:00:00Z", "2024-05-01T10:00:00+00:00"),
        ("2024-05-01T12:00:00.5+02:00", "2024-05-01T10:00:00.500000+00:00"),
    ],
)
def test_parse_timestamp_fraction_widths(raw, expected):
    assert parse_timestamp(raw).isoformat() == expected


def test_short_fraction_timestamp_loads(store, paths):
    write_state(paths, json.dumps({
        "bob": {
            "id": "bob",
            "name": "Bob",
            "uuid": "u-1",
            "address": "u-1",
            "config_path": "/x/bob.json",
            "created_at": "2024-05-01T10:00:00.12345Z",
        }
    }))

    record = store.load()["bob"]

    assert record.created_at.microsecond == 123450


@pytest.mark.parametrize("field", ["id", "name", "uuid", "address", "config_path"])
def test_non_string_field_raises_parse_error(store, paths, field):
    write_state(paths, json.dumps({"bob": {"id": "bob", "uuid": "u-1", field: {"a": 1}}}))
    with pytest.raises(StateParseError):
        store.load()


def test_failed_write_keeps_previous_file(store, paths):
    first = {"amy": ClientRecord(id="amy", name="Amy", uuid="u-a", config_path="/x/amy.json", created_at=None)}
    store.save(first)
    with open(paths.clients_file, encoding="utf-8") as f:
        original = f.read()

    second = dict(first)
    second["bob"] = ClientRecord(id="bob", name="Bob", uuid="u-b", config_path="/x/bob.json", created_at=None)
    with patch.object(file_utils.os, "replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError):
            store.save(second)

    with open(paths.clients_file, encoding="utf-8") as f:
        assert f.read() == original
    assert not os.path.exists(paths.clients_file + ".tmp")
