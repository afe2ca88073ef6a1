from __future__ import annotations

import json
from pathlib import Path

import pytest

from status_monitor.config import (
    CONFIG_KEY,
    DEFAULT_CONFIG_DOCUMENT,
    default_config,
    load_default_config,
    parse_config,
)
from status_monitor.models import Incident, MonitorRecord, ProbeResult, state_to_dict
from status_monitor.store import (
    STATE_KEY,
    FileStore,
    MemoryStore,
    SqliteStore,
    StoreError,
    load_config,
    load_state,
    open_store,
    save_config_document,
    save_state,
)


def _sample_state() -> dict[str, MonitorRecord]:
    ok = ProbeResult(status=200, ok=True, response_time=42, time=1_000)
    failed = ProbeResult(status=0, ok=False, response_time=0, time=2_000)
    return {
        "google": MonitorRecord(
            name="Google",
            url="https://www.google.com",
            category_id="general",
            last_status=failed,
            detailed_logs=[ok, failed],
            incidents=[Incident(start=500, end=900, code=503), Incident(start=2_000, end=None, code=0)],
        ),
        "fresh": MonitorRecord(name="Fresh", url="https://fresh.example.org"),
    }


@pytest.mark.parametrize("kind", ["memory", "file", "sqlite"])
def test_state_round_trip_is_lossless(tmp_path: Path, kind: str) -> None:
    store = open_store(kind, data_dir=str(tmp_path / "data"), db_path=str(tmp_path / "kv.db"))
    state = _sample_state()

    save_state(store, state)
    loaded = load_state(store)

    assert loaded == state
    assert state_to_dict(loaded) == state_to_dict(state)


def test_persisted_state_uses_wire_field_names() -> None:
    store = MemoryStore()
    save_state(store, _sample_state())
    doc = json.loads(store.get(STATE_KEY) or "{}")

    google = doc["google"]
    assert set(google) == {"name", "url", "categoryId", "lastStatus", "detailedLogs", "incidents"}
    assert google["lastStatus"] == {"status": 0, "ok": False, "responseTime": 0, "time": 2_000}
    assert google["incidents"][-1] == {"start": 2_000, "end": None, "code": 0}
    assert doc["fresh"]["lastStatus"] is None


def test_missing_state_is_empty() -> None:
    assert load_state(MemoryStore()) == {}


@pytest.mark.parametrize("blob", ["{not json", "[]", "42"])
def test_undecodable_state_raises(blob: str) -> None:
    with pytest.raises(StoreError):
        load_state(MemoryStore({STATE_KEY: blob}))


def test_malformed_entries_are_skipped() -> None:
    blob = json.dumps(
        {
            "a": {"name": "A", "url": "https://a", "detailedLogs": [{"status": 200, "ok": True, "responseTime": 1, "time": 5}, "junk"]},
            "b": "not a record",
        }
    )
    state = load_state(MemoryStore({STATE_KEY: blob}))
    assert list(state) == ["a"]
    assert state["a"].category_id == "none"
    assert state["a"].last_status is None
    assert len(state["a"].detailed_logs) == 1
    assert state["a"].incidents == []


def test_file_store_writes_one_file_per_key(tmp_path: Path) -> None:
    store = FileStore(tmp_path)
    assert store.get("config") is None
    store.put("config", "{}")
    assert (tmp_path / "config.json").read_text(encoding="utf-8") == "{}"
    assert not (tmp_path / "config.json.tmp").exists()


def test_sqlite_store_overwrites_key(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "kv.db")
    store.put("k", "one")
    store.put("k", "two")
    assert store.get("k") == "two"
    assert SqliteStore(tmp_path / "kv.db").get("k") == "two"


def test_store_rejects_path_like_keys(tmp_path: Path) -> None:
    with pytest.raises(StoreError):
        FileStore(tmp_path).put("../escape", "x")


def test_open_store_unknown_kind() -> None:
    with pytest.raises(ValueError):
        open_store("redis", data_dir=".", db_path="x.db")


def test_config_missing_uses_default() -> None:
    config = load_config(MemoryStore())
    assert [t.id for t in config.urls] == ["google", "github", "dezso.hu"]
    assert config.success_set() == frozenset({200, 201, 202, 203, 204, 301, 302, 307, 308})
    assert [c.id for c in config.categories] == ["general", "internal"]


@pytest.mark.parametrize("blob", ["{oops", "[1, 2]", json.dumps({"urls": [{"name": "no id or url"}]})])
def test_malformed_config_falls_back_to_default(blob: str) -> None:
    assert parse_config(blob) == default_config()


def test_saved_config_document_is_stored_verbatim() -> None:
    store = MemoryStore()
    doc = {
        "urls": [{"id": "x", "name": "X", "url": "https://x.example.org"}],
        "successCodes": [200],
        "theme": "dark",
    }
    save_config_document(store, doc)

    assert json.loads(store.get(CONFIG_KEY) or "null") == doc
    config = load_config(store)
    assert [t.id for t in config.urls] == ["x"]
    assert config.urls[0].effective_category_id == "none"
    assert config.to_document() == doc


def test_default_config_document_round_trips() -> None:
    assert default_config().to_document() == DEFAULT_CONFIG_DOCUMENT


def test_default_config_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "default.yaml"
    path.write_text(
        "urls:\n"
        "  - id: intranet\n"
        "    name: Intranet\n"
        "    url: https://intranet.example.org\n"
        "successCodes: [200, 204]\n",
        encoding="utf-8",
    )
    config = load_default_config(path)
    assert [t.id for t in config.urls] == ["intranet"]
    assert config.success_set() == frozenset({200, 204})

    assert parse_config(None, default=config) is config


def test_default_config_yaml_must_be_mapping(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_default_config(path)


def test_invalid_category_entries_do_not_discard_targets() -> None:
    doc = {
        "urls": [{"id": "docs", "name": "Docs", "url": "https://docs.example.org", "categoryId": "web"}],
        "categories": [
            {"name": "Web", "defaultOpen": False},
            {"id": "ops", "name": None},
            "not-a-category",
        ],
        "successCodes": [200],
    }
    config = parse_config(json.dumps(doc))

    assert [t.id for t in config.urls] == ["docs"]
    assert config.success_set() == frozenset({200})
    assert [(c.id, c.name) for c in config.categories] == [(None, "Web"), ("ops", None)]
    assert config.to_document()["categories"] == [{"name": "Web", "defaultOpen": False}, {"id": "ops", "name": None}]


def test_non_list_categories_are_ignored() -> None:
    doc = {"urls": [{"id": "x", "url": "https://x.example.org"}], "categories": None}
    config = parse_config(json.dumps(doc))
    assert [t.id for t in config.urls] == ["x"]
    assert config.categories == []
