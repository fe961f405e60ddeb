"""Tests for provisio.state."""

from __future__ import annotations

import json

import pytest
from pydantic import BaseModel

from provisio.context import Phase
from provisio.state import FileStateStore, MemoryStateStore, StateRecord, serialize


class WidgetProps(BaseModel):
    color: str
    size: int = 1


class TestSerialize:
    def test_model_becomes_dict(self):
        assert serialize(WidgetProps(color="red")) == {"color": "red", "size": 1}

    def test_plain_values_unchanged(self):
        assert serialize({"a": [1, 2]}) == {"a": [1, 2]}


class TestStateRecord:
    def test_frozen(self):
        record = StateRecord(id="a", type="t")
        with pytest.raises(ValueError):
            record.id = "b"  # type: ignore[misc]

    def test_defaults(self):
        record = StateRecord(id="a", type="t")
        assert record.phase is Phase.CREATE
        assert record.seq == 0
        assert record.output is None


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryStateStore()
    return FileStateStore(tmp_path / "state")


class TestStateStore:
    def test_get_missing(self, any_store):
        assert any_store.get("scope", "missing") is None

    def test_put_and_get(self, any_store):
        any_store.put("scope", "a", "t", WidgetProps(color="red"), {"id": "1"}, Phase.CREATE)
        record = any_store.get("scope", "a")
        assert record.type == "t"
        assert record.properties == {"color": "red", "size": 1}
        assert record.output == {"id": "1"}

    def test_records_in_commit_order(self, any_store):
        any_store.put("scope", "b", "t", {}, None, Phase.CREATE)
        any_store.put("scope", "a", "t", {}, None, Phase.CREATE)
        assert [r.id for r in any_store.records("scope")] == ["b", "a"]

    def test_update_keeps_creation_order(self, any_store):
        any_store.put("scope", "a", "t", {}, None, Phase.CREATE)
        any_store.put("scope", "b", "t", {}, None, Phase.CREATE)
        any_store.put("scope", "a", "t", {"v": 2}, None, Phase.UPDATE)
        records = any_store.records("scope")
        assert [r.id for r in records] == ["a", "b"]
        assert records[0].phase is Phase.UPDATE
        assert records[0].properties == {"v": 2}

    def test_recreated_record_takes_new_sequence(self, any_store):
        any_store.put("scope", "a", "t", {}, None, Phase.CREATE)
        any_store.put("scope", "b", "t", {}, None, Phase.CREATE)
        any_store.delete("scope", "a")
        any_store.put("scope", "a", "t", {}, None, Phase.CREATE)
        assert [r.id for r in any_store.records("scope")] == ["b", "a"]

    def test_sequence_increases(self, any_store):
        first = any_store.put("scope", "a", "t", {}, None, Phase.CREATE)
        second = any_store.put("scope", "b", "t", {}, None, Phase.CREATE)
        assert second.seq > first.seq

    def test_delete(self, any_store):
        any_store.put("scope", "a", "t", {}, None, Phase.CREATE)
        assert any_store.delete("scope", "a") is True
        assert any_store.get("scope", "a") is None
        assert any_store.delete("scope", "a") is False

    def test_scopes_are_isolated(self, any_store):
        any_store.put("one", "a", "t", {}, None, Phase.CREATE)
        assert any_store.get("two", "a") is None
        assert any_store.records("two") == []


class TestMemoryStateStore:
    def test_scopes_listing(self):
        store = MemoryStateStore()
        store.put("one", "a", "t", {}, None, Phase.CREATE)
        assert store.scopes() == ["one"]
        store.delete("one", "a")
        assert store.scopes() == []


class TestFileStateStore:
    def test_writes_json_document(self, tmp_path):
        store = FileStateStore(tmp_path)
        store.put("app", "a", "t", {"x": 1}, {"id": "1"}, Phase.CREATE)
        doc = json.loads((tmp_path / "app.json").read_text())
        assert doc["scope"] == "app"
        assert doc["resources"][0]["id"] == "a"
        assert doc["resources"][0]["phase"] == "create"

    def test_persists_across_instances(self, tmp_path):
        FileStateStore(tmp_path).put("app", "a", "t", {"x": 1}, {"id": "1"}, Phase.CREATE)
        record = FileStateStore(tmp_path).get("app", "a")
        assert record is not None
        assert record.output == {"id": "1"}

    def test_nested_scope_id(self, tmp_path):
        store = FileStateStore(tmp_path)
        store.put("app/dev", "a", "t", {}, None, Phase.CREATE)
        assert (tmp_path / "app" / "dev.json").exists()

    def test_last_delete_removes_file(self, tmp_path):
        store = FileStateStore(tmp_path)
        store.put("app", "a", "t", {}, None, Phase.CREATE)
        store.delete("app", "a")
        assert not (tmp_path / "app.json").exists()

    def test_no_temp_files_left(self, tmp_path):
        store = FileStateStore(tmp_path)
        store.put("app", "a", "t", {}, None, Phase.CREATE)
        assert [p.name for p in tmp_path.iterdir()] == ["app.json"]

    def test_invalid_file_raises(self, tmp_path):
        (tmp_path / "app.json").write_text("{not json")
        with pytest.raises(ValueError, match="invalid state file"):
            FileStateStore(tmp_path).records("app")

    def test_repr(self, tmp_path):
        assert "FileStateStore" in repr(FileStateStore(tmp_path))
