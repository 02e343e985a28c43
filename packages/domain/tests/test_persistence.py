"""Tests for the key-value persistence adapter."""

import json
import pytest
from decimal import Decimal
from datetime import date

from slicingpie_domain.persistence import (
    KEY_ACTIVITY_LOG,
    KEY_COMPANY,
    KEY_CONTRIBUTIONS,
    KEY_CONTRIBUTORS,
    KEY_VALUATION_CONFIG,
    KEY_VALUATION_HISTORY,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistenceAdapter,
    key_value_store_for,
)
from slicingpie_domain.schemas import DeletedViaParent
from slicingpie_domain.settings import EngineSettings
from slicingpie_domain.store import PieStore
from slicingpie_domain.valuation import ValuationBook


class FailingKeyValueStore(InMemoryKeyValueStore):
    """Rejects writes for selected keys."""

    def __init__(self, failing_keys):
        super().__init__()
        self.failing_keys = set(failing_keys)

    def set(self, key, value):
        if key in self.failing_keys:
            raise OSError(f"quota exceeded for {key}")
        super().set(key, value)


@pytest.fixture
def store():
    store = PieStore()
    store.load_sample_data()
    return store


def test_changes_mark_areas_dirty(store):
    adapter = PersistenceAdapter(store, InMemoryKeyValueStore())
    assert not adapter.is_dirty

    store.soft_delete_contribution("contrib-1")
    assert adapter.dirty == frozenset({"contributions", "activity"})


def test_flush_writes_fixed_keys(store):
    kv = InMemoryKeyValueStore()
    adapter = PersistenceAdapter(store, kv)
    store.soft_delete_contributor("sample-bob")

    assert adapter.flush() is True
    assert not adapter.is_dirty
    assert set(kv.keys()) == {KEY_CONTRIBUTORS, KEY_CONTRIBUTIONS, KEY_ACTIVITY_LOG}

    records = {r["id"]: r for r in kv.get(KEY_CONTRIBUTIONS)}
    assert records["contrib-3"]["deletedWithParent"] == "sample-bob"
    assert "deletedAt" in records["contrib-3"]
    assert kv.get(KEY_ACTIVITY_LOG)[0]["entityName"] == "Bob Designer"


def test_round_trip_through_files(store, tmp_path):
    kv = JsonFileKeyValueStore(tmp_path / "pie")
    book = ValuationBook()
    adapter = PersistenceAdapter(store, kv, valuation=book)

    store.update_company(name="Acme Renamed")
    store.soft_delete_contributor("sample-bob")
    book.set_manual_value(Decimal("1000000"))
    book.save()
    adapter.valuation_changed()
    assert adapter.flush() is True
    assert (tmp_path / "pie" / f"{KEY_COMPANY}.json").exists()

    fresh = PieStore()
    fresh_book = ValuationBook()
    PersistenceAdapter(fresh, kv, valuation=fresh_book).load()

    assert fresh.company.name == "Acme Renamed"
    assert fresh.total_slices() == store.total_slices()
    assert isinstance(fresh.get_contribution("contrib-4").deletion, DeletedViaParent)
    assert [e.entity_id for e in fresh.activity] == ["sample-bob"]
    assert fresh_book.current_valuation() == Decimal("1000000")
    assert len(fresh_book.history) == 1

    fresh.restore_contributor("sample-bob")
    assert fresh.total_slices() == Decimal("48500")


def test_failed_write_keeps_area_dirty(store):
    kv = FailingKeyValueStore({KEY_ACTIVITY_LOG})
    adapter = PersistenceAdapter(store, kv)

    store.soft_delete_contribution("contrib-1")

    assert adapter.flush() is False
    assert adapter.dirty == frozenset({"activity"})
    assert KEY_CONTRIBUTIONS in kv.keys()
    # Calculation state is unaffected
    assert store.total_slices() == Decimal("36500")

    kv.failing_keys.clear()
    assert adapter.flush() is True


def test_autoflush(store):
    kv = InMemoryKeyValueStore()
    PersistenceAdapter(store, kv, autoflush=True)
    alice = store.get_contributor("sample-alice")
    store.add_contribution(alice.id, "cash", Decimal("100"), date(2024, 3, 1))
    assert len(kv.get(KEY_CONTRIBUTIONS)) == 7


def test_close_stops_tracking(store):
    adapter = PersistenceAdapter(store, InMemoryKeyValueStore())
    adapter.close()
    store.add_contributor("Dan")
    assert not adapter.is_dirty


def test_load_skips_corrupt_keys(tmp_path):
    kv = JsonFileKeyValueStore(tmp_path)
    kv.set(KEY_COMPANY, {"name": "Kept Co", "description": ""})
    (tmp_path / f"{KEY_CONTRIBUTORS}.json").write_text("{broken", encoding="utf-8")
    kv.set(KEY_CONTRIBUTIONS, [{"id": "c1", "type": "unknown"}])

    store = PieStore()
    store.add_contributor("Existing")
    PersistenceAdapter(store, kv).load()

    assert store.company.name == "Kept Co"
    assert [c.name for c in store.contributors] == ["Existing"]
    assert store.contributions == []


def test_load_without_valuation_book_ignores_valuation_keys(store):
    kv = InMemoryKeyValueStore()
    kv.set(KEY_VALUATION_CONFIG, {"mode": "manual", "manualValue": 5})
    kv.set(KEY_VALUATION_HISTORY, [])
    adapter = PersistenceAdapter(store, kv)
    adapter.valuation_changed()
    assert adapter.flush() is True


def test_file_store_writes_json(tmp_path):
    kv = JsonFileKeyValueStore(tmp_path / "nested")
    kv.set("key", {"a": 1})
    assert json.loads((tmp_path / "nested" / "key.json").read_text(encoding="utf-8")) == {"a": 1}
    assert kv.get("missing", default=[]) == []


def test_key_value_store_from_settings(tmp_path):
    assert isinstance(key_value_store_for(EngineSettings()), InMemoryKeyValueStore)

    kv = key_value_store_for(EngineSettings(storage_dir=tmp_path))
    assert isinstance(kv, JsonFileKeyValueStore)
    assert kv.directory == tmp_path


def test_adapter_from_settings_writes_to_storage_dir(tmp_path):
    store = PieStore(settings=EngineSettings.from_env({"SLICINGPIE_STORAGE_DIR": str(tmp_path)}))
    adapter = PersistenceAdapter.from_settings(store)
    store.add_contributor("Alice")
    assert adapter.flush() is True

    saved = json.loads((tmp_path / f"{KEY_CONTRIBUTORS}.json").read_text(encoding="utf-8"))
    assert [c["name"] for c in saved] == ["Alice"]

    reloaded = PieStore(settings=store.settings)
    PersistenceAdapter.from_settings(reloaded).load()
    assert [c.name for c in reloaded.contributors] == ["Alice"]
