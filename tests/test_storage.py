"""Tests for the key-value backends and the persistence gateway."""

import json
from datetime import datetime, timezone

import pytest

from smart_ledger.config import Settings
from smart_ledger.models.ledger import Budget, Transaction
from smart_ledger.services.storage.google_sheets import MAX_CELL_CHARS
from smart_ledger.services.storage import (
    GoogleSheetsBackend,
    InMemoryBackend,
    LocalFileBackend,
    PersistenceGateway,
    StorageError,
    detect_backend,
)

from conftest import FailingBackend, FakeSheetsClient


def make_transaction(txn_id: str, amount: float = 10.0, category_id: str = "food") -> Transaction:
    when = datetime(2024, 3, 5, 4, 0, tzinfo=timezone.utc)
    return Transaction(
        id=txn_id,
        amount=amount,
        category_id=category_id,
        type="expense",
        note=txn_id,
        date=when,
        created_at=when,
    )


class TestLocalFileBackend:
    """Tests for the default on-disk store."""

    def test_missing_key_returns_none(self, tmp_path):
        backend = LocalFileBackend(tmp_path)
        assert backend.get_item("yy_transactions") is None

    def test_round_trip(self, tmp_path):
        backend = LocalFileBackend(tmp_path)
        backend.set_item("yy_prefs", '{"theme": "light"}')
        assert backend.get_item("yy_prefs") == '{"theme": "light"}'
        assert (tmp_path / "yy_prefs.json").exists()

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        backend = LocalFileBackend(tmp_path)
        backend.set_item("k", "1")
        backend.set_item("k", "2")
        assert backend.get_item("k") == "2"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]

    def test_creates_data_dir(self, tmp_path):
        target = tmp_path / "nested" / "data"
        LocalFileBackend(target)
        assert target.is_dir()

    def test_rejects_path_like_keys(self, tmp_path):
        backend = LocalFileBackend(tmp_path)
        with pytest.raises(StorageError):
            backend.set_item("../escape", "x")


class TestPersistenceGateway:
    """Tests for JSON collections over a backend."""

    def test_absent_key_returns_default(self, gateway):
        assert gateway.read_collection("missing", []) == []

    def test_default_is_copied(self, gateway):
        default = {"a": []}
        value = gateway.read_collection("missing", default)
        value["a"].append(1)
        assert default == {"a": []}

    def test_empty_string_returns_default(self):
        gateway = PersistenceGateway(InMemoryBackend({"k": ""}))
        assert gateway.read_collection("k", [1]) == [1]

    def test_unparseable_returns_default(self):
        gateway = PersistenceGateway(InMemoryBackend({"k": "{not json"}))
        assert gateway.read_collection("k", []) == []

    def test_collection_round_trip_preserves_order(self, gateway):
        data = [{"id": "b"}, {"id": "a"}, {"id": "c"}]
        assert gateway.write_collection("items", data) is True
        assert gateway.read_collection("items", []) == data

    def test_non_ascii_is_stored_readably(self, backend, gateway):
        gateway.write_collection("items", [{"note": "奶茶"}])
        assert "奶茶" in backend.get_item("items")

    def test_write_failure_returns_false(self):
        gateway = PersistenceGateway(FailingBackend())
        assert gateway.write_collection("items", [1, 2]) is False

    def test_unserializable_value_returns_false(self, gateway):
        assert gateway.write_collection("items", [object()]) is False

    def test_transactions_round_trip(self, backend, gateway):
        transactions = [make_transaction("t2"), make_transaction("t1")]
        assert gateway.save_transactions(transactions)

        stored = json.loads(backend.get_item("yy_transactions"))
        assert stored[0]["categoryId"] == "food"
        assert [t.id for t in gateway.get_transactions()] == ["t2", "t1"]

    def test_invalid_records_are_skipped(self):
        good = make_transaction("ok").to_json_dict()
        backend = InMemoryBackend({"yy_transactions": json.dumps([good, {"id": "broken"}])})
        gateway = PersistenceGateway(backend)
        assert [t.id for t in gateway.get_transactions()] == ["ok"]

    def test_no_transactions_is_empty_list(self, gateway):
        assert gateway.get_transactions() == []

    def test_budgets_seeded_when_absent(self, gateway):
        budgets = gateway.get_budgets()
        assert len(budgets) == 1
        assert budgets[0].category_id == "all"
        assert budgets[0].amount == 3000

    def test_stored_empty_budget_list_is_kept(self):
        gateway = PersistenceGateway(InMemoryBackend({"yy_budgets": "[]"}))
        assert gateway.get_budgets() == []

    def test_saved_budgets_load_back(self, gateway):
        gateway.save_budgets([Budget(id="b1", category_id="all", amount=5000)])
        assert gateway.get_budgets()[0].amount == 5000

    def test_prefs_default_to_empty_dict(self, gateway):
        assert gateway.get_prefs() == {}
        gateway.save_prefs({"currency": "CNY"})
        assert gateway.get_prefs() == {"currency": "CNY"}

    def test_custom_keys(self, backend):
        gateway = PersistenceGateway(backend, transactions_key="other_txns")
        gateway.save_transactions([make_transaction("t1")])
        assert "other_txns" in backend.keys()


class TestGoogleSheetsBackend:
    """Tests for the key-value table over a worksheet."""

    def test_missing_key(self):
        backend = GoogleSheetsBackend(FakeSheetsClient())
        assert backend.get_item("yy_transactions") is None

    def test_insert_then_update_in_place(self):
        client = FakeSheetsClient()
        backend = GoogleSheetsBackend(client)

        backend.set_item("yy_prefs", "{}")
        backend.set_item("yy_prefs", '{"a": 1}')

        assert backend.get_item("yy_prefs") == '{"a": 1}'
        assert len(client.sheet.rows) == 2

    def test_header_row_is_not_a_key(self):
        backend = GoogleSheetsBackend(FakeSheetsClient())
        assert backend.get_item("key") is None

    def test_oversized_value_rejected(self):
        backend = GoogleSheetsBackend(FakeSheetsClient())
        with pytest.raises(StorageError):
            backend.set_item("yy_transactions", "x" * (MAX_CELL_CHARS + 1))

    def test_works_behind_gateway(self):
        gateway = PersistenceGateway(GoogleSheetsBackend(FakeSheetsClient()))
        gateway.save_prefs({"currency": "CNY"})
        assert gateway.get_prefs() == {"currency": "CNY"}


class TestDetectBackend:
    """Tests for startup backend selection."""

    def test_memory_when_requested(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert isinstance(detect_backend(Settings()), InMemoryBackend)

    def test_auto_without_sheets_uses_local_files(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_BACKEND", "auto")
        monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "ledger"))
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        backend = detect_backend(Settings())

        assert isinstance(backend, LocalFileBackend)
        assert backend.data_dir == tmp_path / "ledger"

    def test_unreachable_sheets_falls_back_to_local(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_BACKEND", "sheets")
        monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(tmp_path / "missing.json"))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-id")

        assert isinstance(detect_backend(Settings()), LocalFileBackend)
