"""Tests for the write-through ledger store."""

from datetime import datetime, timezone

from smart_ledger.audit import AuditLogger
from smart_ledger.models.audit import AuditEventType
from smart_ledger.models.ledger import TransactionDraft
from smart_ledger.services.storage import PersistenceGateway
from smart_ledger.store import LedgerStore

from conftest import FIXED_NOW, FailingBackend


def draft(note: str, amount: float = 10.0, **kwargs) -> TransactionDraft:
    return TransactionDraft(amount=amount, category_id="food", type="expense", note=note, **kwargs)


class TestLedgerStore:
    """Tests for add/remove and persistence."""

    def test_starts_empty_with_default_budget(self, store):
        assert store.transactions == []
        assert store.budgets[0].amount == 3000

    def test_add_one_stamps_identity_and_times(self, store):
        updated = store.add_one(draft("奶茶", 15))
        txn = updated[0]
        assert txn.id == "txn-1"
        assert txn.created_at == FIXED_NOW
        assert txn.date == FIXED_NOW

    def test_add_one_keeps_given_date(self, store):
        day = datetime(2024, 1, 1, tzinfo=timezone.utc)
        txn = store.add_one(draft("x", date=day))[0]
        assert txn.date == day
        assert txn.created_at == FIXED_NOW

    def test_new_records_are_prepended_in_input_order(self, store):
        store.add_one(draft("old"))
        updated = store.add_many([draft("a"), draft("b")])
        assert [t.note for t in updated] == ["a", "b", "old"]

    def test_ids_are_unique(self, store):
        store.add_many([draft("a"), draft("b"), draft("c")])
        ids = [t.id for t in store.transactions]
        assert len(ids) == len(set(ids))

    def test_add_many_empty_is_noop(self, store, backend):
        assert store.add_many([]) == []
        assert backend.get_item("yy_transactions") is None

    def test_writes_through(self, store, gateway):
        store.add_one(draft("persisted"))
        assert [t.note for t in gateway.get_transactions()] == ["persisted"]

    def test_reload_sees_persisted_state(self, store, gateway):
        store.add_many([draft("a"), draft("b")])
        fresh = LedgerStore(gateway)
        assert [t.note for t in fresh.transactions] == ["a", "b"]

    def test_remove_one(self, store, gateway):
        store.add_many([draft("a"), draft("b")])
        updated = store.remove_one("txn-1")
        assert [t.note for t in updated] == ["b"]
        assert [t.note for t in gateway.get_transactions()] == ["b"]

    def test_remove_unknown_id_changes_nothing(self, store, backend):
        store.add_one(draft("a"))
        before = backend.get_item("yy_transactions")
        updated = store.remove_one("does-not-exist")
        assert [t.note for t in updated] == ["a"]
        assert backend.get_item("yy_transactions") == before

    def test_transactions_property_is_a_copy(self, store):
        store.add_one(draft("a"))
        store.transactions.clear()
        assert len(store.transactions) == 1

    def test_additions_are_audited(self, store, audit_logger):
        store.add_many([draft("a"), draft("b")], source="ai")
        event = audit_logger.recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.TRANSACTIONS_ADDED
        assert event.details["source"] == "ai"
        assert event.details["transaction_ids"] == ["txn-1", "txn-2"]

    def test_failed_write_keeps_memory_state(self):
        gateway = PersistenceGateway(FailingBackend())
        store = LedgerStore(gateway, audit_logger=AuditLogger(gateway))
        updated = store.add_one(draft("only in memory"))
        assert [t.note for t in updated] == ["only in memory"]
        assert gateway.get_transactions() == []
