"""
Ledger Store

The explicitly owned application state: the transaction and budget
collections, mirrored to storage on every mutation (write-through).

All changes go through ``add_one``/``add_many``/``remove_one`` so there is
a single writer. Each call replaces the whole collection and persists it.
If the write fails the in-memory list still changes; memory and storage
diverge until the next successful write.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from smart_ledger.audit import AuditLogger
from smart_ledger.models.ledger import Budget, Transaction, TransactionDraft
from smart_ledger.services.storage import PersistenceGateway


logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerStore:
    """In-memory ledger with write-through persistence."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ):
        self._gateway = gateway
        self._audit_logger = audit_logger
        self._clock = clock
        self._new_id = id_factory
        self._transactions: list[Transaction] = []
        self._budgets: list[Budget] = []
        self.reload()

    def reload(self) -> None:
        """Replace in-memory state with what storage holds."""
        self._transactions = self._gateway.get_transactions()
        self._budgets = self._gateway.get_budgets()

    @property
    def gateway(self) -> PersistenceGateway:
        return self._gateway

    @property
    def transactions(self) -> list[Transaction]:
        """Most recent first. A copy; mutate through the store."""
        return list(self._transactions)

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    def add_one(
        self,
        draft: TransactionDraft,
        source: str = "manual",
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        return self.add_many([draft], source=source, correlation_id=correlation_id)

    def add_many(
        self,
        drafts: list[TransactionDraft],
        source: str = "manual",
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Stamp identity and creation time, prepend, persist.

        The new records keep their input order and go in front of the
        existing ones. Drafts without a date get the current instant.
        """
        if not drafts:
            return self.transactions

        now = self._clock()
        new_entries = [
            Transaction(
                id=self._new_id(),
                amount=draft.amount,
                category_id=draft.category_id,
                type=draft.type,
                note=draft.note,
                date=draft.date or now,
                created_at=now,
            )
            for draft in drafts
        ]

        self._transactions = new_entries + self._transactions
        self._persist_transactions()

        if self._audit_logger:
            self._audit_logger.log_transactions_added(
                [t.id for t in new_entries],
                source=source,
                correlation_id=correlation_id,
            )
        return self.transactions

    def remove_one(self, transaction_id: str) -> list[Transaction]:
        """Drop the record with this id. Unknown ids change nothing."""
        remaining = [t for t in self._transactions if t.id != transaction_id]
        if len(remaining) == len(self._transactions):
            logger.info("transaction_not_found", transaction_id=transaction_id)
            return self.transactions

        self._transactions = remaining
        self._persist_transactions()

        if self._audit_logger:
            self._audit_logger.log_transaction_deleted(transaction_id)
        return self.transactions

    def _persist_transactions(self) -> None:
        if not self._gateway.save_transactions(self._transactions):
            logger.warning(
                "ledger_diverged_from_storage",
                key=self._gateway.transactions_key,
                count=len(self._transactions),
            )
            if self._audit_logger:
                self._audit_logger.log_storage_write_failed(
                    self._gateway.transactions_key,
                    "Write rejected by backend; in-memory ledger is ahead of storage",
                )
