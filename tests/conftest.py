"""
Shared fixtures for Smart Ledger tests.

No real API calls and no real storage: the model is a fake object with
``generate_content_async`` and the ledger sits on an in-memory backend.
"""

import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from smart_ledger.audit import AuditLogger
from smart_ledger.models.categories import get_registry
from smart_ledger.services.storage import InMemoryBackend, PersistenceGateway, StorageError
from smart_ledger.store import LedgerStore


FIXED_NOW = datetime(2024, 3, 5, 4, 30, tzinfo=timezone.utc)


class FakeModel:
    """Stands in for a Gemini GenerativeModel."""

    model_name = "fake-model"

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.requests = []

    async def generate_content_async(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        text = self.reply if isinstance(self.reply, str) else json.dumps(self.reply, ensure_ascii=False)
        return SimpleNamespace(text=text)


class FailingBackend(InMemoryBackend):
    """Reads work, every write is rejected."""

    def set_item(self, key, value):
        raise StorageError("quota exceeded")


class FakeWorksheet:
    """Just the gspread Worksheet calls the backend makes."""

    def __init__(self):
        self.rows = [["key", "value", "updated_at"]]

    def col_values(self, col):
        return [row[col - 1] for row in self.rows]

    def row_values(self, row):
        return list(self.rows[row - 1])

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = value


class FakeSheetsClient:
    def __init__(self):
        self.sheet = FakeWorksheet()

    def get_kv_sheet(self):
        return self.sheet


@pytest.fixture
def registry():
    return get_registry()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def gateway(backend):
    return PersistenceGateway(backend)


@pytest.fixture
def audit_logger(gateway):
    return AuditLogger(gateway)


@pytest.fixture
def store(gateway, audit_logger):
    counter = iter(range(1, 10_000))
    return LedgerStore(
        gateway,
        audit_logger=audit_logger,
        clock=lambda: FIXED_NOW,
        id_factory=lambda: f"txn-{next(counter)}",
    )
