"""
Persistence Gateway

JSON collections over a key-value backend.

The gateway owns serialization and the "best effort" policy:
- Reads never fail. Missing, empty or unparseable data yields the
  caller's default.
- Writes never raise. A failed write is logged and reported through the
  return value; in-memory state and storage may then diverge until the
  next successful write.

Backend selection happens exactly once, in ``detect_backend``.
"""

import copy
import json
from typing import Any, Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from smart_ledger.config import Settings, get_settings
from smart_ledger.models.ledger import DEFAULT_BUDGETS, Budget, Transaction
from smart_ledger.services.storage.google_sheets import GoogleSheetsBackend, GoogleSheetsClient
from smart_ledger.services.storage.interface import (
    BackendUnavailableError,
    KeyValueBackend,
    StorageError,
)
from smart_ledger.services.storage.local_file import LocalFileBackend
from smart_ledger.services.storage.memory import InMemoryBackend


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class PersistenceGateway:
    """
    Read and write named JSON collections.

    Collection keys default to the configured ones
    (yy_transactions, yy_budgets, yy_prefs).
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        transactions_key: str = "yy_transactions",
        budgets_key: str = "yy_budgets",
        prefs_key: str = "yy_prefs",
    ):
        self._backend = backend
        self.transactions_key = transactions_key
        self.budgets_key = budgets_key
        self.prefs_key = prefs_key

    @classmethod
    def from_settings(
        cls,
        backend: KeyValueBackend,
        settings: Optional[Settings] = None,
    ) -> "PersistenceGateway":
        storage = (settings or get_settings()).storage
        return cls(
            backend,
            transactions_key=storage.transactions_key,
            budgets_key=storage.budgets_key,
            prefs_key=storage.prefs_key,
        )

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    # -------------------------------------------------------------------------
    # Generic collections
    # -------------------------------------------------------------------------

    def read_collection(self, key: str, default: Any) -> Any:
        """
        Read and parse a collection.

        Returns a copy of ``default`` when the key is absent, empty,
        unreadable or not valid JSON.
        """
        try:
            raw = self._backend.get_item(key)
        except StorageError as e:
            logger.warning("storage_read_failed", key=key, backend=self._backend.name, error=str(e))
            return copy.deepcopy(default)

        if raw is None or raw == "":
            return copy.deepcopy(default)

        # Host stores may hand back already-decoded values
        if not isinstance(raw, str):
            return raw

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("storage_parse_failed", key=key, backend=self._backend.name, error=str(e))
            return copy.deepcopy(default)

    def write_collection(self, key: str, value: Any) -> bool:
        """
        Serialize and store a collection.

        Returns True if the backend accepted the write. Failures are
        logged, never raised.
        """
        try:
            text = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("storage_serialize_failed", key=key, error=str(e))
            return False

        try:
            self._backend.set_item(key, text)
        except StorageError as e:
            logger.error("storage_write_failed", key=key, backend=self._backend.name, error=str(e))
            return False
        return True

    def _read_models(self, key: str, model: type[ModelT]) -> Optional[list[ModelT]]:
        """Load a list of models, skipping records that don't validate."""
        data = self.read_collection(key, None)
        if data is None:
            return None
        if not isinstance(data, list):
            logger.warning("storage_unexpected_shape", key=key, got=type(data).__name__)
            return None

        items = []
        for index, item in enumerate(data):
            try:
                items.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "storage_record_skipped",
                    key=key,
                    index=index,
                    error=e.errors(include_url=False)[:3],
                )
        return items

    # -------------------------------------------------------------------------
    # Typed helpers
    # -------------------------------------------------------------------------

    def get_transactions(self) -> list[Transaction]:
        """Persisted transactions, most recent first; empty if none."""
        return self._read_models(self.transactions_key, Transaction) or []

    def save_transactions(self, transactions: list[Transaction]) -> bool:
        return self.write_collection(
            self.transactions_key,
            [t.to_json_dict() for t in transactions],
        )

    def get_budgets(self) -> list[Budget]:
        """Persisted budgets, seeded with the default total budget."""
        budgets = self._read_models(self.budgets_key, Budget)
        if budgets is None:
            return [b.model_copy() for b in DEFAULT_BUDGETS]
        return budgets

    def save_budgets(self, budgets: list[Budget]) -> bool:
        return self.write_collection(
            self.budgets_key,
            [b.to_json_dict() for b in budgets],
        )

    def get_prefs(self) -> dict:
        prefs = self.read_collection(self.prefs_key, {})
        return prefs if isinstance(prefs, dict) else {}

    def save_prefs(self, prefs: dict) -> bool:
        return self.write_collection(self.prefs_key, prefs)


def detect_backend(settings: Optional[Settings] = None) -> KeyValueBackend:
    """
    Pick the storage backend once, at startup.

    'auto' uses Google Sheets when a spreadsheet and credentials file are
    configured, otherwise the local file store. If the chosen backend
    cannot be opened we fall back to local files, then to memory.
    """
    settings = settings or get_settings()
    storage = settings.storage
    choice = storage.backend

    if choice == "memory":
        return InMemoryBackend()

    if choice == "sheets" or (choice == "auto" and settings.google_sheets.is_configured):
        try:
            client = GoogleSheetsClient(settings.google_sheets)
            client.get_kv_sheet()
            logger.info("storage_backend_selected", backend="sheets")
            return GoogleSheetsBackend(client)
        except Exception as e:
            logger.warning("storage_backend_unavailable", backend="sheets", error=str(e))

    try:
        backend = LocalFileBackend(storage.data_dir)
        logger.info("storage_backend_selected", backend="local", data_dir=storage.data_dir)
        return backend
    except BackendUnavailableError as e:
        logger.error("storage_backend_unavailable", backend="local", error=str(e))

    logger.warning("storage_backend_selected", backend="memory")
    return InMemoryBackend()
