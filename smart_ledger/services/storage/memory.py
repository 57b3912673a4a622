"""In-memory key-value backend (tests, and last-resort fallback)."""

from typing import Optional

from smart_ledger.services.storage.interface import KeyValueBackend


class InMemoryBackend(KeyValueBackend):
    """Dict-backed store. Nothing survives the process."""

    name = "memory"

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def keys(self) -> list[str]:
        return list(self._items)
