"""
Local File Storage Implementation

The default backend: behaves like browser local storage, one JSON text
file per key inside a data directory. Each write goes to a temporary
file first and is then renamed over the old one, so a crash mid-write
leaves the previous value in place.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

from smart_ledger.services.storage.interface import (
    BackendUnavailableError,
    KeyValueBackend,
    StorageError,
)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalFileBackend(KeyValueBackend):
    """Key-value store over a directory of ``<key>.json`` files."""

    name = "local"

    def __init__(self, data_dir: Union[str, Path]):
        self._dir = Path(data_dir)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendUnavailableError(f"Cannot create data directory {self._dir}: {e}")

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {key}: {e}")
