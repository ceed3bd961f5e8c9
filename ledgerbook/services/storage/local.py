"""
Local Storage Implementations

LocalJsonStorage keeps one JSON file per key inside a data directory.
It is the default backend: no setup, and the files are human-readable.

InMemoryStorage keeps everything in a dict. It is used by the tests and
when the app runs with STORAGE_BACKEND=memory.

TRADEOFFS:
- Writes are not atomic across keys (a crash between two writes can leave
  collections out of step). Acceptable for a single-user bookkeeping tool.
"""

import copy
import json
import re
from pathlib import Path
from typing import Any, Optional

import structlog

from ledgerbook.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class InMemoryStorage(KeyValueStorageInterface):
    """Dict-backed storage. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so tests catch unserializable values
        try:
            self._data[key] = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON-serializable: {e}")

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        return True

    def keys(self) -> list[str]:
        return list(self._data.keys())


class LocalJsonStorage(KeyValueStorageInterface):
    """
    File-per-key JSON storage.

    <data_dir>/<key>.json
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt JSON in {path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(value, ensure_ascii=False, indent=2)
            # Write then rename so a crash never leaves a half-written file
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(path)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON-serializable: {e}")
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")
        logger.debug("storage_write", key=key, path=str(path))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}")

    def keys(self) -> list[str]:
        if not self._data_dir.exists():
            return []
        return sorted(p.stem for p in self._data_dir.glob("*.json"))
