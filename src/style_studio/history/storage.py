"""
Session-scoped key/value storage.

Mirrors the browser's sessionStorage contract: string keys, string values,
writes may fail when the quota is exhausted.
"""
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from ..exceptions import HistoryStorageError

logger = logging.getLogger(__name__)


class SessionStorage(Protocol):
    """Protocol for the storage behind the history cache."""
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class InMemorySessionStorage:
    """
    Process-local storage with an optional byte quota.

    The quota covers all stored values together, like a browser origin quota.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        """
        :param quota_bytes: Maximum total size of stored values, None for unlimited
        """
        self._items: Dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            others = sum(len(v.encode("utf-8")) for k, v in self._items.items() if k != key)
            if others + len(value.encode("utf-8")) > self._quota_bytes:
                raise HistoryStorageError(
                    f"Storage quota of {self._quota_bytes} bytes exceeded writing '{key}'"
                )
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


class JsonFileSessionStorage:
    """
    One file per key inside a directory.

    Survives process restarts ("reloads") on the same machine. Writes go
    through a temporary file so a crash never leaves a half-written value.
    """

    _UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory: str):
        """
        :param directory: Directory holding the value files (created on first write)
        """
        self._directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        safe = self._UNSAFE.sub("_", key) or "_"
        return self._directory / f"{safe}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise HistoryStorageError(f"Cannot read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_name = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self._directory), suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise HistoryStorageError(f"Cannot write {path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug(f"Could not remove temporary file {tmp_name}")

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise HistoryStorageError(f"Cannot remove {path}: {e}") from e
