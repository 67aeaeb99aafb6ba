"""
Recent-analysis history.

Short, bounded, newest-first list of completed analyses, persisted to session
storage. Storage is a best-effort cache: losing it degrades to an empty
history, never to an error.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from ..config import DEFAULT_HISTORY_KEY
from ..exceptions import HistoryStorageError
from ..models import AnalysisResult, HistoryEntry, SourceKind
from ..schemas import HISTORY_LIST_ADAPTER, HistoryEntryRecord
from ..utils.clock import epoch_millis, utc_now
from .storage import SessionStorage

logger = logging.getLogger(__name__)


DEFAULT_HISTORY_CAPACITY = 3


def make_history_entry(
    workflow_type: SourceKind,
    result: AnalysisResult,
    timestamp: Optional[datetime] = None,
) -> Optional[HistoryEntry]:
    """
    Build a history entry for a completed analysis.

    :param workflow_type: How the analysis was triggered
    :param result: Completed result
    :param timestamp: Entry time, defaults to now
    :return: HistoryEntry, or None if the result has no source image
    """
    if not result.source_image:
        return None
    timestamp = timestamp or utc_now()
    return HistoryEntry(
        id=str(epoch_millis(timestamp)),
        workflow_type=SourceKind(workflow_type),
        source_image=result.source_image,
        source_label=result.source_label,
        timestamp=timestamp,
        result=result,
    )


class HistoryCache:
    """
    Bounded history of recent analyses plus a single "active" slot.

    Key traits:
    - At most ``capacity`` entries, newest first; older ones are evicted
    - Entries are immutable and only leave by eviction or ``clear()``
    - The active slot is separate from the list and is not persisted
    """

    def __init__(
        self,
        storage: SessionStorage,
        storage_key: str = DEFAULT_HISTORY_KEY,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
    ):
        """
        :param storage: Session-scoped storage backend
        :param storage_key: Key the JSON array is stored under
        :param capacity: Maximum number of entries kept
        """
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")

        self._storage = storage
        self._storage_key = storage_key
        self._capacity = capacity
        self._entries: List[HistoryEntry] = self._load()
        self._active: Optional[HistoryEntry] = None

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def active(self) -> Optional[HistoryEntry]:
        return self._active

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def record(self, entry: HistoryEntry) -> bool:
        """
        Prepend an entry and evict beyond capacity.

        :param entry: Entry for a completed analysis with a source image
        :return: False if the entry was rejected
        """
        if not entry.source_image:
            logger.debug("Not recording history entry without a source image")
            return False

        entry = self._with_unique_id(entry)
        self._entries = [entry] + self._entries[:self._capacity - 1]
        logger.debug(f"History recorded {entry.id} ({len(self._entries)}/{self._capacity})")
        self._persist()
        return True

    def activate(self, entry_id: str) -> Optional[HistoryEntry]:
        """
        Mark an entry as the one the studio should display.

        :param entry_id: Id of an entry currently in the list
        :return: The activated entry, or None if unknown
        """
        entry = self.get(entry_id)
        if entry is None:
            logger.debug(f"Cannot activate unknown history entry {entry_id}")
            return None
        self._active = entry
        return entry

    def clear_active(self) -> None:
        self._active = None

    def clear(self) -> None:
        """Drop all entries and the active slot."""
        self._entries = []
        self._active = None
        self._persist()

    def _with_unique_id(self, entry: HistoryEntry) -> HistoryEntry:
        existing = {e.id for e in self._entries}
        if entry.id not in existing:
            return entry
        suffix = 1
        while f"{entry.id}-{suffix}" in existing:
            suffix += 1
        return replace(entry, id=f"{entry.id}-{suffix}")

    def _load(self) -> List[HistoryEntry]:
        try:
            raw = self._storage.get_item(self._storage_key)
        except HistoryStorageError as e:
            logger.warning(f"Could not read history, starting empty: {e}")
            return []

        if not raw:
            return []

        try:
            records = HISTORY_LIST_ADAPTER.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable history ({e.error_count()} errors)")
            return []
        except ValueError as e:
            logger.warning(f"Discarding undecodable history: {e}")
            return []

        entries = [record.to_entry() for record in records]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:self._capacity]

    def _persist(self) -> None:
        """
        Write the list to storage.

        On failure, retry once with only the newest entry, then give up.
        The in-memory list is kept intact either way.
        """
        try:
            self._write(self._entries)
            return
        except (HistoryStorageError, PydanticSerializationError) as e:
            if len(self._entries) <= 1:
                logger.warning(f"Could not persist history, keeping it in memory only: {e}")
                return
            logger.warning(f"Could not persist history, retrying with newest entry only: {e}")

        try:
            self._write(self._entries[:1])
        except (HistoryStorageError, PydanticSerializationError) as e:
            logger.warning(f"Giving up persisting history: {e}")

    def _write(self, entries: List[HistoryEntry]) -> None:
        records = [HistoryEntryRecord.from_entry(entry) for entry in entries]
        payload = HISTORY_LIST_ADAPTER.dump_json(records).decode("utf-8")
        self._storage.set_item(self._storage_key, payload)
