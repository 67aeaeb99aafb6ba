"""
History layer: bounded, persisted record of recent analyses.
"""
from .history_cache import DEFAULT_HISTORY_CAPACITY, HistoryCache, make_history_entry
from .storage import InMemorySessionStorage, JsonFileSessionStorage, SessionStorage

__all__ = [
    "DEFAULT_HISTORY_CAPACITY",
    "HistoryCache",
    "make_history_entry",
    "InMemorySessionStorage",
    "JsonFileSessionStorage",
    "SessionStorage",
]
