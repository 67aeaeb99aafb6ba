"""
Navigation history.

Explicit back/forward stack with attached state, modelled on the browser
History API: push and replace never fire listeners; back, forward and go do.
"""
import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationEntry:
    url: str
    state: Optional[Dict[str, Any]] = None

    def query_params(self) -> Dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query, keep_blank_values=True))

    def has_param(self, name: str) -> bool:
        return name in self.query_params()


PopStateListener = Callable[[NavigationEntry], None]


def with_query_param(url: str, name: str, value: str) -> str:
    """Return ``url`` with query parameter ``name`` set to ``value``."""
    parts = urlsplit(url)
    params = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    params.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(params)))


def without_query_param(url: str, name: str) -> str:
    """Return ``url`` with every occurrence of query parameter ``name`` removed."""
    parts = urlsplit(url)
    params = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    return urlunsplit(parts._replace(query=urlencode(params)))


class NavigationHistory:
    """
    In-process navigation stack.

    Key traits:
    - ``push_state`` drops any forward entries, like a browser
    - State is deep-copied on the way in, so callers cannot mutate history
    - Popstate listeners fire only for back/forward/go traversal
    """

    def __init__(self, initial_url: str = "/"):
        """
        :param initial_url: URL of the first entry
        """
        self._entries: List[NavigationEntry] = [NavigationEntry(url=initial_url)]
        self._index = 0
        self._listeners: List[PopStateListener] = []

    @property
    def current(self) -> NavigationEntry:
        return self._entries[self._index]

    @property
    def length(self) -> int:
        return len(self._entries)

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._entries) - 1

    def add_popstate_listener(self, listener: PopStateListener) -> None:
        self._listeners.append(listener)

    def remove_popstate_listener(self, listener: PopStateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def push_state(self, state: Optional[Dict[str, Any]], url: Optional[str] = None) -> NavigationEntry:
        entry = NavigationEntry(url=url or self.current.url, state=copy.deepcopy(state))
        del self._entries[self._index + 1:]
        self._entries.append(entry)
        self._index += 1
        logger.debug(f"Navigation push: {entry.url}")
        return entry

    def replace_state(self, state: Optional[Dict[str, Any]], url: Optional[str] = None) -> NavigationEntry:
        entry = NavigationEntry(url=url or self.current.url, state=copy.deepcopy(state))
        self._entries[self._index] = entry
        logger.debug(f"Navigation replace: {entry.url}")
        return entry

    def back(self) -> bool:
        return self.go(-1)

    def forward(self) -> bool:
        return self.go(1)

    def go(self, delta: int) -> bool:
        """
        Move ``delta`` entries and fire popstate.

        :return: False if the move would leave the stack (nothing happens)
        """
        target = self._index + delta
        if delta == 0 or target < 0 or target >= len(self._entries):
            return False

        self._index = target
        entry = self.current
        logger.debug(f"Navigation popstate: {entry.url}")
        for listener in list(self._listeners):
            listener(entry)
        return True
