"""
User-facing notices.

The core never talks to a UI toolkit directly. Alerts and the sign-in redirect
go through a Notifier; NoticeBoard is the default in-process implementation.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol

from ..utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    created_at: datetime


class Notifier(Protocol):
    """Protocol for surfacing messages and redirects to the user."""
    def notify(self, level: NoticeLevel, message: str) -> None:
        ...

    def redirect_to_sign_in(self) -> None:
        ...


class NoticeBoard:
    """
    Collects notices for the UI to render.

    Every notice is also logged, so headless runs still leave a trace.
    """

    def __init__(self, clock: Clock = utc_now, max_notices: int = 50):
        """
        :param clock: Time source for notice timestamps
        :param max_notices: Oldest notices are dropped beyond this count
        """
        self._clock = clock
        self._max_notices = max_notices
        self._notices: List[Notice] = []
        self._redirects = 0

    def notify(self, level: NoticeLevel, message: str) -> None:
        notice = Notice(level=NoticeLevel(level), message=message, created_at=self._clock())
        self._notices.append(notice)
        if len(self._notices) > self._max_notices:
            self._notices = self._notices[-self._max_notices:]

        log_level = {
            NoticeLevel.INFO: logging.INFO,
            NoticeLevel.WARNING: logging.WARNING,
            NoticeLevel.ERROR: logging.ERROR,
        }[notice.level]
        logger.log(log_level, f"User notice: {message}")

    def redirect_to_sign_in(self) -> None:
        self._redirects += 1
        logger.info("Redirecting user to sign-in")

    @property
    def notices(self) -> List[Notice]:
        return list(self._notices)

    @property
    def redirect_count(self) -> int:
        return self._redirects

    def latest(self, level: Optional[NoticeLevel] = None) -> Optional[Notice]:
        """Most recent notice, optionally filtered by level."""
        for notice in reversed(self._notices):
            if level is None or notice.level is level:
                return notice
        return None

    def clear(self) -> None:
        self._notices.clear()
        self._redirects = 0
