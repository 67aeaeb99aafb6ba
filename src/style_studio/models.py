"""
Domain models for the analysis workflow.

Pure data: no asyncio, no storage, no backend calls.
"""
from collections.abc import Mapping, Sized
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional


class SourceKind(str, Enum):
    """What the user asked us to analyze."""
    IMAGE_UPLOAD = "image-upload"
    CATALOG_ITEM = "catalog-item"


class WorkflowPhase(str, Enum):
    """Visible phase of one studio workflow."""
    IDLE = "idle"
    ANALYZING = "analyzing"
    RESULT = "result"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisRequest:
    """
    One analysis trigger.

    Never mutated after creation. Whether it is stale is decided by the
    controller that issued it, not stored here.
    """
    id: int
    source_kind: SourceKind
    source_ref: Any
    started_at: datetime
    source_label: Optional[str] = None
    source_image: Optional[str] = None


@dataclass(frozen=True)
class AnalysisResult:
    """Completed analysis as shown on the result screen."""
    source_image: Optional[str]
    source_label: Optional[str]
    payload: Any
    completed_at: datetime

    def has_payload(self) -> bool:
        """
        Check whether the backend returned anything worth showing.

        Mappings count as empty when every value is empty, e.g.
        ``{"internalProducts": [], "naverProducts": []}``.
        """
        return _is_non_empty(self.payload)


@dataclass(frozen=True)
class HistoryEntry:
    """Recent analysis kept in the history cache."""
    id: str
    workflow_type: SourceKind
    source_image: str
    source_label: Optional[str]
    timestamp: datetime
    result: AnalysisResult


@dataclass(frozen=True)
class SessionState:
    """Authenticated user session with a fixed lifetime."""
    token: str
    user_id: str
    display_name: str
    avatar_ref: Optional[str]
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def issue(
        cls,
        token: str,
        user_id: str,
        display_name: str,
        issued_at: datetime,
        ttl: timedelta,
        avatar_ref: Optional[str] = None,
    ) -> "SessionState":
        """Create a session that expires ``ttl`` after ``issued_at``."""
        return cls(
            token=token,
            user_id=user_id,
            display_name=display_name,
            avatar_ref=avatar_ref,
            issued_at=issued_at,
            expires_at=issued_at + ttl,
        )

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class BookmarkItem:
    """Saved catalog item. Identity is ``product_id``."""
    product_id: str
    created_at: Optional[datetime] = None
    style_name: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class NavigationState:
    """Snapshot attached to a result navigation entry."""
    result: AnalysisResult
    source_image: Optional[str]
    source_label: Optional[str]


def _is_non_empty(payload: Any) -> bool:
    if payload is None:
        return False
    if isinstance(payload, Mapping):
        return any(_is_non_empty(value) for value in payload.values())
    if isinstance(payload, Sized):
        return len(payload) > 0
    return True
