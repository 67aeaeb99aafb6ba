"""
Serialized shapes.

Pydantic records validate anything that crosses a boundary: persisted history,
navigation snapshots and bookmark lists returned by the backend. Dataclasses in
models.py remain the in-memory representation.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .models import (
    AnalysisResult,
    BookmarkItem,
    HistoryEntry,
    NavigationState,
    SourceKind,
    WorkflowPhase,
)
from .utils.clock import ensure_utc


class AnalysisResultRecord(BaseModel):
    source_image: Optional[str] = None
    source_label: Optional[str] = None
    payload: Any = None
    completed_at: datetime

    @field_validator("completed_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResultRecord":
        return cls(
            source_image=result.source_image,
            source_label=result.source_label,
            payload=result.payload,
            completed_at=result.completed_at,
        )

    def to_result(self) -> AnalysisResult:
        return AnalysisResult(
            source_image=self.source_image,
            source_label=self.source_label,
            payload=self.payload,
            completed_at=self.completed_at,
        )


class HistoryEntryRecord(BaseModel):
    id: str = Field(min_length=1)
    workflow_type: SourceKind
    source_image: str = Field(min_length=1)
    source_label: Optional[str] = None
    timestamp: datetime
    result: AnalysisResultRecord

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> "HistoryEntryRecord":
        return cls(
            id=entry.id,
            workflow_type=entry.workflow_type,
            source_image=entry.source_image,
            source_label=entry.source_label,
            timestamp=entry.timestamp,
            result=AnalysisResultRecord.from_result(entry.result),
        )

    def to_entry(self) -> HistoryEntry:
        return HistoryEntry(
            id=self.id,
            workflow_type=self.workflow_type,
            source_image=self.source_image,
            source_label=self.source_label,
            timestamp=self.timestamp,
            result=self.result.to_result(),
        )


HISTORY_LIST_ADAPTER = TypeAdapter(List[HistoryEntryRecord])


class NavigationStateRecord(BaseModel):
    result: AnalysisResultRecord
    source_image: Optional[str] = None
    source_label: Optional[str] = None

    @classmethod
    def from_state(cls, state: NavigationState) -> "NavigationStateRecord":
        return cls(
            result=AnalysisResultRecord.from_result(state.result),
            source_image=state.source_image,
            source_label=state.source_label,
        )

    def to_state(self) -> NavigationState:
        return NavigationState(
            result=self.result.to_result(),
            source_image=self.source_image,
            source_label=self.source_label,
        )


class BookmarkRecord(BaseModel):
    """
    Bookmark as returned by the member service.

    Older payloads only carry ``naverProductId``; newer ones carry ``productId``.
    Unknown fields are kept and exposed through ``BookmarkItem.data``.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    product_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("productId", "product_id", "naverProductId"),
    )
    created_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at"),
    )
    style_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("savedStyleName", "styleName", "style_name"),
    )

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    def to_item(self) -> BookmarkItem:
        return BookmarkItem(
            product_id=self.product_id,
            created_at=self.created_at,
            style_name=self.style_name,
            data=dict(self.model_extra or {}),
        )


@dataclass
class WorkflowSnapshot:
    phase: WorkflowPhase
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    source_image: Optional[str] = None
    source_label: Optional[str] = None
    request_id: Optional[int] = None

    @property
    def is_busy(self) -> bool:
        return self.phase is WorkflowPhase.ANALYZING
