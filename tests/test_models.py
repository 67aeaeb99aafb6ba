"""
Tests for domain models and their serialized records.
"""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from style_studio.models import AnalysisResult, BookmarkItem, NavigationState, SessionState, WorkflowPhase
from style_studio.schemas import (
    BookmarkRecord,
    HistoryEntryRecord,
    NavigationStateRecord,
    WorkflowSnapshot,
)
from conftest import START


def result_with(payload):
    return AnalysisResult(source_image=None, source_label=None, payload=payload, completed_at=START)


class TestAnalysisResult:
    @pytest.mark.parametrize("payload", [
        {"internalProducts": [{"productId": "P1"}], "naverProducts": []},
        [1],
        "text",
        0,
    ])
    def test_has_payload(self, payload):
        assert result_with(payload).has_payload()

    @pytest.mark.parametrize("payload", [
        None,
        {},
        [],
        "",
        {"internalProducts": [], "naverProducts": []},
        {"outer": {"inner": []}},
    ])
    def test_empty_payload(self, payload):
        assert not result_with(payload).has_payload()


class TestSessionState:
    def test_expiry_boundary(self):
        session = SessionState.issue("tok", "u1", "Mina", issued_at=START, ttl=timedelta(hours=6))

        assert not session.is_expired(START + timedelta(hours=6))
        assert session.is_expired(START + timedelta(hours=6, milliseconds=1))


class TestBookmarkItem:
    def test_identity_ignores_extra_data(self):
        a = BookmarkItem("P1", START, "Minimal", data={"brand": "Acme"})
        b = BookmarkItem("P1", START, "Minimal", data={})
        assert a == b


class TestBookmarkRecord:
    def test_accepts_legacy_key(self):
        item = BookmarkRecord.model_validate({"naverProductId": 123}).to_item()
        assert item.product_id == "123"
        assert item.created_at is None

    def test_new_key_and_style(self):
        item = BookmarkRecord.model_validate({
            "productId": "P1",
            "createdAt": "2024-05-01T12:00:00+09:00",
            "savedStyleName": "Minimal",
        }).to_item()

        assert item.style_name == "Minimal"
        assert item.created_at == datetime(2024, 5, 1, 3, tzinfo=timezone.utc)

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError):
            BookmarkRecord.model_validate({"createdAt": "2024-05-01T12:00:00Z"})


class TestRecords:
    def test_history_entry_requires_image(self):
        with pytest.raises(ValidationError):
            HistoryEntryRecord.model_validate({
                "id": "1",
                "workflow_type": "catalog-item",
                "source_image": "",
                "timestamp": "2024-05-01T12:00:00Z",
                "result": {"completed_at": "2024-05-01T12:00:00Z"},
            })

    def test_navigation_state_json_roundtrip(self):
        state = NavigationState(
            result=result_with({"internalProducts": [{"productId": "P1"}]}),
            source_image="https://cdn.example.com/a.jpg",
            source_label="Shirt",
        )
        dumped = NavigationStateRecord.from_state(state).model_dump(mode="json")

        assert dumped["result"]["completed_at"].startswith("2024-05-01T12:00:00")
        assert NavigationStateRecord.model_validate(dumped).to_state() == state

    def test_naive_timestamps_become_utc(self):
        record = NavigationStateRecord.model_validate(
            {"result": {"completed_at": "2024-05-01T12:00:00"}}
        )
        assert record.result.completed_at.tzinfo is not None


class TestWorkflowSnapshot:
    def test_is_busy(self):
        assert WorkflowSnapshot(phase=WorkflowPhase.ANALYZING).is_busy
        assert not WorkflowSnapshot(phase=WorkflowPhase.RESULT).is_busy
