"""Tests for DAL persistence models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from shared.dal.models import ChatRecord, PersonalStats, ResultRecord


class TestResultRecord:
    def test_serialization_roundtrip(self):
        record = ResultRecord(
            id="42",
            nickname="podo",
            total_time=25.3,
            verification_time=4.1,
            round_times=(0.5, 0.6, 0.7, 0.8, 0.9),
            created_at=datetime(2026, 3, 2, 12, 0, tzinfo=UTC),
        )
        restored = ResultRecord.model_validate_json(record.model_dump_json())
        assert restored == record

    def test_negative_times_rejected(self):
        with pytest.raises(ValidationError):
            ResultRecord(
                nickname="podo",
                total_time=-1.0,
                verification_time=0.0,
                round_times=(),
                created_at=datetime(2026, 3, 2, tzinfo=UTC),
            )

    def test_frozen(self):
        record = ResultRecord(
            nickname="podo",
            total_time=1.0,
            verification_time=0.0,
            round_times=(),
            created_at=datetime(2026, 3, 2, tzinfo=UTC),
        )
        with pytest.raises(ValidationError):
            record.nickname = "other"


class TestChatRecord:
    def test_parses_store_timestamp(self):
        record = ChatRecord.model_validate(
            {"id": "7", "nickname": "podo", "message": "hi", "created_at": "2026-03-02T12:00:00.123456+00:00"},
        )
        assert record.created_at == datetime(2026, 3, 2, 12, 0, 0, 123456, tzinfo=UTC)


class TestPersonalStats:
    def test_empty_by_default(self):
        stats = PersonalStats()
        assert stats.best_time is None
        assert stats.average_time is None
        assert stats.nickname is None
