"""Tests for UTCDateTime round-tripping through the database."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import StatementError

from escrow_kernel.db.types import UTCDateTime
from escrow_kernel.models.ledger import SETTINGS_ROW_ID, LedgerSettingsRecord


def _settings(created_at):
    return LedgerSettingsRecord(
        id=SETTINGS_ROW_ID,
        owner="platform",
        platform_fee_pct=5,
        created_at=created_at,
        updated_at=created_at,
    )


class TestUTCDateTime:
    def test_offset_normalized_to_utc(self, session):
        local = datetime(2025, 3, 1, 9, 30, tzinfo=timezone(timedelta(hours=2)))
        session.add(_settings(local))
        session.commit()
        session.expire_all()

        stored = session.get(LedgerSettingsRecord, SETTINGS_ROW_ID)
        assert stored.created_at == local
        assert stored.created_at.utcoffset() == timedelta(0)
        assert stored.created_at.hour == 7

    def test_naive_datetime_rejected(self, session):
        session.add(_settings(datetime(2025, 3, 1, 9, 30)))
        with pytest.raises(StatementError) as exc_info:
            session.flush()
        assert isinstance(exc_info.value.orig, ValueError)

    def test_none_passes_through(self):
        col = UTCDateTime()
        assert col.process_result_value(None, None) is None

    def test_naive_result_tagged_utc(self):
        value = UTCDateTime().process_result_value(datetime(2025, 1, 1), None)
        assert value.tzinfo is UTC
