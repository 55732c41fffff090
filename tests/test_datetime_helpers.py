"""Tests for datetime helpers and UTC serialization."""
from datetime import datetime, timedelta, timezone, UTC

from cardsurvey.schemas.base import serialize_datetime_utc
from cardsurvey.utils.datetime_helpers import ensure_utc


def test_ensure_utc_marks_naive_values_as_utc():
    naive = datetime(2025, 6, 1, 8, 30)
    assert ensure_utc(naive) == datetime(2025, 6, 1, 8, 30, tzinfo=UTC)
    assert ensure_utc(None) is None


def test_ensure_utc_keeps_aware_values():
    aware = datetime(2025, 6, 1, 8, 30, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_utc(aware) is aware


def test_serialize_uses_z_suffix():
    assert serialize_datetime_utc(datetime(2025, 6, 1, 8, 30)) == "2025-06-01T08:30:00Z"
    shifted = datetime(2025, 6, 1, 10, 30, tzinfo=timezone(timedelta(hours=2)))
    assert serialize_datetime_utc(shifted) == "2025-06-01T08:30:00Z"
