from datetime import datetime, timedelta, timezone

from app.core.time_utils import as_utc


def test_as_utc_converts_other_offsets():
    local = datetime(2026, 5, 1, 14, 30, tzinfo=timezone(timedelta(hours=2)))

    converted = as_utc(local)

    assert converted.utcoffset() == timedelta(0)
    assert converted.hour == 12
    assert converted == local


def test_as_utc_assumes_naive_values_are_utc():
    assert as_utc(datetime(2026, 5, 1, 12, 0)) == datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(None) is None
