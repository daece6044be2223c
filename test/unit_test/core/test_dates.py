"""Unit tests for the date helpers."""

from datetime import date, datetime, timedelta, timezone

import pytest

from loopwell.core.dates import from_epoch_millis, parse_day_or_datetime, parse_iso, to_naive_utc, utc_now


class TestParseDayOrDatetime:
    @pytest.mark.parametrize(
        "value,boundary,expected",
        [
            ("2024-03-05", "start", datetime(2024, 3, 5, 0, 0, 0)),
            ("2024-03-05", "end", datetime(2024, 3, 5, 23, 59, 59, 999000)),
            ("05.03.2024", "start", datetime(2024, 3, 5, 0, 0, 0)),
            ("05.03.2024", "end", datetime(2024, 3, 5, 23, 59, 59, 999000)),
        ],
    )
    def test_date_only_values_expand_to_day_boundaries(self, value, boundary, expected):
        assert parse_day_or_datetime(value, boundary) == expected

    def test_full_datetime_is_kept(self):
        assert parse_day_or_datetime("2024-03-05T10:30:00", "end") == datetime(2024, 3, 5, 10, 30)

    def test_offset_datetime_is_converted_to_naive_utc(self):
        assert parse_day_or_datetime("2024-03-05T10:30:00+02:00", "start") == datetime(2024, 3, 5, 8, 30)
        assert parse_day_or_datetime("2024-03-05T10:30:00Z", "start") == datetime(2024, 3, 5, 10, 30)

    def test_date_and_datetime_objects(self):
        assert parse_day_or_datetime(date(2024, 1, 2), "end") == datetime(2024, 1, 2, 23, 59, 59, 999000)
        aware = datetime(2024, 1, 2, 12, 0, tzinfo=timezone(timedelta(hours=1)))
        assert parse_day_or_datetime(aware, "start") == datetime(2024, 1, 2, 11, 0)

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_values(self, value):
        assert parse_day_or_datetime(value, "start") is None

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError, match="Invalid date"):
            parse_day_or_datetime("next tuesday", "start")


class TestEpochAndIso:
    def test_from_epoch_millis(self):
        assert from_epoch_millis("1700000000000") == datetime(2023, 11, 14, 22, 13, 20)
        assert from_epoch_millis(0) == datetime(1970, 1, 1)

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_from_epoch_millis_unparseable(self, value):
        assert from_epoch_millis(value) is None

    def test_parse_iso(self):
        assert parse_iso("2024-06-01T12:00:00Z") == datetime(2024, 6, 1, 12, 0)
        assert parse_iso("garbage") is None
        assert parse_iso(None) is None


def test_utc_now_is_naive():
    now = utc_now()
    assert now.tzinfo is None
    assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)


def test_to_naive_utc_leaves_naive_values():
    value = datetime(2024, 1, 1, 9, 0)
    assert to_naive_utc(value) is value
