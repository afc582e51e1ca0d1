"""Tests for rootwatch.utils.datetime — telemetry date helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from rootwatch.utils.datetime import (
    date_to_epoch_ms,
    parse_telemetry_date,
    to_utc,
)


class TestParseTelemetryDate:
    def test_compact_format(self):
        assert parse_telemetry_date("20150607") == date(2015, 6, 7)

    def test_iso_format(self):
        assert parse_telemetry_date("2015-06-07") == date(2015, 6, 7)

    def test_date_passthrough(self):
        value = date(2015, 6, 7)
        assert parse_telemetry_date(value) is value

    def test_datetime_converted_to_utc_date(self):
        dt = datetime(2015, 6, 7, 23, 30, tzinfo=timezone(timedelta(hours=-2)))
        assert parse_telemetry_date(dt) == date(2015, 6, 8)

    def test_invalid_returns_none(self):
        assert parse_telemetry_date("June 7") is None
        assert parse_telemetry_date("") is None
        assert parse_telemetry_date(None) is None


def test_date_to_epoch_ms():
    assert date_to_epoch_ms(date(1970, 1, 2)) == 86_400_000


def test_to_utc_naive():
    dt = to_utc(datetime(2015, 1, 1, 8))
    assert dt.tzinfo == timezone.utc
    assert dt.hour == 8
