"""Tests for datetime parsing service."""

from datetime import datetime, timedelta, timezone

import pytest

from backend.services.datetime_service import format_iso, is_expired, now_utc, parse_datetime


class TestDatetimeParsing:
    def test_parse_full_format(self) -> None:
        result = parse_datetime("2026-02-02 22:21:29.975359+00")
        assert result.year == 2026
        assert result.month == 2
        assert result.day == 2
        assert result.hour == 22
        assert result.minute == 21

    def test_parse_date_only(self) -> None:
        result = parse_datetime("2026-02-02")
        assert result.year == 2026
        assert result.hour == 0
        assert result.tzinfo is not None

    def test_parse_datetime_naive_adds_tz(self) -> None:
        dt = datetime(2026, 1, 1, 12, 0)
        result = parse_datetime(dt, default_tz="UTC")
        assert result.tzinfo is not None

    def test_parse_invalid_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_datetime("not a date")

    def test_format_iso(self) -> None:
        dt = datetime(2026, 2, 2, 22, 21, 29, tzinfo=timezone.utc)
        assert format_iso(dt) == "2026-02-02T22:21:29+00:00"

    def test_format_iso_naive_is_utc(self) -> None:
        assert format_iso(datetime(2026, 2, 2)).endswith("+00:00")

    def test_now_utc(self) -> None:
        assert now_utc().tzinfo is not None


class TestIsExpired:
    def test_missing_or_garbage_is_expired(self) -> None:
        assert is_expired(None)
        assert is_expired("")
        assert is_expired("garbage")

    def test_past_is_expired(self) -> None:
        assert is_expired(format_iso(now_utc() - timedelta(minutes=5)))

    def test_within_leeway_is_expired(self) -> None:
        assert is_expired(format_iso(now_utc() + timedelta(seconds=30)))

    def test_future_is_not_expired(self) -> None:
        assert not is_expired(format_iso(now_utc() + timedelta(hours=1)))
