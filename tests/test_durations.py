"""Tests for duration parsing."""

from datetime import timedelta

import pytest

from folio import InvalidDurationError
from folio.durations import format_duration, parse_duration


class TestParseDuration:
    """Test parse_duration."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1s", timedelta(seconds=1)),
            ("500ms", timedelta(milliseconds=500)),
            ("1.5s", timedelta(seconds=1.5)),
            ("90m", timedelta(minutes=90)),
            ("168h", timedelta(hours=168)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("2d", timedelta(days=2)),
            ("1w", timedelta(weeks=1)),
            ("1m1ms", timedelta(minutes=1, milliseconds=1)),
            ("90", timedelta(seconds=90)),
            ("  10s  ", timedelta(seconds=10)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["abc", "1x", "h", "1h 30m", "-1s", "1h-", "s1"])
    def test_malformed(self, text):
        with pytest.raises(InvalidDurationError, match="invalid duration"):
            parse_duration(text)

    @pytest.mark.parametrize("text", ["0", "0s", "0h0m"])
    def test_zero_rejected(self, text):
        with pytest.raises(InvalidDurationError, match="must be positive"):
            parse_duration(text)

    @pytest.mark.parametrize("text", ["99999999999h", "9" * 400])
    def test_too_large_rejected(self, text):
        with pytest.raises(InvalidDurationError, match="duration too large"):
            parse_duration(text)

    def test_empty_rejected(self):
        with pytest.raises(InvalidDurationError, match="empty duration"):
            parse_duration("   ")


class TestFormatDuration:
    """Test format_duration."""

    @pytest.mark.parametrize(
        ("duration", "expected"),
        [
            (timedelta(hours=168), "168h"),
            (timedelta(hours=1, minutes=30), "1h30m"),
            (timedelta(milliseconds=500), "500ms"),
            (timedelta(seconds=61), "1m1s"),
            (timedelta(0), "0s"),
        ],
    )
    def test_format(self, duration, expected):
        assert format_duration(duration) == expected
