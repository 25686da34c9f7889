"""Tests for export period computation."""

from datetime import datetime, timedelta, timezone

import pytest

from ticketbooks.periods import (
    InvalidPeriodError,
    export_period,
    last_monday,
    period_start,
    utc_offset,
)


class TestLastMonday:
    """Tests for last_monday."""

    @pytest.mark.parametrize("hours", [-11, -5, 0, 1, 2, 9, 14])
    def test_is_monday_midnight(self, hours):
        offset = utc_offset(hours)
        result = last_monday(offset)

        assert result.weekday() == 0
        assert (result.hour, result.minute, result.second, result.microsecond) == (0, 0, 0, 0)
        assert result.utcoffset() == timedelta(hours=hours)
        assert result <= datetime.now(timezone.utc)

    def test_on_monday_returns_today(self):
        now = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)  # a Monday
        assert last_monday(utc_offset(0), now) == datetime(2024, 1, 15, tzinfo=utc_offset(0))

    def test_on_sunday_returns_six_days_back(self):
        now = datetime(2024, 1, 21, 23, 0, tzinfo=utc_offset(1))  # a Sunday
        assert last_monday(utc_offset(1), now) == datetime(2024, 1, 15, tzinfo=utc_offset(1))

    def test_uses_local_date(self):
        # Sunday 23:30 UTC is already Monday in CET
        now = datetime(2024, 1, 14, 23, 30, tzinfo=timezone.utc)
        assert last_monday(utc_offset(1), now) == datetime(2024, 1, 15, tzinfo=utc_offset(1))


class TestPeriodStart:
    """Tests for period_start."""

    def test_one_period_ago(self):
        now = datetime(2024, 1, 17, 12, 0, tzinfo=utc_offset(1))  # Wednesday
        assert period_start(utc_offset(1), 1, now) == datetime(2024, 1, 8, tzinfo=utc_offset(1))

    def test_three_periods_ago(self):
        now = datetime(2024, 1, 17, 12, 0, tzinfo=utc_offset(1))
        assert period_start(utc_offset(1), 3, now) == datetime(
            2023, 12, 25, tzinfo=utc_offset(1)
        )

    def test_zero_is_rejected(self):
        with pytest.raises(InvalidPeriodError):
            period_start(utc_offset(1), 0)


class TestExportPeriod:
    """Tests for export_period."""

    @pytest.mark.parametrize("hours", [-8, 0, 1, 2, 12])
    def test_window_is_monday_to_sunday(self, hours):
        offset = utc_offset(hours)
        start, end = export_period(period_start(offset, 1), offset)

        assert start.weekday() == 0
        assert end.weekday() == 6
        assert end - start == timedelta(days=6)
        assert start.hour == end.hour == 0
        assert start.utcoffset() == end.utcoffset() == timedelta(hours=hours)

    def test_rejects_non_monday(self):
        tuesday = datetime(2024, 1, 9, tzinfo=utc_offset(1))

        with pytest.raises(InvalidPeriodError, match="Tuesday"):
            export_period(tuesday, utc_offset(1))

    def test_time_is_reset_to_midnight(self):
        monday_noon = datetime(2024, 1, 8, 12, 0, tzinfo=utc_offset(1))
        start, end = export_period(monday_noon, utc_offset(1))

        assert start == datetime(2024, 1, 8, tzinfo=utc_offset(1))
        assert end == datetime(2024, 1, 14, tzinfo=utc_offset(1))
