"""Unit tests for business date parsing."""

from datetime import date, datetime, timezone

import pytest

from inventory_kernel.domain.dates import (
    business_date_instant,
    parse_business_date,
)
from inventory_kernel.exceptions import InvalidDateError


class TestParseBusinessDate:

    def test_iso_string(self):
        assert parse_business_date("2024-03-15") == date(2024, 3, 15)

    def test_date_passes_through(self):
        d = date(2024, 3, 15)
        assert parse_business_date(d) is d

    @pytest.mark.parametrize(
        "value",
        ["15-03-2024", "2024/03/15", "2024-3-15", "2024-03-15T00:00:00", "", "yesterday"],
    )
    def test_wrong_shape_rejected(self, value):
        with pytest.raises(InvalidDateError) as exc_info:
            parse_business_date(value)
        assert exc_info.value.code == "INVALID_DATE"
        assert "Expected YYYY-MM-DD" in str(exc_info.value)

    def test_impossible_calendar_date_rejected(self):
        with pytest.raises(InvalidDateError):
            parse_business_date("2024-02-30")

    def test_datetime_rejected(self):
        with pytest.raises(InvalidDateError):
            parse_business_date(datetime(2024, 3, 15, 10, 0))

    def test_non_string_rejected(self):
        with pytest.raises(InvalidDateError):
            parse_business_date(20240315)


class TestBusinessDateInstant:

    def test_instant_is_noon_utc(self):
        instant = business_date_instant(date(2024, 1, 1))
        assert instant == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert instant.date() == date(2024, 1, 1)
