"""
Unit tests for calendar bucketing.
"""

from datetime import date, datetime

import pytest

from yorc_stats.core.calendar_buckets import (
    TemporalCount,
    day_bucket_of,
    month_bucket_of,
    year_bucket_of
)


class TestYearBucket:
    """Test yearly buckets."""

    def test_year_bucket_starts_on_january_first(self):
        """Year buckets are dated January 1st."""
        assert year_bucket_of(12, 2023) == TemporalCount(date=date(2023, 1, 1), count=12)

    def test_year_bucket_accepts_numeric_text(self):
        """Years coming back as text from storage are accepted."""
        assert year_bucket_of(1, "2019").date == date(2019, 1, 1)


class TestMonthBucket:
    """Test monthly buckets."""

    def test_month_key_maps_to_first_day(self):
        """A YYYYMM key maps to the first day of its month."""
        assert month_bucket_of("202403") == date(2024, 3, 1)

    def test_december_key(self):
        """December keys are not confused with the following year."""
        assert month_bucket_of("201912") == date(2019, 12, 1)

    def test_integer_key(self):
        """Integer keys are treated like their text form."""
        assert month_bucket_of(202401) == date(2024, 1, 1)

    def test_short_key_is_rejected(self):
        """Keys shorter than six characters are malformed."""
        with pytest.raises(ValueError, match="YYYYMM"):
            month_bucket_of("2024")

    def test_invalid_month_is_rejected(self):
        """Out-of-range months are rejected."""
        with pytest.raises(ValueError):
            month_bucket_of("202413")


class TestDayBucket:
    """Test daily buckets."""

    def test_iso_text(self):
        """ISO day text from storage becomes a date."""
        assert day_bucket_of("2024-02-29") == date(2024, 2, 29)

    def test_datetime_is_truncated(self):
        """Datetimes keep only their calendar day."""
        assert day_bucket_of(datetime(2024, 5, 6, 23, 59)) == date(2024, 5, 6)

    def test_date_is_unchanged(self):
        """Dates pass through untouched."""
        assert day_bucket_of(date(2021, 7, 1)) == date(2021, 7, 1)
