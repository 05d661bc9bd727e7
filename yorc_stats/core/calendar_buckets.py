"""
Calendar bucketing.

Maps raw grouping keys returned by storage onto the first calendar day
of their year, month or day bucket.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Union


@dataclass(frozen=True)
class TemporalCount:
    """Number of snapshots in one calendar bucket."""
    date: date
    count: int


def year_bucket_of(count: int, year: int) -> TemporalCount:
    """Bucket a yearly count on January 1st of its year."""
    return TemporalCount(date=date(int(year), 1, 1), count=count)


def month_bucket_of(raw_key: Union[str, int]) -> date:
    """Convert a "YYYYMM" key into the first day of that month.

    Args:
        raw_key: Fixed-width month key as produced by the grouped query

    Returns:
        Date of the first day of the month

    Raises:
        ValueError: If the key is shorter than six characters or not numeric
    """
    key = str(raw_key)
    if len(key) < 6:
        raise ValueError(f"Month key must have the form YYYYMM, got {key!r}")
    return date(int(key[0:4]), int(key[4:6]), 1)


def day_bucket_of(raw_date: Union[str, date, datetime]) -> date:
    """Normalize a day key into a date."""
    if isinstance(raw_date, datetime):
        return raw_date.date()
    if isinstance(raw_date, date):
        return raw_date
    return date.fromisoformat(raw_date)
