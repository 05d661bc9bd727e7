"""
Temporal distributions over stored snapshots.

Grouping happens in the database; this module turns the grouped rows
into calendar-keyed series for reporting. Every operation counts only
snapshots created strictly after `since`.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List

from .calendar_buckets import (
    TemporalCount,
    day_bucket_of,
    month_bucket_of,
    year_bucket_of
)
from .decoder import FIELD_NAMES_BY_JSON_KEY
from .logging_config import get_logger
from yorc_stats.storage.models import category_columns
from yorc_stats.storage.repository import YoRCRepository

_LOGGER = get_logger(__name__)

DEFAULT_CATEGORY = "client_framework"


@dataclass
class TemporalDistribution:
    """Per-category counts within one month."""
    date: date
    values: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.values.values())


def resolve_category(category: str) -> str:
    """Map a category given as attribute name or generator key to its column.

    Raises:
        ValueError: If the name is not a categorical text field
    """
    name = FIELD_NAMES_BY_JSON_KEY.get(category, category)
    if name not in category_columns():
        raise ValueError(f"'{category}' is not a categorical field")
    return name


def count_all(repository: YoRCRepository) -> int:
    """Total number of stored snapshots."""
    return repository.count_all()


def count_by_year(repository: YoRCRepository, since: datetime) -> List[TemporalCount]:
    """Snapshot counts per calendar year, oldest year first."""
    rows = repository.count_by_year(since)
    return [year_bucket_of(count, year) for year, count in rows]


def count_by_month(repository: YoRCRepository, since: datetime) -> Dict[date, int]:
    """Snapshot counts keyed by the first day of each month.

    Keys follow the order rows come back from storage (ascending).
    """
    rows = repository.count_by_month(since)
    return {month_bucket_of(key): count for key, count in rows}


def count_by_day(repository: YoRCRepository, since: datetime) -> Dict[date, int]:
    """Snapshot counts keyed by calendar day, in storage order."""
    rows = repository.count_by_day(since)
    return {day_bucket_of(key): count for key, count in rows}


def count_by_category_per_month(
    repository: YoRCRepository,
    since: datetime,
    category: str = DEFAULT_CATEGORY
) -> List[TemporalDistribution]:
    """Break each month's count down by the values of one category.

    Args:
        repository: Storage to query
        since: Exclusive lower bound on creation date
        category: Categorical field, e.g. "client_framework" or "clientFramework"

    Returns:
        One distribution per month, in the order the month first appears
        in the grouped rows
    """
    column = resolve_category(category)
    rows = repository.count_by_category_by_month(column, since)

    distributions: Dict[str, TemporalDistribution] = {}
    for month_key, value, count in rows:
        distribution = distributions.get(month_key)
        if distribution is None:
            distribution = TemporalDistribution(date=month_bucket_of(month_key))
            distributions[month_key] = distribution
        distribution.values[value] = distribution.values.get(value, 0) + count

    _LOGGER.debug(
        "category_distribution_computed",
        category=column,
        rows=len(rows),
        months=len(distributions)
    )
    return list(distributions.values())
