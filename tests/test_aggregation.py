"""
Unit tests for temporal aggregations.

Tests bucketing, ordering, the open lower bound and the per-category
reshaping of grouped rows.
"""

import json
import os
import random
import tempfile
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from yorc_stats.core.aggregation import (
    TemporalDistribution,
    count_all,
    count_by_category_per_month,
    count_by_day,
    count_by_month,
    count_by_year,
    resolve_category
)
from yorc_stats.core.calendar_buckets import TemporalCount
from yorc_stats.core.ingestion import IngestionPipeline
from yorc_stats.demo.seed_demo_data import generate_fake_records
from yorc_stats.storage.models import YoRC
from yorc_stats.storage.repository import YoRCRepository, initialize_schema

EPOCH = datetime(2000, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def repository():
    """Repository backed by a fresh temporary database."""
    with tempfile.TemporaryDirectory() as temp_dir:
        db_path = os.path.join(temp_dir, "test.db")
        initialize_schema(db_path)
        yield YoRCRepository(db_path)


def _save(repository, created: datetime, **options) -> int:
    return repository.save(YoRC(creation_date=created, **options))


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestCountByYear:
    """Test yearly counts."""

    def test_years_ascending_with_counts(self, repository):
        """Years are sorted and dated January 1st."""
        _save(repository, _utc(2024, 5, 1))
        _save(repository, _utc(2022, 1, 1, 0, 0, 1))
        _save(repository, _utc(2024, 12, 31, 23, 59))

        assert count_by_year(repository, EPOCH) == [
            TemporalCount(date=date(2022, 1, 1), count=1),
            TemporalCount(date=date(2024, 1, 1), count=2),
        ]

    def test_counts_sum_to_records_after_since(self, repository):
        """Yearly counts add up to the number of snapshots after the bound."""
        records = generate_fake_records(60, random.Random(7), now=_utc(2024, 6, 1))
        for record in records:
            repository.save(record)
        since = _utc(2023, 6, 1)

        counts = count_by_year(repository, since)
        expected = sum(1 for r in records if r.creation_date > since)
        assert sum(c.count for c in counts) == expected
        assert [c.date for c in counts] == sorted(c.date for c in counts)

    def test_empty_storage(self, repository):
        """No snapshots give an empty list."""
        assert count_by_year(repository, EPOCH) == []


class TestCountByMonth:
    """Test monthly counts."""

    def test_months_keyed_by_first_day(self, repository):
        """Snapshots are bucketed on the first day of their month."""
        _save(repository, _utc(2024, 1, 31, 23, 59))
        _save(repository, _utc(2024, 2, 1))
        _save(repository, _utc(2024, 2, 29, 12))

        result = count_by_month(repository, EPOCH)
        assert result == {date(2024, 1, 1): 1, date(2024, 2, 1): 2}
        assert list(result) == [date(2024, 1, 1), date(2024, 2, 1)]

    def test_month_order_follows_storage(self):
        """Keys keep the order rows come back in."""
        storage = MagicMock()
        storage.count_by_month.return_value = [("202402", 4), ("202311", 1)]
        result = count_by_month(storage, EPOCH)
        assert list(result.items()) == [(date(2024, 2, 1), 4), (date(2023, 11, 1), 1)]

    def test_empty_storage(self, repository):
        """No snapshots give an empty mapping."""
        assert count_by_month(repository, EPOCH) == {}


class TestCountByDay:
    """Test daily counts."""

    def test_days_ascending(self, repository):
        """Days are counted and ordered chronologically."""
        _save(repository, _utc(2024, 3, 2, 8))
        _save(repository, _utc(2024, 3, 1, 8))
        _save(repository, _utc(2024, 3, 2, 20))

        result = count_by_day(repository, EPOCH)
        assert list(result.items()) == [(date(2024, 3, 1), 1), (date(2024, 3, 2), 2)]

    def test_bucketing_uses_utc_day(self, repository):
        """Offsets are normalised to UTC before bucketing."""
        tokyo = timezone(timedelta(hours=9))
        _save(repository, datetime(2024, 3, 2, 5, 0, tzinfo=tokyo))
        assert count_by_day(repository, EPOCH) == {date(2024, 3, 1): 1}


class TestSinceBound:
    """Test the exclusive lower bound shared by every aggregation."""

    def test_record_at_bound_is_excluded(self, repository):
        """A snapshot created exactly at `since` is not counted."""
        bound = _utc(2024, 4, 10, 12)
        _save(repository, bound, client_framework="react")
        _save(repository, bound + timedelta(seconds=1), client_framework="react")

        assert sum(c.count for c in count_by_year(repository, bound)) == 1
        assert count_by_month(repository, bound) == {date(2024, 4, 1): 1}
        assert count_by_day(repository, bound) == {date(2024, 4, 10): 1}
        assert count_by_category_per_month(repository, bound)[0].values == {"react": 1}

    def test_future_since_is_empty(self, repository):
        """A bound in the future yields empty results everywhere."""
        _save(repository, datetime.now(timezone.utc))
        future = datetime.now(timezone.utc) + timedelta(days=1)

        assert count_by_year(repository, future) == []
        assert count_by_month(repository, future) == {}
        assert count_by_day(repository, future) == {}
        assert count_by_category_per_month(repository, future) == []

    def test_naive_since_is_taken_as_utc(self, repository):
        """Naive bounds compare like their UTC equivalent."""
        _save(repository, _utc(2024, 1, 1, 10))
        assert count_by_month(repository, datetime(2024, 1, 1, 9)) == {date(2024, 1, 1): 1}
        assert count_by_month(repository, datetime(2024, 1, 1, 10)) == {}


class TestCountByCategoryPerMonth:
    """Test the per-month category breakdown."""

    def test_breakdown_per_month(self, repository):
        """Each month lists its category values with counts."""
        _save(repository, _utc(2024, 1, 5), client_framework="react")
        _save(repository, _utc(2024, 1, 6), client_framework="angularX")
        _save(repository, _utc(2024, 2, 1), client_framework="react")
        _save(repository, _utc(2024, 2, 2), client_framework="react")

        assert count_by_category_per_month(repository, EPOCH) == [
            TemporalDistribution(date=date(2024, 1, 1), values={"angularX": 1, "react": 1}),
            TemporalDistribution(date=date(2024, 2, 1), values={"react": 2}),
        ]

    def test_other_category(self, repository):
        """Any categorical field can be broken down."""
        _save(repository, _utc(2024, 1, 5), build_tool="maven")
        _save(repository, _utc(2024, 1, 6), build_tool="gradle")
        _save(repository, _utc(2024, 1, 7), build_tool="maven")

        result = count_by_category_per_month(repository, EPOCH, category="buildTool")
        assert result[0].values == {"gradle": 1, "maven": 2}

    def test_missing_values_grouped_under_empty_string(self, repository):
        """Snapshots without a value are counted under the default."""
        _save(repository, _utc(2024, 1, 5))
        result = count_by_category_per_month(repository, EPOCH)
        assert result[0].values == {"": 1}

    def test_months_in_first_appearance_order(self):
        """Months appear once, in the order their rows first appear."""
        storage = MagicMock()
        storage.count_by_category_by_month.return_value = [
            ("202403", "react", 2),
            ("202401", "vue", 1),
            ("202403", "angularX", 1),
        ]
        result = count_by_category_per_month(storage, EPOCH)

        assert [d.date for d in result] == [date(2024, 3, 1), date(2024, 1, 1)]
        assert result[0].values == {"react": 2, "angularX": 1}
        storage.count_by_category_by_month.assert_called_once_with("client_framework", EPOCH)

    def test_sums_match_monthly_totals(self, repository):
        """Category counts within a month add up to the monthly count."""
        for record in generate_fake_records(80, random.Random(3), now=_utc(2024, 6, 1), span_days=200):
            repository.save(record)
        since = _utc(2024, 1, 15)

        monthly = count_by_month(repository, since)
        distributions = count_by_category_per_month(repository, since)
        assert {d.date: d.total for d in distributions} == monthly

    def test_empty_storage(self, repository):
        """No snapshots give an empty list."""
        assert count_by_category_per_month(repository, EPOCH) == []

    def test_unknown_category_rejected(self, repository):
        """Flags and unknown names are not categories."""
        with pytest.raises(ValueError, match="not a categorical field"):
            count_by_category_per_month(repository, EPOCH, category="useSass")
        with pytest.raises(ValueError):
            count_by_category_per_month(repository, EPOCH, category="colour")


class TestResolveCategory:
    """Test category name resolution."""

    def test_generator_key(self):
        """Generator keys map to column names."""
        assert resolve_category("clientFramework") == "client_framework"

    def test_column_name(self):
        """Column names are accepted as-is."""
        assert resolve_category("prod_database_type") == "prod_database_type"


class TestProperties:
    """Test whole-dataset properties."""

    def test_aggregations_are_idempotent(self, repository):
        """Repeated calls without new data give identical output."""
        for record in generate_fake_records(40, random.Random(11), now=_utc(2024, 6, 1)):
            repository.save(record)

        for aggregate in (count_by_year, count_by_month, count_by_day, count_by_category_per_month):
            assert aggregate(repository, EPOCH) == aggregate(repository, EPOCH)

    def test_three_documents_in_one_month(self, repository):
        """react, angularX, react in one month give 2 and 1."""
        moments = iter([_utc(2024, 5, 3), _utc(2024, 5, 10), _utc(2024, 5, 20)])
        pipeline = IngestionPipeline(repository, clock=lambda: next(moments))
        for framework in ["react", "angularX", "react"]:
            document = json.dumps({"generator-jhipster": {"clientFramework": framework}})
            assert pipeline.ingest(document).succeeded

        assert count_by_category_per_month(repository, EPOCH) == [
            TemporalDistribution(date=date(2024, 5, 1), values={"react": 2, "angularX": 1})
        ]
        assert count_by_month(repository, EPOCH) == {date(2024, 5, 1): 3}

    def test_deleted_record_disappears(self, repository):
        """Deleting a snapshot removes it from every count."""
        keep = _save(repository, _utc(2024, 5, 3), client_framework="react")
        drop = _save(repository, _utc(2023, 2, 3), client_framework="vue")
        assert count_all(repository) == 2

        repository.delete(drop)

        assert count_all(repository) == 1
        assert count_by_year(repository, EPOCH) == [TemporalCount(date=date(2024, 1, 1), count=1)]
        assert count_by_month(repository, EPOCH) == {date(2024, 5, 1): 1}
        assert count_by_day(repository, EPOCH) == {date(2024, 5, 3): 1}
        assert count_by_category_per_month(repository, EPOCH)[0].values == {"react": 1}
        assert repository.find_one(keep) is not None
