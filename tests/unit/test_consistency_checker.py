"""
Unit Tests for the Consistency Checker.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from src.integrity.consistency_checker import ConsistencyChecker, years_before
from src.integrity.models import EntityType, IntegrityStatus, Severity
from src.integrity.validation_config import default_validation_config
from tests.factories import (
    NOW,
    build_repositories,
    fixed_clock,
    make_brokerage,
    make_company,
    make_rating,
)


def _checker(companies=(), brokerages=(), ratings=(), sink=None, config=None) -> ConsistencyChecker:
    repos = build_repositories(companies, brokerages, ratings)
    return ConsistencyChecker(
        *repos, config or default_validation_config(), sink or MagicMock(), clock=fixed_clock
    )


def _fields(items) -> set[str]:
    return {item.field for item in items}


class TestConsistencyChecker:
    """Test cases for ConsistencyChecker."""

    @pytest.mark.asyncio
    async def test_clean_data(self, clean_data, mock_sink: MagicMock) -> None:
        checker = _checker(
            clean_data["companies"], clean_data["brokerages"], clean_data["ratings"], mock_sink
        )

        report = await checker.detect_inconsistencies()

        assert report.total_inconsistencies == 0
        assert report.status == IntegrityStatus.GOOD

    # =========================================================================
    # Companies and brokerages
    # =========================================================================

    @pytest.mark.asyncio
    async def test_company_normalization(self) -> None:
        company = make_company(ticker=" aapl", name="Apple   Inc. ")

        report = await _checker(companies=[company]).detect_inconsistencies()

        by_field = {i.field: i for i in report.inconsistent_companies}
        assert by_field["ticker"].expected == "AAPL"
        assert by_field["ticker"].repairable
        assert by_field["name"].expected == "Apple Inc."
        assert by_field["name"].entity_type == EntityType.COMPANY

    @pytest.mark.asyncio
    async def test_brokerage_country_is_not_repairable(self) -> None:
        brokerage = make_brokerage(country="us")

        report = await _checker(brokerages=[brokerage]).detect_inconsistencies()

        [item] = report.inconsistent_brokerages
        assert item.field == "country"
        assert not item.repairable

    # =========================================================================
    # Stock ratings
    # =========================================================================

    @pytest.mark.asyncio
    async def test_future_and_ancient_event_times(self, apple, goldman) -> None:
        future = make_rating(apple, goldman, event_time=NOW + timedelta(days=1))
        ancient = make_rating(apple, goldman, event_time=NOW - timedelta(days=365 * 21))

        report = await _checker([apple], [goldman], [future, ancient]).detect_inconsistencies()

        assert {i.entity_id for i in report.inconsistent_ratings} == {future.id, ancient.id}
        assert _fields(report.inconsistent_ratings) == {"event_time"}

    @pytest.mark.asyncio
    async def test_age_horizon_follows_config(self, apple, goldman) -> None:
        rating = make_rating(apple, goldman, event_time=NOW - timedelta(days=365 * 3))
        config = default_validation_config().with_overrides(
            stock_rating={"max_age_years_business": 2}
        )

        report = await _checker([apple], [goldman], [rating], config=config).detect_inconsistencies()

        assert _fields(report.inconsistent_ratings) == {"event_time"}

    @pytest.mark.asyncio
    async def test_rating_labels(self, apple, goldman) -> None:
        rating = make_rating(apple, goldman, rating_from=" Hold ", rating_to="Moonshot")

        report = await _checker([apple], [goldman], [rating]).detect_inconsistencies()

        by_field = {i.field: i for i in report.inconsistent_ratings}
        assert by_field["rating_from"].repairable
        assert by_field["rating_from"].expected == "Hold"
        assert not by_field["rating_to"].repairable

    @pytest.mark.asyncio
    async def test_action_normalization(self, apple, goldman) -> None:
        rating = make_rating(apple, goldman, action="Upgraded By")

        report = await _checker([apple], [goldman], [rating]).detect_inconsistencies()

        [item] = report.inconsistent_ratings
        assert item.field == "action"
        assert item.expected == "upgraded by"
        assert item.repairable

    @pytest.mark.asyncio
    async def test_bad_targets(self, apple, goldman) -> None:
        rating = make_rating(apple, goldman, target_from="about ten", target_to="-$5.00")

        report = await _checker([apple], [goldman], [rating]).detect_inconsistencies()

        assert _fields(report.inconsistent_ratings) == {"target_from", "target_to"}
        assert not any(i.repairable for i in report.inconsistent_ratings)

    @pytest.mark.asyncio
    async def test_target_direction_mismatch_is_a_warning(self, apple, goldman) -> None:
        upgrade = make_rating(apple, goldman, target_from="$200.00", target_to="$150.00")
        downgrade = make_rating(
            apple,
            goldman,
            action="downgraded by",
            rating_from="Buy",
            rating_to="Hold",
            target_from="$100.00",
            target_to="$120.00",
        )
        raise_ = make_rating(
            apple, goldman, action="target raised by", target_from="$200.00", target_to="$150.00"
        )
        cut = make_rating(
            apple, goldman, action="target lowered by", target_from="$100.00", target_to="$150.00"
        )
        consistent_raise = make_rating(apple, goldman, action="target raised by")

        report = await _checker(
            [apple], [goldman], [upgrade, downgrade, raise_, cut, consistent_raise]
        ).detect_inconsistencies()

        assert report.total_inconsistencies == 4
        assert {i.entity_id for i in report.inconsistent_ratings} == {
            upgrade.id, downgrade.id, raise_.id, cut.id
        }
        assert all(i.field == "target_to" for i in report.inconsistent_ratings)
        assert all(i.severity == Severity.WARNING for i in report.inconsistent_ratings)
        assert report.status == IntegrityStatus.WARNING

    @pytest.mark.asyncio
    async def test_many_warnings_make_category_critical(self, apple, goldman) -> None:
        ratings = [make_rating(apple, goldman, action="UPGRADED BY") for _ in range(6)]

        report = await _checker([apple], [goldman], ratings).detect_inconsistencies()

        assert report.total_inconsistencies == 6
        assert report.critical_count == 0
        assert report.status == IntegrityStatus.CRITICAL


def test_years_before_handles_leap_day() -> None:
    leap = datetime(2024, 2, 29, tzinfo=timezone.utc)

    assert years_before(leap, 1) == datetime(2023, 2, 28, tzinfo=timezone.utc)
