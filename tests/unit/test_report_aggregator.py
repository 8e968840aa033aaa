"""
Unit Tests for the Report Aggregator.
"""

import uuid

from src.integrity.models import (
    BusinessReport,
    ConsistencyReport,
    DuplicateGroup,
    DuplicateReport,
    EntityType,
    Inconsistency,
    IntegrityStatus,
    MissingReference,
    OrphanedStockRating,
    OrphanReport,
    RuleViolation,
    Severity,
)
from src.integrity.report_aggregator import HEALTHY_RECOMMENDATION, aggregate
from src.integrity.validation_config import default_validation_config


def _orphans(n: int) -> OrphanReport:
    items = [
        OrphanedStockRating(uuid.uuid4(), uuid.uuid4(), uuid.uuid4(), MissingReference.COMPANY, "gone")
        for _ in range(n)
    ]
    status = IntegrityStatus.CRITICAL if n else IntegrityStatus.GOOD
    return OrphanReport(orphaned_stock_ratings=items, total_orphans=n, status=status)


def _inconsistencies(n: int) -> ConsistencyReport:
    items = [
        Inconsistency(EntityType.STOCK_RATING, uuid.uuid4(), "action", "upgraded by", "UPGRADED BY", repairable=True)
        for _ in range(n)
    ]
    status = IntegrityStatus.WARNING if n else IntegrityStatus.GOOD
    return ConsistencyReport(inconsistent_ratings=items, total_inconsistencies=n, status=status)


def _violations(severity: Severity) -> BusinessReport:
    violation = RuleViolation(EntityType.COMPANY, uuid.uuid4(), "required_name", "name is required", severity)
    status = IntegrityStatus.CRITICAL if severity == Severity.CRITICAL else IntegrityStatus.WARNING
    return BusinessReport(invalid_companies=[violation], total_violations=1, status=status)


class TestAggregate:
    """Test cases for aggregate()."""

    def test_healthy_report(self) -> None:
        report = aggregate(
            OrphanReport(), ConsistencyReport(), DuplicateReport(), BusinessReport(),
            default_validation_config(),
        )

        assert report.overall_status == IntegrityStatus.GOOD
        assert report.total_issues == 0
        assert report.recommendations == [HEALTHY_RECOMMENDATION]

    def test_warnings_only(self) -> None:
        report = aggregate(
            OrphanReport(), _inconsistencies(2), DuplicateReport(), _violations(Severity.WARNING),
            default_validation_config(),
        )

        assert report.overall_status == IntegrityStatus.WARNING
        assert report.total_issues == 3
        assert report.critical_issues == 0
        assert report.warning_issues == 3

    def test_critical_item_drives_overall_status(self) -> None:
        report = aggregate(
            OrphanReport(), ConsistencyReport(), DuplicateReport(), _violations(Severity.CRITICAL),
            default_validation_config(),
        )

        assert report.overall_status == IntegrityStatus.CRITICAL
        assert report.critical_issues == 1

    def test_critical_category_without_critical_items(self) -> None:
        """Test that a category over its limit makes the report critical."""
        consistency = _inconsistencies(6)
        consistency.status = IntegrityStatus.CRITICAL

        report = aggregate(
            OrphanReport(), consistency, DuplicateReport(), BusinessReport(),
            default_validation_config(),
        )

        assert report.critical_issues == 0
        assert report.overall_status == IntegrityStatus.CRITICAL

    def test_totals_add_up(self) -> None:
        duplicates = DuplicateReport(
            duplicate_stock_ratings=[
                DuplicateGroup(EntityType.STOCK_RATING, "k", [uuid.uuid4(), uuid.uuid4()], Severity.WARNING, True)
            ],
            total_duplicates=1,
            status=IntegrityStatus.WARNING,
        )

        report = aggregate(
            _orphans(2), _inconsistencies(1), duplicates, _violations(Severity.WARNING),
            default_validation_config(),
        )

        assert report.total_issues == 5
        assert report.total_issues == report.critical_issues + report.warning_issues
        assert report.summary["breakdown"]["duplicates"]["stock_ratings"] == 1

    def test_recommendations_put_critical_first_and_are_capped(self) -> None:
        config = default_validation_config().with_overrides(thresholds={"max_recommendations": 2})

        report = aggregate(
            _orphans(1), _inconsistencies(1), DuplicateReport(), _violations(Severity.WARNING),
            config,
        )

        assert len(report.recommendations) == 2
        assert "orphaned" in report.recommendations[0]

    def test_to_dict(self) -> None:
        report = aggregate(
            _orphans(1), ConsistencyReport(), DuplicateReport(), BusinessReport(),
            default_validation_config(),
        )

        data = report.to_dict()

        assert data["overall_status"] == "CRITICAL"
        assert data["orphan_report"]["orphaned_stock_ratings"][0]["missing"] == "company"
        assert data["summary"]["recommendations"]
