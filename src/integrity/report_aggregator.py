"""
Report Aggregator.

Merges the four detector reports into one IntegrityReport. Pure: no I/O.
"""

from typing import Any

from src.integrity.models import (
    BusinessReport,
    ConsistencyReport,
    DuplicateReport,
    IntegrityReport,
    IntegrityStatus,
    OrphanReport,
)
from src.integrity.validation_config import ValidationConfig

HEALTHY_RECOMMENDATION = "Database integrity is healthy"


def _recommendations(
    orphan: OrphanReport,
    consistency: ConsistencyReport,
    duplicate: DuplicateReport,
    business: BusinessReport,
) -> list[tuple[bool, str]]:
    """(is_critical, text) per category with issues."""
    found: list[tuple[bool, str]] = []

    if orphan.total_orphans:
        found.append((
            orphan.status == IntegrityStatus.CRITICAL,
            f"Remove {orphan.total_orphans} orphaned stock ratings referencing "
            "missing companies or brokerages",
        ))
    if duplicate.duplicate_companies or duplicate.duplicate_brokerages:
        groups = len(duplicate.duplicate_companies) + len(duplicate.duplicate_brokerages)
        found.append((
            True,
            f"Merge {groups} duplicate company/brokerage groups manually",
        ))
    if duplicate.duplicate_stock_ratings:
        ambiguous = sum(1 for g in duplicate.duplicate_stock_ratings if not g.identical_payload)
        text = f"Collapse {len(duplicate.duplicate_stock_ratings)} duplicate stock rating groups"
        if ambiguous:
            text += f" ({ambiguous} with conflicting payloads need review)"
        found.append((duplicate.status == IntegrityStatus.CRITICAL, text))
    if business.total_violations:
        found.append((
            business.status == IntegrityStatus.CRITICAL,
            f"Correct {business.total_violations} business rule violations at the data source",
        ))
    if consistency.total_inconsistencies:
        repairable = sum(1 for i in consistency.all_items() if i.repairable)
        found.append((
            consistency.status == IntegrityStatus.CRITICAL,
            f"Review {consistency.total_inconsistencies} data inconsistencies "
            f"({repairable} can be normalized automatically)",
        ))

    return found


def aggregate(
    orphan: OrphanReport,
    consistency: ConsistencyReport,
    duplicate: DuplicateReport,
    business: BusinessReport,
    config: ValidationConfig,
) -> IntegrityReport:
    """Combine sub-reports, classify severity and build the summary."""
    sub_reports = (orphan, consistency, duplicate, business)

    total = (
        orphan.total_orphans
        + consistency.total_inconsistencies
        + duplicate.total_duplicates
        + business.total_violations
    )
    critical = sum(r.critical_count for r in sub_reports)

    if critical > 0 or any(r.status == IntegrityStatus.CRITICAL for r in sub_reports):
        overall = IntegrityStatus.CRITICAL
    elif total > 0:
        overall = IntegrityStatus.WARNING
    else:
        overall = IntegrityStatus.GOOD

    ranked = sorted(
        _recommendations(orphan, consistency, duplicate, business),
        key=lambda item: not item[0],
    )
    recommendations: list[str] = []
    for _, text in ranked:
        if text not in recommendations:
            recommendations.append(text)
    recommendations = recommendations[: config.thresholds.max_recommendations]
    if total == 0:
        recommendations = [HEALTHY_RECOMMENDATION]

    summary: dict[str, Any] = {
        "total_issues": total,
        "critical_issues": critical,
        "warning_issues": total - critical,
        "overall_status": overall.value,
        "breakdown": {
            "orphans": {
                "total": orphan.total_orphans,
                "stock_ratings": len(orphan.orphaned_stock_ratings),
                "status": orphan.status.value,
            },
            "consistency": {
                "total": consistency.total_inconsistencies,
                "companies": len(consistency.inconsistent_companies),
                "brokerages": len(consistency.inconsistent_brokerages),
                "stock_ratings": len(consistency.inconsistent_ratings),
                "status": consistency.status.value,
            },
            "duplicates": {
                "total": duplicate.total_duplicates,
                "companies": len(duplicate.duplicate_companies),
                "brokerages": len(duplicate.duplicate_brokerages),
                "stock_ratings": len(duplicate.duplicate_stock_ratings),
                "status": duplicate.status.value,
            },
            "business_rules": {
                "total": business.total_violations,
                "companies": len(business.invalid_companies),
                "brokerages": len(business.invalid_brokerages),
                "stock_ratings": len(business.invalid_stock_ratings),
                "status": business.status.value,
            },
        },
        "recommendations": recommendations,
    }

    return IntegrityReport(
        orphan_report=orphan,
        consistency_report=consistency,
        duplicate_report=duplicate,
        business_report=business,
        overall_status=overall,
        total_issues=total,
        critical_issues=critical,
        warning_issues=total - critical,
        summary=summary,
    )
