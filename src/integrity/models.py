"""
Integrity Report Models.

Sub-reports produced by the four detectors, the aggregated IntegrityReport,
and the RepairReport returned by automatic repair. Every report is built
fresh per run and serializes to JSON-ready dicts via ``to_dict()``.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class IntegrityStatus(str, Enum):
    """Overall health classification."""

    GOOD = "GOOD"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class Severity(str, Enum):
    """Severity of a single detected issue."""

    CRITICAL = "critical"
    WARNING = "warning"


class EntityType(str, Enum):
    COMPANY = "company"
    BROKERAGE = "brokerage"
    STOCK_RATING = "stock_rating"


class MissingReference(str, Enum):
    """Which foreign key of an orphaned rating failed to resolve."""

    COMPANY = "company"
    BROKERAGE = "brokerage"
    COMPANY_AND_BROKERAGE = "company_and_brokerage"


def derive_status(total: int, critical: int, warning_limit: int) -> IntegrityStatus:
    """Category status: any critical item or a total above the limit is critical."""
    if total == 0:
        return IntegrityStatus.GOOD
    if critical > 0 or total > warning_limit:
        return IntegrityStatus.CRITICAL
    return IntegrityStatus.WARNING


def _count_critical(items: list[Any]) -> int:
    return sum(1 for item in items if item.severity == Severity.CRITICAL)


# =============================================================================
# Issue records
# =============================================================================


@dataclass
class OrphanedStockRating:
    rating_id: uuid.UUID
    company_id: uuid.UUID
    brokerage_id: uuid.UUID
    missing: MissingReference
    reason: str
    severity: Severity = Severity.CRITICAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.rating_id),
            "company_id": str(self.company_id),
            "brokerage_id": str(self.brokerage_id),
            "missing": self.missing.value,
            "reason": self.reason,
            "severity": self.severity.value,
        }


@dataclass
class Inconsistency:
    """A field whose value contradicts its expected derived value."""

    entity_type: EntityType
    entity_id: uuid.UUID
    field: str
    expected: str
    actual: str
    severity: Severity = Severity.WARNING
    repairable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.entity_id),
            "field": self.field,
            "expected": self.expected,
            "actual": self.actual,
            "severity": self.severity.value,
            "repairable": self.repairable,
        }


@dataclass
class DuplicateGroup:
    """Records sharing one normalized business key."""

    entity_type: EntityType
    key: str
    ids: list[uuid.UUID]
    severity: Severity = Severity.CRITICAL
    identical_payload: bool = False

    @property
    def count(self) -> int:
        return len(self.ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "ids": [str(i) for i in self.ids],
            "count": self.count,
            "severity": self.severity.value,
            "identical_payload": self.identical_payload,
        }


@dataclass
class RuleViolation:
    entity_type: EntityType
    entity_id: uuid.UUID
    rule: str
    details: str
    severity: Severity = Severity.WARNING

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.entity_id),
            "rule": self.rule,
            "details": self.details,
            "severity": self.severity.value,
        }


# =============================================================================
# Sub-reports
# =============================================================================


@dataclass
class OrphanReport:
    orphaned_stock_ratings: list[OrphanedStockRating] = field(default_factory=list)
    total_orphans: int = 0
    status: IntegrityStatus = IntegrityStatus.GOOD

    @property
    def critical_count(self) -> int:
        return _count_critical(self.orphaned_stock_ratings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "orphaned_stock_ratings": [o.to_dict() for o in self.orphaned_stock_ratings],
            "total_orphans": self.total_orphans,
            "status": self.status.value,
        }


@dataclass
class ConsistencyReport:
    inconsistent_companies: list[Inconsistency] = field(default_factory=list)
    inconsistent_brokerages: list[Inconsistency] = field(default_factory=list)
    inconsistent_ratings: list[Inconsistency] = field(default_factory=list)
    total_inconsistencies: int = 0
    status: IntegrityStatus = IntegrityStatus.GOOD

    def all_items(self) -> list[Inconsistency]:
        return self.inconsistent_companies + self.inconsistent_brokerages + self.inconsistent_ratings

    @property
    def critical_count(self) -> int:
        return _count_critical(self.all_items())

    def to_dict(self) -> dict[str, Any]:
        return {
            "inconsistent_companies": [i.to_dict() for i in self.inconsistent_companies],
            "inconsistent_brokerages": [i.to_dict() for i in self.inconsistent_brokerages],
            "inconsistent_ratings": [i.to_dict() for i in self.inconsistent_ratings],
            "total_inconsistencies": self.total_inconsistencies,
            "status": self.status.value,
        }


@dataclass
class DuplicateReport:
    duplicate_companies: list[DuplicateGroup] = field(default_factory=list)
    duplicate_brokerages: list[DuplicateGroup] = field(default_factory=list)
    duplicate_stock_ratings: list[DuplicateGroup] = field(default_factory=list)
    total_duplicates: int = 0
    status: IntegrityStatus = IntegrityStatus.GOOD

    def all_items(self) -> list[DuplicateGroup]:
        return self.duplicate_companies + self.duplicate_brokerages + self.duplicate_stock_ratings

    @property
    def critical_count(self) -> int:
        return _count_critical(self.all_items())

    def to_dict(self) -> dict[str, Any]:
        return {
            "duplicate_companies": [d.to_dict() for d in self.duplicate_companies],
            "duplicate_brokerages": [d.to_dict() for d in self.duplicate_brokerages],
            "duplicate_stock_ratings": [d.to_dict() for d in self.duplicate_stock_ratings],
            "total_duplicates": self.total_duplicates,
            "status": self.status.value,
        }


@dataclass
class BusinessReport:
    invalid_companies: list[RuleViolation] = field(default_factory=list)
    invalid_brokerages: list[RuleViolation] = field(default_factory=list)
    invalid_stock_ratings: list[RuleViolation] = field(default_factory=list)
    total_violations: int = 0
    status: IntegrityStatus = IntegrityStatus.GOOD

    def all_items(self) -> list[RuleViolation]:
        return self.invalid_companies + self.invalid_brokerages + self.invalid_stock_ratings

    @property
    def critical_count(self) -> int:
        return _count_critical(self.all_items())

    def to_dict(self) -> dict[str, Any]:
        return {
            "invalid_companies": [v.to_dict() for v in self.invalid_companies],
            "invalid_brokerages": [v.to_dict() for v in self.invalid_brokerages],
            "invalid_stock_ratings": [v.to_dict() for v in self.invalid_stock_ratings],
            "total_violations": self.total_violations,
            "status": self.status.value,
        }


# =============================================================================
# Aggregated reports
# =============================================================================


@dataclass
class IntegrityReport:
    """Result of a full validation run."""

    orphan_report: OrphanReport
    consistency_report: ConsistencyReport
    duplicate_report: DuplicateReport
    business_report: BusinessReport
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    overall_status: IntegrityStatus = IntegrityStatus.GOOD
    total_issues: int = 0
    critical_issues: int = 0
    warning_issues: int = 0
    summary: dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def recommendations(self) -> list[str]:
        return list(self.summary.get("recommendations", []))

    def issue_counts(self) -> dict[str, int]:
        """Per-category totals, used to compare runs."""
        return {
            "orphans": self.orphan_report.total_orphans,
            "inconsistencies": self.consistency_report.total_inconsistencies,
            "duplicates": self.duplicate_report.total_duplicates,
            "violations": self.business_report.total_violations,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "overall_status": self.overall_status.value,
            "total_issues": self.total_issues,
            "critical_issues": self.critical_issues,
            "warning_issues": self.warning_issues,
            "orphan_report": self.orphan_report.to_dict(),
            "consistency_report": self.consistency_report.to_dict(),
            "duplicate_report": self.duplicate_report.to_dict(),
            "business_report": self.business_report.to_dict(),
            "summary": self.summary,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class RepairOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SIMULATED = "simulated"


@dataclass
class RepairAction:
    """One attempted mutation and how it ended."""

    kind: str
    entity_type: EntityType
    entity_id: uuid.UUID
    outcome: RepairOutcome
    attempts: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "entity_type": self.entity_type.value,
            "id": str(self.entity_id),
            "outcome": self.outcome.value,
            "attempts": self.attempts,
            "error": self.error,
        }


@dataclass
class UnrepairableIssue:
    """A detected defect left for manual intervention."""

    type: str
    entity_id: uuid.UUID
    description: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "id": str(self.entity_id),
            "description": self.description,
            "reason": self.reason,
        }


@dataclass
class RepairReport:
    dry_run: bool
    repaired_orphans: int = 0
    removed_duplicates: int = 0
    fixed_inconsistencies: int = 0
    unrepairable_issues: list[UnrepairableIssue] = field(default_factory=list)
    actions: list[RepairAction] = field(default_factory=list)
    total_repairs: int = 0
    status: IntegrityStatus = IntegrityStatus.GOOD

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_repairs": self.total_repairs,
            "repaired_orphans": self.repaired_orphans,
            "removed_duplicates": self.removed_duplicates,
            "fixed_inconsistencies": self.fixed_inconsistencies,
            "unrepairable_issues": [u.to_dict() for u in self.unrepairable_issues],
            "actions": [a.to_dict() for a in self.actions],
            "dry_run": self.dry_run,
            "status": self.status.value,
        }


@dataclass
class DetectionResult:
    """The four sub-reports of one detection pass."""

    orphan: OrphanReport
    consistency: ConsistencyReport
    duplicate: DuplicateReport
    business: BusinessReport
