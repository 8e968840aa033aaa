"""
Integrity Repair Engine.

Applies the mechanically safe repairs for detected issues:
- Delete orphaned stock ratings (never the missing company/brokerage)
- Collapse exact duplicate stock ratings to the earliest created record
- Normalize whitespace/case inconsistencies in place

Everything else is reported as unrepairable. Each mutation touches a single
row, runs through the retry handler and never aborts the batch on failure.
"""

import uuid
from collections import defaultdict
from typing import Any, Awaitable, Callable

import structlog

from src.core.retry_handler import RetryConfig, RetryHandler
from src.domain.entities import (
    normalize_action,
    normalize_name,
    normalize_rating,
    normalize_ticker,
)
from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    RepositoryError,
    StockRatingRepository,
)
from src.integrity.integrity_logger import IntegrityLogger
from src.integrity.models import (
    DetectionResult,
    EntityType,
    Inconsistency,
    IntegrityStatus,
    RepairAction,
    RepairOutcome,
    RepairReport,
    UnrepairableIssue,
)

logger = structlog.get_logger(__name__)

DELETE_ORPHAN = "delete_orphan"
REMOVE_DUPLICATE = "remove_duplicate"
NORMALIZE_FIELDS = "normalize_fields"

# Repairable fields and how to normalize them
NORMALIZERS: dict[tuple[EntityType, str], Callable[[str], str]] = {
    (EntityType.COMPANY, "ticker"): normalize_ticker,
    (EntityType.COMPANY, "name"): normalize_name,
    (EntityType.BROKERAGE, "name"): normalize_name,
    (EntityType.STOCK_RATING, "action"): normalize_action,
    (EntityType.STOCK_RATING, "rating_from"): normalize_rating,
    (EntityType.STOCK_RATING, "rating_to"): normalize_rating,
}


def repair_status(total_repairs: int, unrepairable: int) -> IntegrityStatus:
    if unrepairable == 0:
        return IntegrityStatus.GOOD
    if total_repairs > 0:
        return IntegrityStatus.WARNING
    return IntegrityStatus.CRITICAL


class RepairEngine:
    """
    Runs one detection pass, then repairs what is safe to repair.

    Usage:
        engine = RepairEngine(companies, brokerages, ratings, detect, sink)

        preview = await engine.repair_minor_issues(dry_run=True)
        print(f"Would repair {preview.total_repairs} issues")

        result = await engine.repair_minor_issues(dry_run=False)
    """

    def __init__(
        self,
        companies: CompanyRepository,
        brokerages: BrokerageRepository,
        ratings: StockRatingRepository,
        detect: Callable[[], Awaitable[DetectionResult]],
        sink: IntegrityLogger,
        retry_config: RetryConfig | None = None,
    ):
        self._companies = companies
        self._brokerages = brokerages
        self._ratings = ratings
        self._detect = detect
        self._sink = sink
        self._retry = RetryHandler(retry_config)

    async def repair_minor_issues(self, dry_run: bool = True) -> RepairReport:
        """
        Detect issues and repair the safe ones.

        Args:
            dry_run: Compute the repairs without issuing any write

        Returns:
            RepairReport with counts, per-mutation actions and unrepairable issues
        """
        report = RepairReport(dry_run=dry_run)

        # Detection failures are fatal and propagate
        detected = await self._detect()

        logger.info(
            "Starting repair",
            dry_run=dry_run,
            orphans=detected.orphan.total_orphans,
            duplicates=detected.duplicate.total_duplicates,
            inconsistencies=detected.consistency.total_inconsistencies,
            violations=detected.business.total_violations,
        )

        deleted = await self._remove_orphans(detected, report)
        deleted |= await self._remove_duplicates(detected, report, deleted)
        await self._normalize(detected, report, deleted)
        self._collect_unrepairable(detected, report, deleted)

        report.total_repairs = (
            report.repaired_orphans + report.removed_duplicates + report.fixed_inconsistencies
        )
        report.status = repair_status(report.total_repairs, len(report.unrepairable_issues))

        logger.info(
            "Repair completed",
            dry_run=dry_run,
            total_repairs=report.total_repairs,
            unrepairable=len(report.unrepairable_issues),
            status=report.status.value,
        )
        return report

    # =========================================================================
    # Deletions
    # =========================================================================

    async def _remove_orphans(
        self, detected: DetectionResult, report: RepairReport
    ) -> set[uuid.UUID]:
        deleted: set[uuid.UUID] = set()
        for orphan in detected.orphan.orphaned_stock_ratings:
            ok = await self._mutate(
                report,
                DELETE_ORPHAN,
                EntityType.STOCK_RATING,
                orphan.rating_id,
                self._ratings.delete,
                orphan.rating_id,
                description=orphan.reason,
            )
            if ok:
                report.repaired_orphans += 1
                deleted.add(orphan.rating_id)
        return deleted

    async def _remove_duplicates(
        self, detected: DetectionResult, report: RepairReport, already_deleted: set[uuid.UUID]
    ) -> set[uuid.UUID]:
        deleted: set[uuid.UUID] = set()
        for group in detected.duplicate.duplicate_stock_ratings:
            if not group.identical_payload:
                continue
            # Members are ordered by creation; the first one is kept
            for rating_id in group.ids[1:]:
                if rating_id in already_deleted:
                    continue
                ok = await self._mutate(
                    report,
                    REMOVE_DUPLICATE,
                    EntityType.STOCK_RATING,
                    rating_id,
                    self._ratings.delete,
                    rating_id,
                    description=f"duplicate of {group.ids[0]}",
                )
                if ok:
                    report.removed_duplicates += 1
                    deleted.add(rating_id)
        return deleted

    # =========================================================================
    # In-place normalization
    # =========================================================================

    async def _normalize(
        self, detected: DetectionResult, report: RepairReport, deleted: set[uuid.UUID]
    ) -> None:
        duplicate_companies = {
            company_id
            for group in detected.duplicate.duplicate_companies
            for company_id in group.ids
        }

        fixes: dict[tuple[EntityType, uuid.UUID], list[Inconsistency]] = defaultdict(list)
        for item in detected.consistency.all_items():
            if not item.repairable or item.entity_id in deleted:
                continue
            if (
                item.entity_type == EntityType.COMPANY
                and item.field == "ticker"
                and item.entity_id in duplicate_companies
            ):
                report.unrepairable_issues.append(
                    UnrepairableIssue(
                        type="inconsistency",
                        entity_id=item.entity_id,
                        description=f"company ticker {item.actual!r} should be {item.expected!r}",
                        reason="company belongs to a duplicate group; merge it manually first",
                    )
                )
                continue
            fixes[(item.entity_type, item.entity_id)].append(item)

        repositories: dict[EntityType, Any] = {
            EntityType.COMPANY: self._companies,
            EntityType.BROKERAGE: self._brokerages,
            EntityType.STOCK_RATING: self._ratings,
        }

        for (entity_type, entity_id), items in fixes.items():
            fields = sorted({item.field for item in items})
            ok = await self._mutate(
                report,
                NORMALIZE_FIELDS,
                entity_type,
                entity_id,
                self._apply_changes,
                repositories[entity_type],
                entity_id,
                entity_type,
                fields,
                description=f"normalize {', '.join(fields)}",
            )
            if ok:
                report.fixed_inconsistencies += len(items)

    @staticmethod
    async def _apply_changes(
        repository: Any, entity_id: uuid.UUID, entity_type: EntityType, fields: list[str]
    ) -> None:
        """Normalize the current stored values, which may differ from the detected ones."""
        entity = await repository.get_by_id(entity_id)
        if entity is None:
            raise RepositoryError(f"record {entity_id} no longer exists")
        changes = {
            field: NORMALIZERS[(entity_type, field)](getattr(entity, field)) for field in fields
        }
        if all(getattr(entity, field) == value for field, value in changes.items()):
            return
        await repository.update(entity.model_copy(update=changes))

    # =========================================================================
    # Bookkeeping
    # =========================================================================

    def _collect_unrepairable(
        self, detected: DetectionResult, report: RepairReport, deleted: set[uuid.UUID]
    ) -> None:
        for group in detected.duplicate.duplicate_companies + detected.duplicate.duplicate_brokerages:
            report.unrepairable_issues.append(
                UnrepairableIssue(
                    type=f"duplicate_{group.entity_type.value}",
                    entity_id=group.ids[0],
                    description=f"{group.count} {group.entity_type.value} records share key {group.key!r}",
                    reason=f"{group.entity_type.value} records are never deleted automatically",
                )
            )

        for group in detected.duplicate.duplicate_stock_ratings:
            if group.identical_payload:
                continue
            report.unrepairable_issues.append(
                UnrepairableIssue(
                    type="duplicate_stock_rating",
                    entity_id=group.ids[0],
                    description=f"{group.count} stock ratings share key {group.key!r}",
                    reason="payloads differ; the record to keep must be chosen manually",
                )
            )

        for item in detected.consistency.all_items():
            if item.repairable or item.entity_id in deleted:
                continue
            report.unrepairable_issues.append(
                UnrepairableIssue(
                    type="inconsistency",
                    entity_id=item.entity_id,
                    description=(
                        f"{item.entity_type.value} {item.field}: expected {item.expected}, "
                        f"got {item.actual!r}"
                    ),
                    reason="correct value cannot be derived automatically",
                )
            )

        for violation in detected.business.all_items():
            if violation.entity_id in deleted:
                continue
            report.unrepairable_issues.append(
                UnrepairableIssue(
                    type=f"business_rule:{violation.rule}",
                    entity_id=violation.entity_id,
                    description=f"{violation.entity_type.value}: {violation.details}",
                    reason="business rule violations require manual correction",
                )
            )

    async def _mutate(
        self,
        report: RepairReport,
        kind: str,
        entity_type: EntityType,
        entity_id: uuid.UUID,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        description: str,
    ) -> bool:
        """Run one mutation with retries; record its action and outcome."""
        self._sink.repair_attempt(kind, entity_id, report.dry_run, detail=description)

        if report.dry_run:
            report.actions.append(
                RepairAction(kind, entity_type, entity_id, RepairOutcome.SIMULATED)
            )
            return True

        attempts = 1

        def count_retry(retry_number: int, error: Exception) -> None:
            nonlocal attempts
            attempts = retry_number + 1

        try:
            await self._retry.execute(func, *args, on_retry=count_retry)
        except Exception as e:
            self._sink.repair_result(kind, entity_id, False, attempts, error=str(e))
            report.actions.append(
                RepairAction(
                    kind, entity_type, entity_id, RepairOutcome.FAILED, attempts, error=str(e)
                )
            )
            report.unrepairable_issues.append(
                UnrepairableIssue(
                    type=f"{kind}_failed",
                    entity_id=entity_id,
                    description=description,
                    reason=f"repair failed after {attempts} attempt(s): {e}",
                )
            )
            return False

        self._sink.repair_result(kind, entity_id, True, attempts)
        report.actions.append(
            RepairAction(kind, entity_type, entity_id, RepairOutcome.SUCCEEDED, attempts)
        )
        return True
