"""
Integrity Validation Service.

Entry point for validation and repair. Composes the four detectors, the
report aggregator and the repair engine over injected repositories.
"""

import asyncio
import time
from datetime import datetime
from typing import Callable

import structlog

from src.core.retry_handler import RetryConfig
from src.domain.entities import utc_now
from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    StockRatingRepository,
)
from src.integrity.business_rules import BusinessRuleValidator
from src.integrity.consistency_checker import ConsistencyChecker
from src.integrity.duplicate_detector import DuplicateDetector
from src.integrity.integrity_logger import IntegrityLogger
from src.integrity.models import (
    BusinessReport,
    ConsistencyReport,
    DetectionResult,
    DuplicateReport,
    IntegrityReport,
    OrphanReport,
    RepairReport,
)
from src.integrity.orphan_detector import OrphanDetector
from src.integrity.repair_engine import RepairEngine
from src.integrity.report_aggregator import aggregate
from src.integrity.validation_config import ValidationConfig, default_validation_config
from src.observability.logging import LogContext

logger = structlog.get_logger(__name__)


class IntegrityValidationError(Exception):
    """A validation run failed; no report was produced."""

    pass


class IntegrityValidationService:
    """
    Validates and repairs stock rating data.

    Usage:
        ```python
        service = IntegrityValidationService(companies, brokerages, ratings)

        report = await service.validate_full_integrity(timeout=60)
        print(report.overall_status, report.recommendations)

        preview = await service.repair_minor_issues(dry_run=True)
        ```
    """

    def __init__(
        self,
        companies: CompanyRepository,
        brokerages: BrokerageRepository,
        ratings: StockRatingRepository,
        sink: IntegrityLogger | None = None,
        config: ValidationConfig | None = None,
        retry_config: RetryConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or default_validation_config()
        self._sink = sink or IntegrityLogger()

        args = (companies, brokerages, ratings, self.config, self._sink)
        self._orphans = OrphanDetector(*args)
        self._consistency = ConsistencyChecker(*args, clock=clock)
        self._duplicates = DuplicateDetector(*args)
        self._business = BusinessRuleValidator(*args)
        self._repair = RepairEngine(
            companies,
            brokerages,
            ratings,
            detect=self._detect_all,
            sink=self._sink,
            retry_config=retry_config,
        )

    # =========================================================================
    # Full validation
    # =========================================================================

    async def validate_full_integrity(self, timeout: float | None = None) -> IntegrityReport:
        """
        Run every detector concurrently and aggregate the results.

        Args:
            timeout: Seconds before the run is cancelled (None waits indefinitely)

        Returns:
            Complete IntegrityReport

        Raises:
            IntegrityValidationError: If any detector failed
            TimeoutError: If the timeout elapsed first
        """
        with LogContext(operation="validate"):
            return await self._validate_full(timeout)

    async def _validate_full(self, timeout: float | None) -> IntegrityReport:
        started = time.perf_counter()
        logger.info("Starting full integrity validation", timeout=timeout)

        async with asyncio.timeout(timeout):
            detected = await self._detect_all()

        report = aggregate(
            detected.orphan,
            detected.consistency,
            detected.duplicate,
            detected.business,
            self.config,
        )
        report.duration_seconds = time.perf_counter() - started

        logger.info(
            "Full integrity validation completed",
            status=report.overall_status.value,
            total_issues=report.total_issues,
            critical_issues=report.critical_issues,
            duration_seconds=round(report.duration_seconds, 3),
        )
        return report

    async def _detect_all(self) -> DetectionResult:
        """Run the four detectors as one task group; the first failure cancels the rest."""
        try:
            async with asyncio.TaskGroup() as tg:
                orphan = tg.create_task(self._orphans.detect_orphans())
                consistency = tg.create_task(self._consistency.detect_inconsistencies())
                duplicate = tg.create_task(self._duplicates.detect_duplicates())
                business = tg.create_task(self._business.detect_violations())
        except ExceptionGroup as eg:
            cause = eg.exceptions[0]
            self._sink.error(
                "Integrity validation failed",
                error_type=type(cause).__name__,
                error=str(cause),
                failures=len(eg.exceptions),
            )
            raise IntegrityValidationError(f"integrity validation failed: {cause}") from cause

        return DetectionResult(
            orphan=orphan.result(),
            consistency=consistency.result(),
            duplicate=duplicate.result(),
            business=business.result(),
        )

    # =========================================================================
    # Single-category validation
    # =========================================================================

    async def validate_orphaned_records(self) -> OrphanReport:
        return await self._single(self._orphans.detect_orphans)

    async def validate_data_consistency(self) -> ConsistencyReport:
        return await self._single(self._consistency.detect_inconsistencies)

    async def validate_duplicates(self) -> DuplicateReport:
        return await self._single(self._duplicates.detect_duplicates)

    async def validate_business_rules(self) -> BusinessReport:
        return await self._single(self._business.detect_violations)

    async def _single(self, detect):
        try:
            return await detect()
        except Exception as e:
            self._sink.error(
                "Integrity validation failed", error_type=type(e).__name__, error=str(e)
            )
            raise IntegrityValidationError(f"integrity validation failed: {e}") from e

    # =========================================================================
    # Repair
    # =========================================================================

    async def repair_minor_issues(self, dry_run: bool = True) -> RepairReport:
        """Repair safe issues; see RepairEngine. Defaults to a dry run."""
        with LogContext(operation="repair", dry_run=dry_run):
            return await self._repair.repair_minor_issues(dry_run=dry_run)
