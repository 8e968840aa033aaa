"""
Orphan Detector.

Finds stock ratings whose company or brokerage reference does not resolve.
"""

import uuid

import structlog

from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    StockRatingRepository,
)
from src.integrity.integrity_logger import IntegrityLogger
from src.integrity.models import (
    MissingReference,
    OrphanedStockRating,
    OrphanReport,
    Severity,
    derive_status,
)
from src.integrity.validation_config import ValidationConfig

logger = structlog.get_logger(__name__)

CATEGORY = "orphans"


class OrphanDetector:
    """
    Referential integrity check for stock ratings.

    Each distinct company and brokerage ID is looked up once per run.
    Repository errors propagate to the caller.
    """

    def __init__(
        self,
        companies: CompanyRepository,
        brokerages: BrokerageRepository,
        ratings: StockRatingRepository,
        config: ValidationConfig,
        sink: IntegrityLogger,
    ):
        self._companies = companies
        self._brokerages = brokerages
        self._ratings = ratings
        self._config = config
        self._sink = sink

    async def detect_orphans(self) -> OrphanReport:
        self._sink.validation_start(CATEGORY)

        company_exists: dict[uuid.UUID, bool] = {}
        brokerage_exists: dict[uuid.UUID, bool] = {}
        orphans: list[OrphanedStockRating] = []

        for rating in await self._ratings.list_all():
            if rating.company_id not in company_exists:
                company_exists[rating.company_id] = (
                    await self._companies.get_by_id(rating.company_id) is not None
                )
            if rating.brokerage_id not in brokerage_exists:
                brokerage_exists[rating.brokerage_id] = (
                    await self._brokerages.get_by_id(rating.brokerage_id) is not None
                )

            missing_company = not company_exists[rating.company_id]
            missing_brokerage = not brokerage_exists[rating.brokerage_id]
            if not (missing_company or missing_brokerage):
                continue

            if missing_company and missing_brokerage:
                missing = MissingReference.COMPANY_AND_BROKERAGE
                reason = (
                    f"company {rating.company_id} and brokerage {rating.brokerage_id} not found"
                )
            elif missing_company:
                missing = MissingReference.COMPANY
                reason = f"company {rating.company_id} not found"
            else:
                missing = MissingReference.BROKERAGE
                reason = f"brokerage {rating.brokerage_id} not found"

            orphans.append(
                OrphanedStockRating(
                    rating_id=rating.id,
                    company_id=rating.company_id,
                    brokerage_id=rating.brokerage_id,
                    missing=missing,
                    reason=reason,
                )
            )

        self._classify(orphans)

        for orphan in orphans:
            self._sink.issue_detected(
                CATEGORY,
                orphan.rating_id,
                missing=orphan.missing.value,
                severity=orphan.severity.value,
            )

        report = OrphanReport(orphaned_stock_ratings=orphans, total_orphans=len(orphans))
        report.status = derive_status(
            report.total_orphans,
            report.critical_count,
            self._config.thresholds.orphans_critical_limit,
        )

        self._sink.validation_end(CATEGORY, report.total_orphans, report.status.value)
        return report

    def _classify(self, orphans: list[OrphanedStockRating]) -> None:
        """Mark orphans critical when their reference type exceeds the ceiling."""
        ceiling = self._config.thresholds.orphans_critical_limit
        missing_companies = sum(
            1 for o in orphans if o.missing != MissingReference.BROKERAGE
        )
        missing_brokerages = sum(
            1 for o in orphans if o.missing != MissingReference.COMPANY
        )

        for orphan in orphans:
            if orphan.missing == MissingReference.COMPANY:
                critical = missing_companies > ceiling
            elif orphan.missing == MissingReference.BROKERAGE:
                critical = missing_brokerages > ceiling
            else:
                critical = missing_companies > ceiling or missing_brokerages > ceiling
            orphan.severity = Severity.CRITICAL if critical else Severity.WARNING

        logger.debug(
            "Orphans classified",
            missing_companies=missing_companies,
            missing_brokerages=missing_brokerages,
            ceiling=ceiling,
        )
