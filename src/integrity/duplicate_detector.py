"""
Duplicate Detector.

Groups records that share a normalized business key:
- Companies by case-folded ticker
- Brokerages by normalized, case-folded name
- Stock ratings by company, brokerage, event-time bucket and action
"""

import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, TypeVar

from src.domain.entities import (
    Brokerage,
    Company,
    StockRating,
    business_key,
    normalize_action,
)
from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    StockRatingRepository,
)
from src.integrity.integrity_logger import IntegrityLogger
from src.integrity.models import (
    DuplicateGroup,
    DuplicateReport,
    EntityType,
    Severity,
    derive_status,
)
from src.integrity.validation_config import ValidationConfig

CATEGORY = "duplicates"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

R = TypeVar("R", Company, Brokerage, StockRating)


def bucket_start(moment: datetime, window: timedelta) -> datetime:
    """Truncate a UTC timestamp to the start of its window (epoch aligned)."""
    return _EPOCH + ((moment - _EPOCH) // window) * window


def group_by_key(records: Iterable[R], key: Callable[[R], str]) -> dict[str, list[R]]:
    """Multi-member groups keyed by business key, members ordered by creation."""
    groups: dict[str, list[R]] = defaultdict(list)
    for record in records:
        k = key(record)
        if k:
            groups[k].append(record)
    return {
        k: sorted(members, key=lambda r: (r.created_at, str(r.id)))
        for k, members in sorted(groups.items())
        if len(members) > 1
    }


class DuplicateDetector:
    """
    Identity-collision check across all three entity kinds.

    Company and brokerage collisions are always critical. Rating groups are
    warnings when every member carries the same payload, which makes them
    safe to collapse, and critical otherwise.
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

    def rating_key(self, rating: StockRating) -> str:
        window = self._config.rules.stock_rating.duplicate_window
        return "|".join(
            [
                str(rating.company_id),
                str(rating.brokerage_id),
                bucket_start(rating.event_time, window).isoformat(),
                normalize_action(rating.action),
            ]
        )

    async def detect_duplicates(self) -> DuplicateReport:
        self._sink.validation_start(CATEGORY)
        report = DuplicateReport()

        companies = group_by_key(
            await self._companies.list_all(), lambda c: c.ticker.strip().casefold()
        )
        for key, members in companies.items():
            report.duplicate_companies.append(
                DuplicateGroup(
                    entity_type=EntityType.COMPANY,
                    key=key,
                    ids=_ids(members),
                    severity=Severity.CRITICAL,
                )
            )

        brokerages = group_by_key(
            await self._brokerages.list_all(), lambda b: business_key(b.name)
        )
        for key, members in brokerages.items():
            report.duplicate_brokerages.append(
                DuplicateGroup(
                    entity_type=EntityType.BROKERAGE,
                    key=key,
                    ids=_ids(members),
                    severity=Severity.CRITICAL,
                )
            )

        ratings = group_by_key(await self._ratings.list_all(), self.rating_key)
        for key, members in ratings.items():
            identical = len({m.payload_signature() for m in members}) == 1
            report.duplicate_stock_ratings.append(
                DuplicateGroup(
                    entity_type=EntityType.STOCK_RATING,
                    key=key,
                    ids=_ids(members),
                    severity=Severity.WARNING if identical else Severity.CRITICAL,
                    identical_payload=identical,
                )
            )

        groups = report.all_items()
        for group in groups:
            self._sink.issue_detected(
                CATEGORY,
                group.ids[0],
                entity_type=group.entity_type.value,
                key=group.key,
                count=group.count,
                identical_payload=group.identical_payload,
            )

        report.total_duplicates = len(groups)
        report.status = derive_status(
            report.total_duplicates,
            report.critical_count,
            self._config.thresholds.duplicates_warning_limit,
        )

        self._sink.validation_end(CATEGORY, report.total_duplicates, report.status.value)
        return report


def _ids(members: list[R]) -> list[uuid.UUID]:
    return [m.id for m in members]
