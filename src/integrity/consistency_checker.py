"""
Consistency Checker.

Derived-value and normalization checks on individual records:
- Company ticker and name normalization
- Brokerage name normalization and country code shape
- Stock rating event time range, rating labels, price targets
  and target direction versus the stated action
"""

import re
from datetime import datetime
from typing import Callable

from src.domain.entities import (
    Brokerage,
    Company,
    StockRating,
    normalize_action,
    normalize_name,
    normalize_rating,
    normalize_ticker,
    parse_price,
    utc_now,
)
from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    StockRatingRepository,
)
from src.integrity.integrity_logger import IntegrityLogger
from src.integrity.models import (
    ConsistencyReport,
    EntityType,
    Inconsistency,
    derive_status,
)
from src.integrity.validation_config import ValidationConfig

CATEGORY = "consistency"

_COUNTRY_CODE_RE = re.compile(r"^[A-Z]{3}$")


def years_before(moment: datetime, years: int) -> datetime:
    """Same calendar date `years` earlier; Feb 29 falls back to Feb 28."""
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        return moment.replace(year=moment.year - years, day=28)


class ConsistencyChecker:
    """
    Detects values that contradict their expected normalized or derived form.

    Every inconsistency is a warning. Normalization mismatches are marked
    repairable; out-of-range values are left for manual review.
    """

    def __init__(
        self,
        companies: CompanyRepository,
        brokerages: BrokerageRepository,
        ratings: StockRatingRepository,
        config: ValidationConfig,
        sink: IntegrityLogger,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._companies = companies
        self._brokerages = brokerages
        self._ratings = ratings
        self._config = config
        self._sink = sink
        self._clock = clock

    async def detect_inconsistencies(self) -> ConsistencyReport:
        self._sink.validation_start(CATEGORY)
        report = ConsistencyReport()

        for company in await self._companies.list_all():
            report.inconsistent_companies.extend(self._check_company(company))

        for brokerage in await self._brokerages.list_all():
            report.inconsistent_brokerages.extend(self._check_brokerage(brokerage))

        now = self._clock()
        for rating in await self._ratings.list_all():
            report.inconsistent_ratings.extend(self._check_rating(rating, now))

        items = report.all_items()
        for item in items:
            self._sink.issue_detected(
                CATEGORY,
                item.entity_id,
                entity_type=item.entity_type.value,
                field=item.field,
                expected=item.expected,
                actual=item.actual,
            )

        report.total_inconsistencies = len(items)
        report.status = derive_status(
            report.total_inconsistencies,
            report.critical_count,
            self._config.thresholds.consistency_warning_limit,
        )

        self._sink.validation_end(CATEGORY, report.total_inconsistencies, report.status.value)
        return report

    # =========================================================================
    # Companies and brokerages
    # =========================================================================

    def _check_company(self, company: Company) -> list[Inconsistency]:
        found = []

        if company.ticker.strip() and company.ticker != normalize_ticker(company.ticker):
            found.append(
                Inconsistency(
                    entity_type=EntityType.COMPANY,
                    entity_id=company.id,
                    field="ticker",
                    expected=normalize_ticker(company.ticker),
                    actual=company.ticker,
                    repairable=True,
                )
            )

        if company.name.strip() and company.name != normalize_name(company.name):
            found.append(
                Inconsistency(
                    entity_type=EntityType.COMPANY,
                    entity_id=company.id,
                    field="name",
                    expected=normalize_name(company.name),
                    actual=company.name,
                    repairable=True,
                )
            )

        return found

    def _check_brokerage(self, brokerage: Brokerage) -> list[Inconsistency]:
        found = []

        if brokerage.name.strip() and brokerage.name != normalize_name(brokerage.name):
            found.append(
                Inconsistency(
                    entity_type=EntityType.BROKERAGE,
                    entity_id=brokerage.id,
                    field="name",
                    expected=normalize_name(brokerage.name),
                    actual=brokerage.name,
                    repairable=True,
                )
            )

        if brokerage.country and not _COUNTRY_CODE_RE.match(brokerage.country):
            found.append(
                Inconsistency(
                    entity_type=EntityType.BROKERAGE,
                    entity_id=brokerage.id,
                    field="country",
                    expected="3-letter upper-case ISO country code",
                    actual=brokerage.country,
                )
            )

        return found

    # =========================================================================
    # Stock ratings
    # =========================================================================

    def _check_rating(self, rating: StockRating, now: datetime) -> list[Inconsistency]:
        rules = self._config.rules.stock_rating
        found = []

        def record(field: str, expected: str, actual: str, repairable: bool = False) -> None:
            found.append(
                Inconsistency(
                    entity_type=EntityType.STOCK_RATING,
                    entity_id=rating.id,
                    field=field,
                    expected=expected,
                    actual=actual,
                    repairable=repairable,
                )
            )

        oldest = years_before(now, rules.max_age_years_business)
        if rating.event_time > now:
            record("event_time", f"not after {now.isoformat()}", rating.event_time.isoformat())
        elif rating.event_time < oldest:
            record(
                "event_time",
                f"within {rules.max_age_years_business} years (after {oldest.isoformat()})",
                rating.event_time.isoformat(),
            )

        if rating.action.strip() and rating.action != normalize_action(rating.action):
            record("action", normalize_action(rating.action), rating.action, repairable=True)

        for field in ("rating_from", "rating_to"):
            value = getattr(rating, field)
            cleaned = normalize_rating(value)
            if value != cleaned:
                record(field, cleaned, value, repairable=True)
            if cleaned and not rules.is_allowed_rating(cleaned):
                record(field, "one of the allowed rating labels", value)

        targets: dict[str, float | None] = {}
        for field in ("target_from", "target_to"):
            value = getattr(rating, field)
            if not value.strip():
                targets[field] = None
                continue
            price = parse_price(value)
            if price is None:
                record(field, "a price such as $12.50", value)
            elif price < 0:
                record(field, "a non-negative price", value)
                price = None
            targets[field] = price

        target_from, target_to = targets["target_from"], targets["target_to"]
        if target_from is not None and target_to is not None:
            if rating.is_upgrade() and target_to < target_from:
                record(
                    "target_to",
                    f">= {rating.target_from} for an upgrade",
                    rating.target_to,
                )
            elif rating.is_downgrade() and target_to > target_from:
                record(
                    "target_to",
                    f"<= {rating.target_from} for a downgrade",
                    rating.target_to,
                )
            elif rating.is_target_raise() and target_to < target_from:
                record("target_to", f">= {rating.target_from} for a target raise", rating.target_to)
            elif rating.is_target_cut() and target_to > target_from:
                record("target_to", f"<= {rating.target_from} for a target cut", rating.target_to)

        return found
