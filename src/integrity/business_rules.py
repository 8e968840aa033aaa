"""
Business Rule Validator.

Static domain invariants checked per record, independent of other records.
"""

import re

from src.domain.entities import NIL_UUID, Brokerage, Company, StockRating, normalize_action
from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    StockRatingRepository,
)
from src.integrity.integrity_logger import IntegrityLogger
from src.integrity.models import (
    BusinessReport,
    EntityType,
    RuleViolation,
    Severity,
    derive_status,
)
from src.integrity.validation_config import ValidationConfig, length_violation_message

CATEGORY = "business_rules"


class BusinessRuleValidator:
    """
    Validates required fields, length bounds, ticker format and rating
    transitions.

    An entity whose violation count reaches its rule set's
    ``violations_for_critical`` has all of its violations marked critical.
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
        self._ticker_re = re.compile(config.rules.company.ticker_pattern)

    async def detect_violations(self) -> BusinessReport:
        self._sink.validation_start(CATEGORY)
        report = BusinessReport()
        rules = self._config.rules

        for company in await self._companies.list_all():
            report.invalid_companies.extend(
                _with_severity(self.check_company(company), rules.company.violations_for_critical)
            )

        for brokerage in await self._brokerages.list_all():
            report.invalid_brokerages.extend(
                _with_severity(
                    self.check_brokerage(brokerage), rules.brokerage.violations_for_critical
                )
            )

        for rating in await self._ratings.list_all():
            report.invalid_stock_ratings.extend(
                _with_severity(
                    self.check_rating(rating), rules.stock_rating.violations_for_critical
                )
            )

        violations = report.all_items()
        for violation in violations:
            self._sink.issue_detected(
                CATEGORY,
                violation.entity_id,
                entity_type=violation.entity_type.value,
                rule=violation.rule,
                severity=violation.severity.value,
            )

        report.total_violations = len(violations)
        report.status = derive_status(
            report.total_violations,
            report.critical_count,
            self._config.thresholds.business_rules_warning_limit,
        )

        self._sink.validation_end(CATEGORY, report.total_violations, report.status.value)
        return report

    def check_company(self, company: Company) -> list[RuleViolation]:
        rules = self._config.rules.company
        found: list[RuleViolation] = []

        def violate(rule: str, details: str) -> None:
            found.append(RuleViolation(EntityType.COMPANY, company.id, rule, details))

        ticker = company.ticker.strip()
        if not ticker:
            violate("required_ticker", "ticker is required")
        else:
            if not rules.ticker_min_length <= len(ticker) <= rules.ticker_max_length:
                violate(
                    "ticker_length",
                    length_violation_message(
                        "ticker", ticker, rules.ticker_min_length, rules.ticker_max_length
                    ),
                )
            if not self._ticker_re.match(ticker):
                violate("ticker_format", f"ticker {ticker!r} does not match {rules.ticker_pattern}")

        name = company.name.strip()
        if not name:
            violate("required_name", "name is required")
        elif not rules.name_min_length <= len(name) <= rules.name_max_length:
            violate(
                "name_length",
                length_violation_message("name", name, rules.name_min_length, rules.name_max_length),
            )

        if company.market_cap < 0:
            violate("non_negative_market_cap", f"market cap {company.market_cap} is negative")

        return found

    def check_brokerage(self, brokerage: Brokerage) -> list[RuleViolation]:
        rules = self._config.rules.brokerage
        name = brokerage.name.strip()

        if not name:
            return [RuleViolation(EntityType.BROKERAGE, brokerage.id, "required_name", "name is required")]
        if not rules.name_min_length <= len(name) <= rules.name_max_length:
            return [
                RuleViolation(
                    EntityType.BROKERAGE,
                    brokerage.id,
                    "name_length",
                    length_violation_message(
                        "name", name, rules.name_min_length, rules.name_max_length
                    ),
                )
            ]
        return []

    def check_rating(self, rating: StockRating) -> list[RuleViolation]:
        rules = self._config.rules.stock_rating
        found: list[RuleViolation] = []

        def violate(rule: str, details: str) -> None:
            found.append(RuleViolation(EntityType.STOCK_RATING, rating.id, rule, details))

        action = normalize_action(rating.action)
        if not action:
            violate("required_action", "action is required")
        if rating.company_id == NIL_UUID:
            violate("required_company_id", "company reference is required")
        if rating.brokerage_id == NIL_UUID:
            violate("required_brokerage_id", "brokerage reference is required")

        rating_from = rating.rating_from.strip().casefold()
        rating_to = rating.rating_to.strip().casefold()
        unchanged_allowed = {normalize_action(a) for a in rules.unchanged_rating_actions}
        if rating_from and rating_from == rating_to and action and action not in unchanged_allowed:
            violate(
                "rating_transition",
                f"rating unchanged ({rating.rating_to.strip()}) for action {action!r}",
            )

        return found


def _with_severity(violations: list[RuleViolation], violations_for_critical: int) -> list[RuleViolation]:
    severity = (
        Severity.CRITICAL if len(violations) >= violations_for_critical else Severity.WARNING
    )
    for violation in violations:
        violation.severity = severity
    return violations
