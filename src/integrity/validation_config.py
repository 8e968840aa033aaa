"""
Validation Configuration.

Immutable rule and threshold values for the integrity detectors.
Custom configurations are derived from the defaults:

    config = default_validation_config().with_overrides(
        company={"violations_for_critical": 1},
        thresholds={"duplicates_warning_limit": 0},
    )
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import timedelta
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from src.config.settings import IntegritySettings

DEFAULT_ALLOWED_RATINGS: tuple[str, ...] = (
    "Buy",
    "Strong-Buy",
    "Strong Buy",
    "Outperform",
    "Market Outperform",
    "Sector Outperform",
    "Overweight",
    "Positive",
    "Speculative Buy",
    "Moderate Buy",
    "Accumulate",
    "Hold",
    "Neutral",
    "Equal Weight",
    "Market Perform",
    "Sector Perform",
    "In-Line",
    "Peer Perform",
    "Sector Weight",
    "Moderate Sell",
    "Reduce",
    "Underweight",
    "Underperform",
    "Market Underperform",
    "Sector Underperform",
    "Negative",
    "Sell",
    "Strong Sell",
)


@dataclass(frozen=True)
class CompanyRules:
    ticker_min_length: int = 1
    ticker_max_length: int = 10
    ticker_pattern: str = r"^[A-Za-z0-9]+(?:[.\-][A-Za-z0-9]+)?$"
    name_min_length: int = 2
    name_max_length: int = 200
    violations_for_critical: int = 3


@dataclass(frozen=True)
class BrokerageRules:
    name_min_length: int = 2
    name_max_length: int = 100
    violations_for_critical: int = 2


@dataclass(frozen=True)
class StockRatingRules:
    max_age_years_business: int = 20
    violations_for_critical: int = 3
    allowed_ratings: tuple[str, ...] = DEFAULT_ALLOWED_RATINGS
    unchanged_rating_actions: tuple[str, ...] = ("reiterated by",)
    duplicate_window: timedelta = timedelta(days=1)

    def is_allowed_rating(self, rating: str) -> bool:
        wanted = rating.strip().casefold()
        return any(wanted == allowed.casefold() for allowed in self.allowed_ratings)


@dataclass(frozen=True)
class EntityValidationRules:
    company: CompanyRules = field(default_factory=CompanyRules)
    brokerage: BrokerageRules = field(default_factory=BrokerageRules)
    stock_rating: StockRatingRules = field(default_factory=StockRatingRules)


@dataclass(frozen=True)
class ValidationThresholds:
    """Per-category limits; a total above the limit makes the category critical."""

    orphans_critical_limit: int = 0
    consistency_warning_limit: int = 5
    duplicates_warning_limit: int = 3
    business_rules_warning_limit: int = 5
    max_recommendations: int = 10


@dataclass(frozen=True)
class ValidationConfig:
    """Complete configuration handed to the integrity service."""

    rules: EntityValidationRules = field(default_factory=EntityValidationRules)
    thresholds: ValidationThresholds = field(default_factory=ValidationThresholds)

    def with_overrides(
        self,
        company: dict[str, Any] | None = None,
        brokerage: dict[str, Any] | None = None,
        stock_rating: dict[str, Any] | None = None,
        thresholds: dict[str, Any] | None = None,
    ) -> "ValidationConfig":
        """
        Return a copy with the given fields replaced.

        Raises:
            TypeError: If an override names a field that does not exist
        """
        rules = replace(
            self.rules,
            company=replace(self.rules.company, **(company or {})),
            brokerage=replace(self.rules.brokerage, **(brokerage or {})),
            stock_rating=replace(self.rules.stock_rating, **(stock_rating or {})),
        )
        return replace(
            self,
            rules=rules,
            thresholds=replace(self.thresholds, **(thresholds or {})),
        )

    @classmethod
    def from_settings(cls, settings: "IntegritySettings") -> "ValidationConfig":
        return default_validation_config().with_overrides(
            stock_rating={
                "max_age_years_business": settings.max_age_years_business,
                "duplicate_window": timedelta(hours=settings.duplicate_window_hours),
            },
            thresholds={
                "orphans_critical_limit": settings.orphans_critical_limit,
                "consistency_warning_limit": settings.consistency_warning_limit,
                "duplicates_warning_limit": settings.duplicates_warning_limit,
                "business_rules_warning_limit": settings.business_rules_warning_limit,
                "max_recommendations": settings.max_recommendations,
            },
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        window = self.rules.stock_rating.duplicate_window
        data["rules"]["stock_rating"]["duplicate_window"] = window.total_seconds()
        data["rules"]["stock_rating"]["allowed_ratings"] = list(self.rules.stock_rating.allowed_ratings)
        data["rules"]["stock_rating"]["unchanged_rating_actions"] = list(
            self.rules.stock_rating.unchanged_rating_actions
        )
        return data


def default_validation_config() -> ValidationConfig:
    return ValidationConfig()


def length_violation_message(field_name: str, value: str, min_length: int, max_length: int) -> str:
    return f"{field_name} length {len(value)} is outside [{min_length}, {max_length}]"
