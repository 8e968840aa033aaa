"""
Unit Tests for Validation Configuration.
"""

from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from src.integrity.validation_config import (
    ValidationConfig,
    default_validation_config,
    length_violation_message,
)


class TestValidationConfig:
    """Test cases for ValidationConfig."""

    def test_defaults(self) -> None:
        """Test default rule and threshold values."""
        config = default_validation_config()

        assert config.rules.company.ticker_max_length == 10
        assert config.rules.company.name_max_length == 200
        assert config.rules.company.violations_for_critical == 3
        assert config.rules.brokerage.name_max_length == 100
        assert config.rules.brokerage.violations_for_critical == 2
        assert config.rules.stock_rating.max_age_years_business == 20
        assert config.rules.stock_rating.duplicate_window == timedelta(days=1)
        assert config.thresholds.orphans_critical_limit == 0
        assert config.thresholds.consistency_warning_limit == 5
        assert config.thresholds.duplicates_warning_limit == 3
        assert config.thresholds.business_rules_warning_limit == 5
        assert config.thresholds.max_recommendations == 10

    def test_config_is_immutable(self) -> None:
        """Test that configuration values cannot be reassigned."""
        config = default_validation_config()

        with pytest.raises(FrozenInstanceError):
            config.rules.company.violations_for_critical = 1  # type: ignore[misc]

    def test_with_overrides_returns_new_config(self) -> None:
        """Test that overrides leave the original config untouched."""
        base = default_validation_config()

        custom = base.with_overrides(
            company={"violations_for_critical": 1},
            thresholds={"duplicates_warning_limit": 0},
        )

        assert custom.rules.company.violations_for_critical == 1
        assert custom.thresholds.duplicates_warning_limit == 0
        assert custom.rules.company.name_max_length == 200
        assert base.rules.company.violations_for_critical == 3
        assert base.thresholds.duplicates_warning_limit == 3

    def test_with_overrides_rejects_unknown_field(self) -> None:
        """Test that misspelled override fields fail loudly."""
        with pytest.raises(TypeError):
            default_validation_config().with_overrides(company={"name_max_lenght": 5})

    def test_from_settings(self, test_settings) -> None:
        """Test that environment settings override the defaults."""
        config = ValidationConfig.from_settings(test_settings.integrity)

        assert config.thresholds.duplicates_warning_limit == 7
        assert config.rules.stock_rating.duplicate_window == timedelta(hours=12)
        assert config.rules.company.violations_for_critical == 3

    def test_to_dict_is_json_ready(self) -> None:
        """Test serialization of timedeltas and tuples."""
        data = default_validation_config().to_dict()

        assert data["rules"]["stock_rating"]["duplicate_window"] == 86400.0
        assert "reiterated by" in data["rules"]["stock_rating"]["unchanged_rating_actions"]
        assert isinstance(data["rules"]["stock_rating"]["allowed_ratings"], list)
        assert data["thresholds"]["max_recommendations"] == 10

    def test_allowed_rating_is_case_insensitive(self) -> None:
        rules = default_validation_config().rules.stock_rating

        assert rules.is_allowed_rating("buy")
        assert rules.is_allowed_rating(" Market Perform ")
        assert not rules.is_allowed_rating("Moon")

    def test_length_violation_message(self) -> None:
        assert length_violation_message("name", "A", 2, 100) == "name length 1 is outside [2, 100]"
