"""
Unit Tests for Application Settings.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.config.settings import IntegritySettings, ObservabilitySettings, Settings


class TestSettings:
    """Test cases for Settings."""

    def test_env_overrides(self, test_settings: Settings) -> None:
        assert test_settings.neo4j.password.get_secret_value() == "password123"
        assert test_settings.integrity.duplicates_warning_limit == 7
        assert test_settings.integrity.duplicate_window_hours == 12
        assert test_settings.integrity.orphans_critical_limit == 0

    def test_integrity_defaults(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = IntegritySettings()

        assert settings.consistency_warning_limit == 5
        assert settings.repair_max_retries == 3
        assert settings.validation_timeout_seconds == 300.0

    def test_negative_limits_are_rejected(self) -> None:
        with patch.dict("os.environ", {"INTEGRITY_DUPLICATES_WARNING_LIMIT": "-1"}):
            with pytest.raises(ValidationError):
                IntegritySettings()

    def test_log_format_is_case_insensitive(self) -> None:
        with patch.dict("os.environ", {"OBSERVABILITY_LOG_FORMAT": "CONSOLE"}):
            assert ObservabilitySettings().log_format == "console"

    def test_password_is_not_rendered(self, test_settings: Settings) -> None:
        assert "password123" not in repr(test_settings.neo4j)
