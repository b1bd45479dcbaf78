"""Tests for configuration module."""

import pytest
from pydantic import ValidationError
from seatalert.core.config import Settings, require_config, settings


class TestRequireConfig:
    """Tests for require_config function."""

    def test_require_config_passes_when_all_fields_present(self) -> None:
        """Test that require_config passes when all required fields are set."""
        require_config("CELERY_BROKER_URL", "AVAILABILITY_API_URL")

    def test_require_config_raises_when_field_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that require_config raises ValueError when a field is None."""
        monkeypatch.setattr(settings, "AVAILABILITY_API_URL", None)

        with pytest.raises(ValueError, match="Required configuration missing: AVAILABILITY_API_URL"):
            require_config("AVAILABILITY_API_URL")

    def test_require_config_raises_when_field_whitespace_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that require_config treats whitespace as missing."""
        monkeypatch.setattr(settings, "CELERY_BROKER_URL", "   ")

        with pytest.raises(ValueError, match="Required configuration missing: CELERY_BROKER_URL"):
            require_config("CELERY_BROKER_URL")

    def test_require_config_raises_with_multiple_missing_fields(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that require_config lists all missing fields in error message."""
        monkeypatch.setattr(settings, "AVAILABILITY_API_URL", None)
        monkeypatch.setattr(settings, "CELERY_RESULT_BACKEND", "")

        with pytest.raises(ValueError, match="Required configuration missing:") as exc_info:
            require_config("AVAILABILITY_API_URL", "CELERY_RESULT_BACKEND")

        error_message = str(exc_info.value)
        assert "AVAILABILITY_API_URL" in error_message
        assert "CELERY_RESULT_BACKEND" in error_message

    def test_require_config_raises_when_field_does_not_exist(self) -> None:
        """Test that require_config raises ValueError when field doesn't exist on settings."""
        with pytest.raises(ValueError, match="Required configuration missing: NONEXISTENT_FIELD"):
            require_config("NONEXISTENT_FIELD")


class TestDefaults:
    """Defaults the worker relies on when nothing is configured."""

    def test_reconciliation_defaults(self) -> None:
        fresh = Settings(_env_file=None)

        assert fresh.ALERT_CHECK_INTERVAL_SECONDS == 60.0
        assert fresh.AVAILABILITY_API_TIMEOUT == 30.0
        assert fresh.ALERT_PASS_LOCK_KEY == "search_alerts:pass_lock"
        assert fresh.EXPO_PUSH_URL == "https://exp.host/--/api/v2/push/send"

    def test_secrets_read_from_prefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SECRET_AVAILABILITY_API_KEY", "key-123")
        monkeypatch.setenv("SECRET_DATABASE_URL", "postgresql+asyncpg://u:p@db:5432/seatalert")

        fresh = Settings(_env_file=None)

        assert fresh.AVAILABILITY_API_KEY == "key-123"
        assert fresh.DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/seatalert"


class TestValidateDisplayTimezone:
    """Tests for validate_display_timezone field validator."""

    def test_accepts_iana_name(self) -> None:
        assert Settings.validate_display_timezone("Europe/Istanbul") == "Europe/Istanbul"
        assert Settings.validate_display_timezone("UTC") == "UTC"

    def test_rejects_unknown_zone(self) -> None:
        with pytest.raises(ValueError, match="Invalid DISPLAY_TIMEZONE"):
            Settings.validate_display_timezone("Mars/Olympus_Mons")

    def test_invalid_zone_from_environment_fails_validation(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISPLAY_TIMEZONE", "Not/AZone")

        with pytest.raises(ValidationError, match="Invalid DISPLAY_TIMEZONE"):
            Settings(_env_file=None)


class TestValidateLogLevelValidator:
    """Tests for validate_log_level field validator."""

    def test_validate_log_level_with_valid_levels(self) -> None:
        """Test validate_log_level accepts all valid log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            assert Settings.validate_log_level(level) == level

    def test_validate_log_level_normalizes_to_uppercase(self) -> None:
        """Test validate_log_level converts lowercase to uppercase."""
        assert Settings.validate_log_level("debug") == "DEBUG"
        assert Settings.validate_log_level("Warning") == "WARNING"

    def test_validate_log_level_raises_on_invalid(self) -> None:
        """Test validate_log_level raises ValueError for invalid levels."""
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            Settings.validate_log_level("TRACE")

        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            Settings.validate_log_level("")
