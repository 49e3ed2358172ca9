"""Tests for config section models — defaults and bounds."""

import pytest
from pydantic import ValidationError

from lendctl.config.models import (
    DatabaseConfig,
    DispatchConfig,
    LendingConfig,
    LoggingConfig,
    NotificationsConfig,
    ScannerConfig,
)


class TestDefaults:
    def test_section_defaults(self) -> None:
        assert DatabaseConfig().path == ".lendctl/lendctl.db"
        assert LendingConfig().loan_days == 14
        assert ScannerConfig().interval_seconds == 86400
        assert DispatchConfig().max_workers == 4
        assert NotificationsConfig().retention_days == 30

    def test_zero_retention_allowed(self) -> None:
        assert NotificationsConfig(retention_days=0).retention_days == 0


class TestBounds:
    @pytest.mark.parametrize(
        ("model", "field"),
        [
            (LendingConfig, "loan_days"),
            (ScannerConfig, "interval_seconds"),
            (DispatchConfig, "max_workers"),
            (DispatchConfig, "max_retries"),
        ],
    )
    def test_must_be_positive(self, model: type, field: str) -> None:
        with pytest.raises(ValidationError):
            model(**{field: 0})

    def test_frozen(self) -> None:
        config = LendingConfig()
        with pytest.raises(ValidationError):
            config.loan_days = 30  # type: ignore[misc]


class TestLoggingConfig:
    def test_empty_by_default(self) -> None:
        assert LoggingConfig().levels == {}

    def test_level_names_case_insensitive(self) -> None:
        config = LoggingConfig(levels={"dispatch": "debug", "lendctl.telemetry": "Info"})
        assert config.levels["dispatch"] == "debug"

    def test_unknown_level(self) -> None:
        with pytest.raises(ValidationError, match="Unknown log level"):
            LoggingConfig(levels={"scanner": "loud"})
