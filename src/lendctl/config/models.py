"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, lendctl.toml only contains
overrides. A fresh deployment needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from lendctl.config.logging import resolve_level
from lendctl.domain.lifecycle import DEFAULT_LOAN_DAYS, DEFAULT_REMINDER_WINDOW_DAYS


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    path: str = ".lendctl/lendctl.db"


class LendingConfig(BaseModel):
    """[lending] section."""

    model_config = {"frozen": True}

    loan_days: int = Field(default=DEFAULT_LOAN_DAYS, gt=0)


class ScannerConfig(BaseModel):
    """[scanner] section."""

    model_config = {"frozen": True}

    interval_seconds: int = Field(default=86400, gt=0)
    reminder_window_days: int = Field(default=DEFAULT_REMINDER_WINDOW_DAYS, ge=0)


class DispatchConfig(BaseModel):
    """[dispatch] section."""

    model_config = {"frozen": True}

    max_workers: int = Field(default=4, gt=0)
    max_retries: int = Field(default=3, gt=0)


class NotificationsConfig(BaseModel):
    """[notifications] section."""

    model_config = {"frozen": True}

    retention_days: int = Field(default=30, ge=0)



class LoggingConfig(BaseModel):
    """[logging] section: per-logger level overrides."""

    model_config = {"frozen": True}

    levels: dict[str, str] = Field(default_factory=dict)

    @field_validator("levels")
    @classmethod
    def _known_levels(cls, value: dict[str, str]) -> dict[str, str]:
        for level in value.values():
            resolve_level(level)
        return value
