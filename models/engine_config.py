"""Engine configuration model.

Defaults can be overridden through ``TYPING_ENGINE_*`` environment variables.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from models.exceptions import InvalidInput

ENV_PREFIX = "TYPING_ENGINE_"

# env var suffix -> field name
ENV_FIELDS = {
    "IDLE_TIMEOUT": "idle_timeout_seconds",
    "SWEEP_INTERVAL": "sweep_interval_seconds",
    "BURST_WINDOW": "burst_window_seconds",
    "PAUSE_THRESHOLD_MS": "pause_threshold_ms",
    "TOP_MISTAKES": "top_mistakes",
    "PROGRESS_DAYS": "progress_days",
    "DB_PATH": "db_path",
    "DEBUG_MODE": "debug_mode",
}


class EngineConfig(BaseModel):
    """Tunables for the session registry, metrics, and statistics views."""

    idle_timeout_seconds: float = Field(default=30 * 60, gt=0)
    sweep_interval_seconds: float = Field(default=5 * 60, gt=0)
    burst_window_seconds: float = Field(default=10.0, gt=0)
    pause_threshold_ms: float = Field(default=2000.0, gt=0)
    top_mistakes: int = Field(default=5, ge=1)
    progress_days: int = Field(default=7, ge=1)
    leaderboard_default_limit: int = Field(default=10, ge=1)
    leaderboard_max_limit: int = Field(default=100, ge=1)
    db_path: Optional[str] = None
    debug_mode: str = "quiet"

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @field_validator("debug_mode")
    @classmethod
    def validate_debug_mode(cls, v: str) -> str:
        """Only "quiet" and "loud" are recognised."""
        v = v.lower()
        if v not in ("quiet", "loud"):
            raise ValueError("debug_mode must be 'quiet' or 'loud'")
        return v

    @field_validator("db_path")
    @classmethod
    def blank_db_path_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_intervals(self) -> "EngineConfig":
        """Validate cross-field constraints."""
        if self.sweep_interval_seconds > self.idle_timeout_seconds:
            raise ValueError("sweep_interval_seconds must not exceed idle_timeout_seconds")
        if self.leaderboard_default_limit > self.leaderboard_max_limit:
            raise ValueError("leaderboard_default_limit must not exceed leaderboard_max_limit")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from defaults overlaid with environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Raises:
            InvalidInput: If any override fails validation.
        """
        if environ is None:
            environ = os.environ
        overrides = {}
        for suffix, field_name in ENV_FIELDS.items():
            value = environ.get(ENV_PREFIX + suffix)
            if value is not None:
                overrides[field_name] = value
        try:
            return cls.model_validate(overrides)
        except ValidationError as e:
            raise InvalidInput(f"Invalid engine configuration: {e}") from e
