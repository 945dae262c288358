"""Application configuration powered by Pydantic settings."""

from __future__ import annotations

import json
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from zonepilot.core.policy import PolicyThresholds

_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def _camel_to_snake(name: str) -> str:
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


class Settings(BaseSettings):
    """Centralized configuration object with environment fallbacks."""

    model_config = SettingsConfigDict(env_prefix="ZONEPILOT_", env_file=".env", extra="ignore")

    # tado° account
    username: str = Field(default="")
    password: str = Field(default="")
    refresh_token: str = Field(default="")

    # tado° endpoints
    api_url: AnyUrl | str = Field(default="https://my.tado.com/api/v2")
    auth_url: AnyUrl | str = Field(default="https://auth.tado.com/oauth/token")
    client_id: str = Field(default="public-api-preview")
    client_secret: str = Field(default="4HJGRffVR8xb3XdEUQpjgZ1VplJi6Xgw")
    http_timeout: float = Field(default=15.0, gt=0)

    # Run loop
    debug: bool = False
    log_level: str = Field(default="info")
    dry_run: bool = False
    fail_fast: bool = False
    interval_minutes: int = Field(default=0, ge=0)

    # Policy thresholds
    manual_guard_minutes: float = Field(default=10.0, ge=0)
    lookahead_minutes: float = Field(default=5.0, ge=0)
    comfort_margin_c: float = Field(default=0.5, ge=0)
    turn_off_margin_c: float = Field(default=0.5, ge=0)
    boost_delta_c: float = Field(default=2.0, ge=0)
    boost_high_delta_c: float = Field(default=4.0, ge=0)
    dry_humidity_upper: float = Field(default=50.0, gt=0, le=100)
    dry_humidity_lower: float = Field(default=40.0, gt=0, le=100)
    boost_minutes: float = Field(default=10.0, gt=0)
    short_off_minutes: float = Field(default=10.0, gt=0)
    long_off_minutes: float = Field(default=15.0, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = str(v).strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @property
    def has_credentials(self) -> bool:
        return bool(self.refresh_token or (self.username and self.password))

    def policy_thresholds(self) -> PolicyThresholds:
        """Build the policy constants from the configured values."""

        return PolicyThresholds(
            manual_guard=timedelta(minutes=self.manual_guard_minutes),
            lookahead=timedelta(minutes=self.lookahead_minutes),
            comfort_margin_c=self.comfort_margin_c,
            turn_off_margin_c=self.turn_off_margin_c,
            boost_delta_c=self.boost_delta_c,
            boost_high_delta_c=self.boost_high_delta_c,
            dry_humidity_upper=self.dry_humidity_upper,
            dry_humidity_lower=self.dry_humidity_lower,
            boost_duration=timedelta(minutes=self.boost_minutes),
            short_off_duration=timedelta(minutes=self.short_off_minutes),
            long_off_duration=timedelta(minutes=self.long_off_minutes),
        )


def load_settings(config_file: Path | str | None = None, **overrides: Any) -> Settings:
    """Load settings from the environment, layered under an optional JSON file.

    Keys in the file may be camelCase or snake_case; ``overrides`` win over
    both.
    """

    data: dict[str, Any] = {}
    if config_file is not None:
        path = Path(config_file)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Decode {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Decode {path}: expected a JSON object")
        data = {_camel_to_snake(k): v for k, v in raw.items()}
    data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
