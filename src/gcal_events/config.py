"""Configuration loading and validation.

Settings come from a TOML file (``[calendar]`` and optional ``[logging]``
tables) or from ``GOOGLE_CALENDAR_*`` environment variables. String values in
the TOML file may reference environment variables as ``${VAR_NAME}``.
"""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"

CALENDAR_ID_ENV = "GOOGLE_CALENDAR_ID"
CALENDAR_TIMEZONE_ENV = "GOOGLE_CALENDAR_TIMEZONE"
CALENDAR_ACCESS_TOKEN_ENV = "GOOGLE_CALENDAR_ACCESS_TOKEN"

# Pattern matching ${VAR_NAME} — alphanumeric + underscore variable names.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigError(Exception):
    """Raised when configuration is missing, malformed, or invalid."""


class CalendarSettings(BaseModel):
    """Connection settings and defaults for the calendar gateway."""

    calendar_id: str = Field(min_length=1)
    timezone: str = "UTC"
    api_base_url: str = GOOGLE_CALENDAR_API_BASE_URL
    timeout_seconds: float = Field(default=30.0, gt=0)
    access_token: str | None = None

    @field_validator("calendar_id", "timezone", "api_base_url")
    @classmethod
    def _normalize_non_empty(cls, value: str, info: ValidationInfo) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError(f"{info.field_name} must be a non-empty string")
        return normalized

    @field_validator("timezone")
    @classmethod
    def _ensure_valid_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"timezone must be a valid IANA timezone: {value}") from exc
        return value

    @field_validator("access_token")
    @classmethod
    def _normalize_optional_token(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @property
    def zoneinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass
class LoggingConfig:
    """Logging configuration from the [logging] table."""

    level: str = "INFO"
    format: Literal["text", "json"] = "text"
    log_file: str | None = None


@dataclass
class GcalEventsConfig:
    """Fully parsed configuration file."""

    calendar: CalendarSettings
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings. Non-string leaf values are returned
    unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _parse_logging(raw: Any) -> LoggingConfig:
    if raw is None:
        return LoggingConfig()
    if not isinstance(raw, dict):
        raise ConfigError("[logging] must be a table")

    level = raw.get("level", "INFO")
    if not isinstance(level, str) or not level.strip():
        raise ConfigError("logging.level must be a non-empty string")

    fmt = raw.get("format", "text")
    if fmt not in ("text", "json"):
        raise ConfigError(f"logging.format must be 'text' or 'json', got {fmt!r}")

    log_file = raw.get("log_file")
    if log_file is not None and not isinstance(log_file, str):
        raise ConfigError("logging.log_file must be a string")

    return LoggingConfig(level=level.strip().upper(), format=fmt, log_file=log_file)


def _build_settings(raw: Mapping[str, Any]) -> CalendarSettings:
    try:
        return CalendarSettings.model_validate(dict(raw))
    except ValidationError as exc:
        raise ConfigError(f"Invalid calendar settings: {exc}") from exc


def load_config(config_path: Path) -> GcalEventsConfig:
    """Load and validate a TOML configuration file.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or lacks required fields.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        data = tomllib.loads(config_path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {config_path}: {exc}") from exc

    data = resolve_env_vars(data)

    calendar_section = data.get("calendar")
    if not isinstance(calendar_section, dict):
        raise ConfigError("Missing [calendar] section in config")

    return GcalEventsConfig(
        calendar=_build_settings(calendar_section),
        logging=_parse_logging(data.get("logging")),
    )


def settings_from_env(environ: Mapping[str, str] | None = None) -> CalendarSettings:
    """Build settings from ``GOOGLE_CALENDAR_*`` environment variables."""
    env = os.environ if environ is None else environ

    calendar_id = env.get(CALENDAR_ID_ENV)
    if not calendar_id:
        raise ConfigError(f"Missing required environment variable: {CALENDAR_ID_ENV}")

    raw: dict[str, Any] = {"calendar_id": calendar_id}
    timezone = env.get(CALENDAR_TIMEZONE_ENV)
    if timezone:
        raw["timezone"] = timezone
    access_token = env.get(CALENDAR_ACCESS_TOKEN_ENV)
    if access_token:
        raw["access_token"] = access_token
    return _build_settings(raw)
