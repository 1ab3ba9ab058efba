"""Unit tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from gcal_events.config import (
    CALENDAR_ACCESS_TOKEN_ENV,
    CALENDAR_ID_ENV,
    CALENDAR_TIMEZONE_ENV,
    GOOGLE_CALENDAR_API_BASE_URL,
    CalendarSettings,
    ConfigError,
    LoggingConfig,
    load_config,
    resolve_env_vars,
    settings_from_env,
)

pytestmark = pytest.mark.unit


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "gcal-events.toml"
    path.write_text(content)
    return path


class TestCalendarSettings:
    def test_defaults(self):
        settings = CalendarSettings(calendar_id="primary")
        assert settings.timezone == "UTC"
        assert settings.api_base_url == GOOGLE_CALENDAR_API_BASE_URL
        assert settings.timeout_seconds == 30.0
        assert settings.access_token is None

    def test_strips_calendar_id(self):
        assert CalendarSettings(calendar_id="  primary ").calendar_id == "primary"

    @pytest.mark.parametrize("calendar_id", ["", "   "])
    def test_rejects_empty_calendar_id(self, calendar_id: str):
        with pytest.raises(ValueError):
            CalendarSettings(calendar_id=calendar_id)

    def test_rejects_unknown_timezone(self):
        with pytest.raises(ValueError, match="timezone"):
            CalendarSettings(calendar_id="primary", timezone="Mars/Olympus_Mons")

    def test_blank_access_token_becomes_none(self):
        assert CalendarSettings(calendar_id="primary", access_token="  ").access_token is None

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            CalendarSettings(calendar_id="primary", timeout_seconds=0)


class TestResolveEnvVars:
    def test_resolves_nested_values(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CAL_ID", "team@example.com")
        raw = {"calendar": {"calendar_id": "${CAL_ID}", "ids": ["x-${CAL_ID}"], "n": 3}}
        assert resolve_env_vars(raw) == {
            "calendar": {
                "calendar_id": "team@example.com",
                "ids": ["x-team@example.com"],
                "n": 3,
            }
        }

    def test_missing_variable_raises(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        with pytest.raises(ConfigError, match="NOT_SET_ANYWHERE"):
            resolve_env_vars("${NOT_SET_ANYWHERE}")


class TestLoadConfig:
    def test_loads_calendar_and_logging(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GCAL_TOKEN", "ya29.token")
        path = _write(
            tmp_path,
            """
[calendar]
calendar_id = "primary"
timezone = "Europe/Amsterdam"
access_token = "${GCAL_TOKEN}"

[logging]
level = "debug"
format = "json"
log_file = "logs/gcal.log"
""",
        )

        config = load_config(path)

        assert config.calendar.calendar_id == "primary"
        assert config.calendar.timezone == "Europe/Amsterdam"
        assert config.calendar.access_token == "ya29.token"
        assert config.logging == LoggingConfig(
            level="DEBUG", format="json", log_file="logs/gcal.log"
        )

    def test_logging_section_is_optional(self, tmp_path: Path):
        config = load_config(_write(tmp_path, '[calendar]\ncalendar_id = "primary"\n'))
        assert config.logging == LoggingConfig()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(_write(tmp_path, "[calendar\n"))

    def test_missing_calendar_section(self, tmp_path: Path):
        with pytest.raises(ConfigError, match=r"\[calendar\]"):
            load_config(_write(tmp_path, '[logging]\nlevel = "INFO"\n'))

    def test_invalid_settings_are_config_errors(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Invalid calendar settings"):
            load_config(_write(tmp_path, '[calendar]\ncalendar_id = ""\n'))

    def test_invalid_logging_format(self, tmp_path: Path):
        path = _write(tmp_path, '[calendar]\ncalendar_id = "primary"\n[logging]\nformat = "xml"\n')
        with pytest.raises(ConfigError, match="logging.format"):
            load_config(path)


class TestSettingsFromEnv:
    def test_reads_all_variables(self):
        settings = settings_from_env(
            {
                CALENDAR_ID_ENV: "primary",
                CALENDAR_TIMEZONE_ENV: "Asia/Tokyo",
                CALENDAR_ACCESS_TOKEN_ENV: "tok",
            }
        )
        assert settings.calendar_id == "primary"
        assert settings.timezone == "Asia/Tokyo"
        assert settings.access_token == "tok"

    def test_only_calendar_id_is_required(self):
        settings = settings_from_env({CALENDAR_ID_ENV: "primary"})
        assert settings.timezone == "UTC"

    def test_missing_calendar_id(self):
        with pytest.raises(ConfigError, match=CALENDAR_ID_ENV):
            settings_from_env({})

    def test_reads_process_environment_by_default(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(CALENDAR_ID_ENV, "from-env")
        monkeypatch.delenv(CALENDAR_TIMEZONE_ENV, raising=False)
        monkeypatch.delenv(CALENDAR_ACCESS_TOKEN_ENV, raising=False)
        assert settings_from_env().calendar_id == "from-env"
