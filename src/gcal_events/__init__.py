"""Active-record access to Google Calendar events."""

from gcal_events.config import (
    CalendarSettings,
    ConfigError,
    GcalEventsConfig,
    LoggingConfig,
    load_config,
    settings_from_env,
)
from gcal_events.event import FIELD_ALIASES, Event, EventFieldFormatError, SaveMethod
from gcal_events.gateway import (
    CalendarGateway,
    CalendarGatewayError,
    CalendarNotFoundError,
    CalendarRequestError,
    CalendarTransportError,
    GatewayFactory,
    GoogleCalendarGateway,
)
from gcal_events.logging import configure_logging

__all__ = [
    "FIELD_ALIASES",
    "CalendarGateway",
    "CalendarGatewayError",
    "CalendarNotFoundError",
    "CalendarRequestError",
    "CalendarSettings",
    "CalendarTransportError",
    "ConfigError",
    "Event",
    "EventFieldFormatError",
    "GatewayFactory",
    "GcalEventsConfig",
    "GoogleCalendarGateway",
    "LoggingConfig",
    "SaveMethod",
    "configure_logging",
    "load_config",
    "settings_from_env",
]
