"""Active-record style proxy over a Google Calendar event payload.

``Event`` wraps the raw event resource returned by a ``CalendarGateway`` and
exposes:
- friendly aliases for common fields (``name`` -> ``summary`` and so on)
- typed reads of ``start``/``end`` boundaries as timezone-aware datetimes
- persistence (list, find, create, save, delete) through the gateway
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Mapping
from datetime import UTC, date, datetime, tzinfo
from enum import StrEnum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from gcal_events.gateway import CalendarGateway, GatewayFactory
from gcal_events.payload import get_path, set_path

logger = logging.getLogger(__name__)

FIELD_ALIASES: dict[str, str] = {
    "name": "summary",
    "description": "description",
    "startDate": "start.date",
    "endDate": "end.date",
    "startDateTime": "start.dateTime",
    "endDateTime": "end.dateTime",
}

SORT_DATE_FIELD = "sortDate"
DATE_FIELDS = frozenset({"start.date", "end.date"})
DATE_TIME_FIELDS = frozenset({"start.dateTime", "end.dateTime"})

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$", re.IGNORECASE
)


class EventFieldFormatError(ValueError):
    """Raised when a stored date or dateTime string cannot be parsed."""

    def __init__(self, field: str, value: Any, expected: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field} holds {value!r}, expected {expected}")


class SaveMethod(StrEnum):
    """Gateway operation used by :meth:`Event.save`."""

    INSERT = "insert"
    UPDATE = "update"

    @classmethod
    def _missing_(cls, value: object) -> SaveMethod | None:
        # Accept the gateway operation names, e.g. "insertEvent".
        if isinstance(value, str):
            normalized = value.strip().lower().removesuffix("event").removesuffix("_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


def field_path(name: str) -> str:
    """Translate a field alias to its payload path; other names pass through."""
    return FIELD_ALIASES.get(name, name)


def _coerce_zoneinfo(timezone: Any, default: tzinfo) -> tzinfo:
    if not isinstance(timezone, str) or not timezone.strip():
        return default
    try:
        return ZoneInfo(timezone.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return default


def _parse_date(path: str, value: Any, tz: tzinfo) -> datetime:
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise EventFieldFormatError(path, value, "a YYYY-MM-DD date")
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise EventFieldFormatError(path, value, "a YYYY-MM-DD date") from exc
    return parsed.replace(tzinfo=tz)


def _parse_rfc3339(path: str, value: Any) -> datetime:
    if not isinstance(value, str) or not _RFC3339_PATTERN.match(value):
        raise EventFieldFormatError(path, value, "an RFC3339 timestamp")
    normalized = value.upper()
    if normalized.endswith("Z"):
        normalized = f"{normalized[:-1]}+00:00"
    try:
        return datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise EventFieldFormatError(path, value, "an RFC3339 timestamp") from exc


class Event:
    """One calendar event bound to one calendar.

    Instances are either wrapped from a gateway payload (:meth:`from_payload`,
    :meth:`find`, :meth:`list_events`) or built empty and populated with
    :meth:`set` before :meth:`save`. Saving returns a *new* ``Event`` built
    from the gateway response; the instance it was called on is stale.
    """

    def __init__(
        self,
        gateways: GatewayFactory,
        calendar_id: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        self._gateways = gateways
        self._calendar_id = gateways.resolve_calendar_id(calendar_id)
        self._payload: dict[str, Any] = copy.deepcopy(dict(payload)) if payload else {}
        existing = self._payload.get("attendees")
        self._attendees: list[dict[str, Any]] = (
            [dict(a) for a in existing if isinstance(a, Mapping)]
            if isinstance(existing, list)
            else []
        )

    def __repr__(self) -> str:
        return (
            f"Event(id={self.id!r}, calendar_id={self._calendar_id!r}, "
            f"summary={self._payload.get('summary')!r})"
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        calendar_id: str,
        gateways: GatewayFactory,
    ) -> Event:
        return cls(gateways, calendar_id=calendar_id, payload=payload)

    @classmethod
    def list_events(
        cls,
        gateways: GatewayFactory,
        start: datetime | None = None,
        end: datetime | None = None,
        query_params: Mapping[str, Any] | None = None,
        calendar_id: str | None = None,
    ) -> list[Event]:
        """Return events overlapping ``[start, end]`` ordered by :attr:`sort_date`.

        Events without any start sort first; ties keep the gateway's order.
        """
        default_tz = gateways.settings.zoneinfo
        start = _with_default_zone(start, default_tz)
        end = _with_default_zone(end, default_tz)

        gateway = gateways.for_calendar(calendar_id)
        payloads = gateway.list_events(start, end, dict(query_params or {}))
        events = [cls.from_payload(p, gateway.calendar_id, gateways) for p in payloads]
        logger.debug("Listed %d events from calendar %s", len(events), gateway.calendar_id)
        return sorted(events, key=_sort_key)

    @classmethod
    def find(
        cls,
        gateways: GatewayFactory,
        event_id: str,
        calendar_id: str | None = None,
    ) -> Event:
        gateway = gateways.for_calendar(calendar_id)
        return cls.from_payload(gateway.get_event(event_id), gateway.calendar_id, gateways)

    @classmethod
    def create(
        cls,
        gateways: GatewayFactory,
        properties: Mapping[str, Any],
        calendar_id: str | None = None,
    ) -> Event:
        """Build an event from *properties* and insert it.

        Always inserts, even when *properties* carries an ``id``.
        """
        gateway = gateways.for_calendar(calendar_id)
        event = cls(gateways, calendar_id=gateway.calendar_id)
        for name, value in properties.items():
            event.set(name, value)
        return event.save(SaveMethod.INSERT)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    @property
    def id(self) -> str | None:
        return self._payload.get("id")

    @property
    def calendar_id(self) -> str:
        return self._calendar_id

    @property
    def payload(self) -> dict[str, Any]:
        """The raw event resource (live, not a copy)."""
        return self._payload

    @property
    def attendees(self) -> list[dict[str, Any]]:
        """Attendees that will be written on the next save."""
        return [dict(a) for a in self._attendees]

    @property
    def sort_date(self) -> datetime | None:
        start_date = self.get("startDate")
        if start_date:
            return start_date
        start_date_time = self.get("startDateTime")
        if start_date_time:
            return start_date_time
        return None

    def get(self, name: str) -> Any:
        """Read a field by alias or dot path.

        ``start.date``/``end.date`` come back as midnight in the boundary's
        ``timeZone`` (or the configured default), ``start.dateTime``/
        ``end.dateTime`` as aware datetimes keeping their offset. Malformed
        stored values raise :class:`EventFieldFormatError`.
        """
        if name == SORT_DATE_FIELD:
            return self.sort_date

        path = field_path(name)
        value = get_path(self._payload, path)

        if path in DATE_FIELDS:
            if value in (None, ""):
                return None
            boundary = path.split(".", 1)[0]
            tz = _coerce_zoneinfo(
                get_path(self._payload, f"{boundary}.timeZone"),
                self._gateways.settings.zoneinfo,
            )
            return _parse_date(path, value, tz)

        if path in DATE_TIME_FIELDS:
            if value in (None, ""):
                return None
            return _parse_rfc3339(path, value)

        return value

    def set(self, name: str, value: Any) -> None:
        if name == SORT_DATE_FIELD:
            raise KeyError(f"{SORT_DATE_FIELD} is derived and cannot be set")

        path = field_path(name)
        if path in DATE_FIELDS or path in DATE_TIME_FIELDS:
            self._set_date_property(path, value)
            return

        if path == "attendees":
            # Keep the pending list in step; save() writes it over the payload.
            self._attendees = [dict(a) for a in value or []]

        set_path(self._payload, path, value)

    def _set_date_property(self, path: str, value: Any) -> None:
        boundary, kind = path.split(".", 1)
        default_tz = self._gateways.settings.zoneinfo
        body: dict[str, Any] = {}

        if kind == "date":
            if not isinstance(value, date):
                raise TypeError(f"{path} expects a date or datetime, got {type(value).__name__}")
            body["date"] = value.strftime("%Y-%m-%d")
            timezone = _timezone_name(value, self._gateways.settings.timezone)
        else:
            if not isinstance(value, datetime):
                raise TypeError(f"{path} expects a datetime, got {type(value).__name__}")
            value = _with_default_zone(value, default_tz)
            timezone = _timezone_name(value, self._gateways.settings.timezone)
            body["dateTime"] = _rfc3339(value)

        if timezone is not None:
            body["timeZone"] = timezone
        self._payload[boundary] = body

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        return bool(self.id)

    def is_all_day_event(self) -> bool:
        return get_path(self._payload, "start.dateTime") in (None, "")

    def add_attendee(self, attendee: Mapping[str, Any]) -> None:
        self._attendees.append(dict(attendee))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _gateway(self) -> CalendarGateway:
        return self._gateways.for_calendar(self._calendar_id)

    def save(self, method: SaveMethod | str | None = None) -> Event:
        """Insert or update this event and return the stored version.

        Without *method*, existing events are updated and new ones inserted.
        """
        if not method:
            method = SaveMethod.UPDATE if self.exists() else SaveMethod.INSERT
        method = SaveMethod(method)

        gateway = self._gateway()
        self._payload["attendees"] = [dict(a) for a in self._attendees]

        if method is SaveMethod.UPDATE:
            stored = gateway.update_event(self)
        else:
            stored = gateway.insert_event(self)

        logger.debug(
            "Saved event %s on calendar %s via %s", stored.get("id"), gateway.calendar_id, method
        )
        return type(self).from_payload(stored, gateway.calendar_id, self._gateways)

    def delete(self, event_id: str | None = None) -> None:
        """Delete *event_id*, or this event when no id is given."""
        target = event_id if event_id else self.id
        self._gateway().delete_event(target or "")


def _with_default_zone(value: datetime | None, tz: tzinfo) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=tz)


def _rfc3339(value: datetime) -> str:
    offset = value.utcoffset()
    if offset is not None and offset.seconds % 60:
        # RFC3339 offsets are whole minutes; historic LMT offsets are not.
        value = value.astimezone(UTC)
    return value.isoformat(timespec="seconds")


def _timezone_name(value: date, default: str) -> str | None:
    tz = value.tzinfo if isinstance(value, datetime) else None
    if tz is None:
        return default
    if isinstance(tz, ZoneInfo):
        return tz.key
    return None


def _sort_key(event: Event) -> tuple[bool, datetime | None]:
    sort_date = event.sort_date
    return (sort_date is not None, sort_date)
