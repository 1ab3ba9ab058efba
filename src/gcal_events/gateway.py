"""Calendar gateway contract and the Google Calendar implementation.

This module defines:
- ``CalendarGateway``: the persistence contract used by ``Event``
- ``GoogleCalendarGateway``: a synchronous Google Calendar v3 client over httpx
- ``GatewayFactory``: resolves a gateway for an explicit or default calendar id
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from types import TracebackType
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from gcal_events.config import CalendarSettings

if TYPE_CHECKING:
    from gcal_events.event import Event

logger = logging.getLogger(__name__)

GatewayBuilder = Callable[[str], "CalendarGateway"]


class CalendarGatewayError(RuntimeError):
    """Base error raised by calendar gateways."""


class CalendarTransportError(CalendarGatewayError):
    """Raised when the HTTP exchange itself fails (connection, timeout, ...)."""


class CalendarRequestError(CalendarGatewayError):
    """Raised when the Google Calendar API answers with a non-2xx status."""

    def __init__(self, *, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Google Calendar API request failed ({status_code}): {message}")


class CalendarNotFoundError(CalendarRequestError):
    """Raised when the calendar or event does not exist."""

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(status_code=404, message=message)


def _google_rfc3339(value: datetime) -> str:
    normalized = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    return normalized.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _safe_google_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error_payload = payload.get("error")
        if isinstance(error_payload, dict):
            message = error_payload.get("message")
            if isinstance(message, str) and message.strip():
                return " ".join(message.split())[:200]
        if isinstance(error_payload, str) and error_payload.strip():
            return " ".join(error_payload.split())[:200]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:200]
    return "Request failed without an error payload"


def _require_id(value: str | None, field_name: str) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise ValueError(f"{field_name} must be a non-empty string")
    return normalized


class CalendarGateway(abc.ABC):
    """Persistence operations for the events of a single calendar."""

    @property
    @abc.abstractmethod
    def calendar_id(self) -> str:
        """Identifier of the calendar this gateway talks to."""
        ...

    @abc.abstractmethod
    def list_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        query_params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return raw payloads of events overlapping ``[start, end]``.

        Either bound may be ``None`` for an open interval.
        """
        ...

    @abc.abstractmethod
    def get_event(self, event_id: str) -> dict[str, Any]:
        """Fetch a single raw payload; raise ``CalendarNotFoundError`` if absent."""
        ...

    @abc.abstractmethod
    def insert_event(self, event: Event) -> dict[str, Any]:
        """Create *event* remotely and return the stored payload."""
        ...

    @abc.abstractmethod
    def update_event(self, event: Event) -> dict[str, Any]:
        """Replace the remote copy of *event* and return the stored payload."""
        ...

    @abc.abstractmethod
    def delete_event(self, event_id: str) -> None:
        """Delete an event by id."""
        ...


class GoogleCalendarGateway(CalendarGateway):
    """Google Calendar v3 events resource, one HTTP request per operation.

    Authentication is a bearer token supplied by the caller; token refresh,
    paging through ``nextPageToken`` and retry are not handled here.
    """

    def __init__(
        self,
        calendar_id: str,
        http_client: httpx.Client,
        *,
        api_base_url: str,
        access_token: str | None = None,
    ) -> None:
        self._calendar_id = _require_id(calendar_id, "calendar_id")
        self._http_client = http_client
        self._api_base_url = api_base_url.rstrip("/")
        self._access_token = access_token

    @property
    def calendar_id(self) -> str:
        return self._calendar_id

    def _events_path(self, event_id: str | None = None) -> str:
        path = f"/calendars/{quote(self._calendar_id, safe='')}/events"
        if event_id is not None:
            path = f"{path}/{quote(event_id, safe='')}"
        return path

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self._api_base_url}{path}"
        headers: dict[str, str] = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        logger.debug("Calendar API %s %s", method, path)
        try:
            response = self._http_client.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise CalendarTransportError(f"Google Calendar request failed: {exc}") from exc

        if response.status_code == 404:
            raise CalendarNotFoundError(_safe_google_error_message(response))
        if response.status_code < 200 or response.status_code >= 300:
            raise CalendarRequestError(
                status_code=response.status_code,
                message=_safe_google_error_message(response),
            )
        return response

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = self._request(method, path, params=params, json_body=json_body)
        try:
            payload = response.json()
        except ValueError as exc:
            raise CalendarGatewayError(
                "Google Calendar API returned invalid JSON for a successful response"
            ) from exc

        if not isinstance(payload, dict):
            raise CalendarGatewayError(
                "Google Calendar API returned an unexpected JSON payload shape"
            )
        return payload

    def list_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        query_params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"singleEvents": True}
        if start is not None:
            params["timeMin"] = _google_rfc3339(start)
        if end is not None:
            params["timeMax"] = _google_rfc3339(end)
        if query_params:
            params.update(query_params)

        payload = self._request_json("GET", self._events_path(), params=params)
        items = payload.get("items")
        if not isinstance(items, list):
            raise CalendarGatewayError("Google Calendar list_events response missing items array")
        return [item for item in items if isinstance(item, dict)]

    def get_event(self, event_id: str) -> dict[str, Any]:
        normalized_event_id = _require_id(event_id, "event_id")
        return self._request_json("GET", self._events_path(normalized_event_id))

    def insert_event(self, event: Event) -> dict[str, Any]:
        return self._request_json("POST", self._events_path(), json_body=event.payload)

    def update_event(self, event: Event) -> dict[str, Any]:
        normalized_event_id = _require_id(event.id, "event_id")
        return self._request_json(
            "PUT",
            self._events_path(normalized_event_id),
            json_body=event.payload,
        )

    def delete_event(self, event_id: str) -> None:
        normalized_event_id = _require_id(event_id, "event_id")
        self._request("DELETE", self._events_path(normalized_event_id))


class GatewayFactory:
    """Resolve calendar gateways from an explicit id or the configured default.

    When no ``http_client`` is given the factory creates one on first use and
    closes it in :meth:`close`; a caller-supplied client is left open.
    """

    def __init__(
        self,
        settings: CalendarSettings,
        http_client: httpx.Client | None = None,
        gateway_builder: GatewayBuilder | None = None,
    ) -> None:
        self.settings = settings
        self._gateway_builder = gateway_builder
        self._owns_http_client = http_client is None
        self._http_client = http_client

    def resolve_calendar_id(self, calendar_id: str | None = None) -> str:
        if calendar_id is None or not calendar_id.strip():
            return self.settings.calendar_id
        return calendar_id.strip()

    def for_calendar(self, calendar_id: str | None = None) -> CalendarGateway:
        resolved = self.resolve_calendar_id(calendar_id)
        if self._gateway_builder is not None:
            return self._gateway_builder(resolved)
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=self.settings.timeout_seconds)
        return GoogleCalendarGateway(
            resolved,
            self._http_client,
            api_base_url=self.settings.api_base_url,
            access_token=self.settings.access_token,
        )

    def close(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> GatewayFactory:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
