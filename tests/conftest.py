"""Shared fixtures: a gateway factory wired to in-memory calendars."""

from __future__ import annotations

import pytest
from _test_helpers import FakeGateway, FakeGatewayRegistry

from gcal_events.config import CalendarSettings
from gcal_events.gateway import GatewayFactory


@pytest.fixture
def settings() -> CalendarSettings:
    return CalendarSettings(calendar_id="primary", timezone="Europe/Amsterdam")


@pytest.fixture
def registry() -> FakeGatewayRegistry:
    return FakeGatewayRegistry()


@pytest.fixture
def gateways(settings: CalendarSettings, registry: FakeGatewayRegistry) -> GatewayFactory:
    return GatewayFactory(settings, gateway_builder=registry)


@pytest.fixture
def primary(gateways: GatewayFactory, registry: FakeGatewayRegistry) -> FakeGateway:
    return registry("primary")
