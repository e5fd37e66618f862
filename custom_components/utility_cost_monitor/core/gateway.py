"""Home Assistant gateway - single point of access to HA for a channel.

This module provides a clean interface to:
- Read the meter sensor
- Send notifications through a notify service

Benefits:
- Automatic retry on notify failures
- Centralized error handling
- Easy to mock for testing
"""

from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING

from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN

from ..const import NOTIFY_MAX_RETRIES, NOTIFY_RETRY_DELAY_SECONDS, NOTIFY_TIMEOUT_SECONDS
from ..monitor_logging import get_logger
from .events import UtilityEvent, UtilityEventBus

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


def parse_meter_state(raw: str | None) -> float | None:
    """Turn a state string into a meter value.

    Returns None for unknown/unavailable, non-numeric, non-finite or
    negative values.
    """
    if raw is None or raw in (STATE_UNKNOWN, STATE_UNAVAILABLE, ""):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


class UtilityGateway:
    """Abstraction layer for all HA interactions of one channel."""

    # Retry configuration
    MAX_RETRIES = NOTIFY_MAX_RETRIES
    RETRY_DELAY_SECONDS = NOTIFY_RETRY_DELAY_SECONDS
    TIMEOUT_SECONDS = NOTIFY_TIMEOUT_SECONDS

    def __init__(self, hass: HomeAssistant, events: UtilityEventBus) -> None:
        """Initialize the gateway.

        Args:
            hass: Home Assistant instance
            events: Event bus of the channel
        """
        self.hass = hass
        self.events = events
        self._logger = get_logger()

    # ========== Sensor Reading ==========

    def read_meter(self, entity_id: str) -> float | None:
        """Current value of the meter sensor, or None if unusable."""
        if not entity_id:
            self._logger.debug("METER_SENSOR_NOT_CONFIGURED")
            return None

        state = self.hass.states.get(entity_id)
        if state is None:
            self._logger.warning("METER_SENSOR_NOT_FOUND", entity_id=entity_id)
            return None

        value = parse_meter_state(state.state)
        if value is None and state.state not in (STATE_UNKNOWN, STATE_UNAVAILABLE):
            self._logger.warning("METER_SENSOR_INVALID_VALUE", entity_id=entity_id, value=state.state)
        return value

    # ========== Notifications ==========

    async def send_notification(self, notify_service: str, message: str, title: str | None = None) -> bool:
        """Send a message through ``notify_service`` (e.g. ``notify.mobile_app_x``).

        Each attempt is bounded by TIMEOUT_SECONDS. Retries a few times.
        Never raises.

        Returns:
            True if the service call succeeded
        """
        if not notify_service:
            self._logger.debug("NOTIFY_SERVICE_NOT_CONFIGURED")
            return False

        if "." not in notify_service:
            self._logger.error("NOTIFY_SERVICE_INVALID_FORMAT", service=notify_service)
            return False

        domain, service = notify_service.split(".", 1)
        data = {"message": message}
        if title:
            data["title"] = title

        for attempt in range(self.MAX_RETRIES):
            try:
                async with asyncio.timeout(self.TIMEOUT_SECONDS):
                    await self.hass.services.async_call(domain, service, data, blocking=True)
                self._logger.info("NOTIFICATION_SENT", service=notify_service, attempt=attempt + 1)
                return True
            except Exception as ex:
                self._logger.warning(
                    "NOTIFICATION_CALL_FAILED",
                    service=notify_service,
                    attempt=attempt + 1,
                    error=str(ex),
                )
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAY_SECONDS)

        self._logger.error("NOTIFICATION_FAILED_ALL_RETRIES", service=notify_service)
        await self.events.emit(UtilityEvent.NOTIFY_FAILED, service=notify_service)
        return False
