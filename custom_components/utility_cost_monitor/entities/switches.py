"""Switch entities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import EntityCategory

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import UtilityCoordinator

from ..const import SIGNAL_UPDATE
from ..core.state import PeriodPhase
from ..monitor_logging import get_logger
from .device import channel_device_info


class _ChannelSwitch(SwitchEntity):
    """Switch bound to one channel coordinator."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(self, coordinator: UtilityCoordinator, key: str, name: str) -> None:
        self._coordinator = coordinator
        self._logger = get_logger()

        self._attr_unique_id = f"{coordinator.entry_id}_{key}"
        self._attr_name = name
        self._attr_device_info = channel_device_info(coordinator.entry_id, coordinator.config)

    async def async_added_to_hass(self) -> None:
        """Register for updates."""
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass,
                SIGNAL_UPDATE.format(self._coordinator.entry_id),
                self._handle_update,
            )
        )

    @callback
    def _handle_update(self) -> None:
        self.async_write_ha_state()


class ClosePeriodSwitch(_ChannelSwitch):
    """Request closing the billing period.

    On while a close is pending. The coordinator validates the request
    right away, so the switch falls back to off once archived or rejected.
    """

    _attr_icon = "mdi:archive-arrow-down"

    def __init__(self, coordinator: UtilityCoordinator) -> None:
        """Initialize."""
        super().__init__(coordinator, "close_billing_period", "Close Billing Period")

    @property
    def is_on(self) -> bool:
        """Return True while a close request is pending."""
        return self._coordinator.state.billing.phase != PeriodPhase.OPEN

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Request the close."""
        self._logger.info("CLOSE_SWITCH_TURNED_ON", channel=self._coordinator.config.name)
        await self._coordinator.async_request_close_period()
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Nothing to cancel, a request is handled immediately."""
        self.async_write_ha_state()

    @property
    def extra_state_attributes(self) -> dict:
        """Return extra attributes."""
        billing = self._coordinator.state.billing
        return {
            "end_reading": billing.end_reading,
            "last_close_error": billing.last_close_error or None,
        }


class DebugLoggingSwitch(_ChannelSwitch):
    """Switch to control debug file logging."""

    _attr_icon = "mdi:bug"
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, coordinator: UtilityCoordinator) -> None:
        """Initialize."""
        super().__init__(coordinator, "debug_logging", "Debug Logging")
        self._log_size_kb = 0.0

    @property
    def is_on(self) -> bool:
        """Return True when events are written to file."""
        return self._logger.file_logging_enabled

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn on debug logging."""
        await self._coordinator.async_set_file_logging(True)
        await self._refresh_size()

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn off debug logging."""
        await self._coordinator.async_set_file_logging(False)
        await self._refresh_size()

    async def _refresh_size(self) -> None:
        self._log_size_kb = await self.hass.async_add_executor_job(self._logger.get_total_size_kb)
        self.async_write_ha_state()

    @property
    def extra_state_attributes(self) -> dict:
        """Return extra attributes."""
        return {
            "log_size_kb": self._log_size_kb,
            "log_file": str(self._logger.log_file),
        }


async def async_setup_switches(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: UtilityCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up switch entities."""
    async_add_entities([
        ClosePeriodSwitch(coordinator),
        DebugLoggingSwitch(coordinator),
    ])
