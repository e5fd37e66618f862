"""Number entities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.number import NumberEntity, NumberMode
from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.restore_state import RestoreEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import UtilityCoordinator

from ..const import SIGNAL_UPDATE
from ..monitor_logging import get_logger
from .device import channel_device_info

MAX_READING = 99_999_999.0
MAX_ADJUSTMENT = 1_000_000.0


class _ChannelNumber(NumberEntity):
    """Number bound to one channel coordinator."""

    _attr_has_entity_name = True
    _attr_should_poll = False
    _attr_mode = NumberMode.BOX

    def __init__(self, coordinator: UtilityCoordinator, key: str, name: str) -> None:
        self._coordinator = coordinator
        self._logger = get_logger()

        self._attr_unique_id = f"{coordinator.entry_id}_{key}"
        self._attr_name = name
        self._attr_device_info = channel_device_info(coordinator.entry_id, coordinator.config)

    def _current(self) -> float:
        raise NotImplementedError

    async def async_added_to_hass(self) -> None:
        """Register for updates."""
        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass,
                SIGNAL_UPDATE.format(self._coordinator.entry_id),
                self._handle_update,
            )
        )
        self._attr_native_value = self._current()

    @callback
    def _handle_update(self) -> None:
        """Sync with coordinator state."""
        self._attr_native_value = self._current()
        self.async_write_ha_state()


class EndReadingNumber(_ChannelNumber, RestoreEntity):
    """Meter reading at the end of the billing period.

    Read off the physical meter, so gas is entered in m³. The value is
    persisted by the coordinator. The restored entity state only fills in
    when the store has nothing yet.
    """

    _attr_native_min_value = 0.0
    _attr_native_max_value = MAX_READING
    _attr_native_step = 0.001
    _attr_icon = "mdi:counter"

    def __init__(self, coordinator: UtilityCoordinator) -> None:
        """Initialize."""
        super().__init__(coordinator, "end_reading", "End Reading")
        config = coordinator.config
        self._attr_native_unit_of_measurement = config.volume_unit or config.billed_unit

    def _current(self) -> float:
        return self._coordinator.state.billing.end_reading

    async def async_added_to_hass(self) -> None:
        """Restore state and register for updates."""
        await super().async_added_to_hass()

        if self._current() > 0:
            return

        last_state = await self.async_get_last_state()
        if last_state is None or last_state.state in (STATE_UNKNOWN, STATE_UNAVAILABLE):
            return
        try:
            restored = float(last_state.state)
        except (ValueError, TypeError):
            return
        if restored > 0:
            self._logger.info("END_READING_RESTORED", channel=self._coordinator.config.name, value=restored)
            await self._coordinator.async_set_end_reading(restored)

    async def async_set_native_value(self, value: float) -> None:
        """Handle value change from UI."""
        self._logger.info(
            "END_READING_SET_REQUEST",
            channel=self._coordinator.config.name,
            old_value=self._attr_native_value,
            new_value=value,
        )
        await self._coordinator.async_set_end_reading(value)
        self._attr_native_value = self._current()
        self.async_write_ha_state()


class AdjustmentNumber(_ChannelNumber):
    """Signed manual correction of the yearly consumption."""

    _attr_native_min_value = -MAX_ADJUSTMENT
    _attr_native_max_value = MAX_ADJUSTMENT
    _attr_native_step = 0.001
    _attr_icon = "mdi:delta"

    def __init__(self, coordinator: UtilityCoordinator) -> None:
        """Initialize."""
        super().__init__(coordinator, "adjustment_value", "Adjustment")
        config = coordinator.config
        self._attr_native_unit_of_measurement = config.volume_unit or config.billed_unit

    def _current(self) -> float:
        return self._coordinator.state.adjustment.value

    async def async_set_native_value(self, value: float) -> None:
        """Handle value change from UI."""
        self._logger.info(
            "ADJUSTMENT_SET_REQUEST",
            channel=self._coordinator.config.name,
            old_value=self._attr_native_value,
            new_value=value,
        )
        if value == 0:
            await self._coordinator.async_clear_adjustment()
        else:
            await self._coordinator.async_set_adjustment(value)
        self._attr_native_value = self._current()
        self.async_write_ha_state()

    @property
    def extra_state_attributes(self) -> dict:
        """Return extra attributes."""
        adjustment = self._coordinator.state.adjustment
        return {
            "note": adjustment.note,
            "applied": adjustment.applied.isoformat() if adjustment.applied else None,
        }


async def async_setup_numbers(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: UtilityCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up number entities."""
    async_add_entities([
        EndReadingNumber(coordinator),
        AdjustmentNumber(coordinator),
    ])
