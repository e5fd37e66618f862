"""Button entities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.components.button import ButtonEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import UtilityCoordinator

from ..monitor_logging import get_logger
from .device import channel_device_info


class RecalculateCostsButton(ButtonEntity):
    """Button to recompute costs from the current totals."""

    _attr_has_entity_name = True
    _attr_icon = "mdi:refresh"

    def __init__(self, coordinator: UtilityCoordinator) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._logger = get_logger()

        self._attr_unique_id = f"{coordinator.entry_id}_recalculate_costs"
        self._attr_name = "Recalculate Costs"
        self._attr_device_info = channel_device_info(coordinator.entry_id, coordinator.config)

    async def async_press(self) -> None:
        """Handle button press."""
        self._logger.info("RECALCULATE_BUTTON_PRESSED", channel=self._coordinator.config.name)
        await self._coordinator.async_recalculate_costs()


class ClearAdjustmentButton(ButtonEntity):
    """Button to remove the manual correction."""

    _attr_has_entity_name = True
    _attr_icon = "mdi:delta"

    def __init__(self, coordinator: UtilityCoordinator) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._logger = get_logger()

        self._attr_unique_id = f"{coordinator.entry_id}_clear_adjustment"
        self._attr_name = "Clear Adjustment"
        self._attr_device_info = channel_device_info(coordinator.entry_id, coordinator.config)

    async def async_press(self) -> None:
        """Handle button press."""
        self._logger.info("CLEAR_ADJUSTMENT_BUTTON_PRESSED", channel=self._coordinator.config.name)
        await self._coordinator.async_clear_adjustment()


async def async_setup_buttons(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: UtilityCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up button entities."""
    async_add_entities([
        RecalculateCostsButton(coordinator),
        ClearAdjustmentButton(coordinator),
    ])
