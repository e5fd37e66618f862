"""Binary sensor entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import EntityCategory

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import UtilityCoordinator

from ..const import SIGNAL_UPDATE, TARIFF_HT
from ..core.state import PeriodPhase
from .device import channel_device_info


@dataclass
class BinarySensorDefinition:
    """Definition for a binary sensor."""

    key: str
    name: str
    value_fn: Callable[[Any], bool]
    device_class: BinarySensorDeviceClass | None = None
    icon_on: str | None = None
    icon_off: str | None = None
    exists_fn: Callable[[Any], bool] = lambda config: True
    entity_category: EntityCategory | None = None


BINARY_SENSOR_DEFINITIONS: list[BinarySensorDefinition] = [
    BinarySensorDefinition(
        key="peak_tariff_active",
        name="Peak Tariff Active",
        value_fn=lambda c: c.state.meter.current_tariff == TARIFF_HT,
        icon_on="mdi:weather-sunny",
        icon_off="mdi:weather-night",
        exists_fn=lambda config: config.ht_nt_enabled,
    ),
    BinarySensorDefinition(
        key="meter_sensor_active",
        name="Meter Sensor Active",
        value_fn=lambda c: c.state.meter.sensor_active,
        device_class=BinarySensorDeviceClass.CONNECTIVITY,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
    BinarySensorDefinition(
        key="close_pending",
        name="Billing Close Pending",
        value_fn=lambda c: c.state.billing.phase != PeriodPhase.OPEN,
        icon_on="mdi:file-clock",
        icon_off="mdi:file-check",
    ),
]


class UtilityBinarySensor(BinarySensorEntity):
    """Generic utility binary sensor."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self,
        coordinator: UtilityCoordinator,
        definition: BinarySensorDefinition,
    ) -> None:
        """Initialize."""
        self._coordinator = coordinator
        self._definition = definition

        self._attr_unique_id = f"{coordinator.entry_id}_{definition.key}"
        self._attr_name = definition.name
        self._attr_device_class = definition.device_class
        if definition.entity_category:
            self._attr_entity_category = definition.entity_category

        self._attr_device_info = channel_device_info(coordinator.entry_id, coordinator.config)

    @property
    def icon(self) -> str | None:
        """Return icon based on state."""
        if self._definition.icon_on and self._definition.icon_off:
            return self._definition.icon_on if self.is_on else self._definition.icon_off
        return None

    async def async_added_to_hass(self) -> None:
        """Register for updates."""
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass,
                SIGNAL_UPDATE.format(self._coordinator.entry_id),
                self._handle_update,
            )
        )
        self._handle_update()

    @callback
    def _handle_update(self) -> None:
        """Handle state update."""
        try:
            self._attr_is_on = bool(self._definition.value_fn(self._coordinator))
        except (ValueError, TypeError, AttributeError, KeyError):
            self._attr_is_on = False
        self.async_write_ha_state()


async def async_setup_binary_sensors(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: UtilityCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up binary sensor entities."""
    entities = [
        UtilityBinarySensor(coordinator, definition)
        for definition in BINARY_SENSOR_DEFINITIONS
        if definition.exists_fn(coordinator.config)
    ]
    async_add_entities(entities)
