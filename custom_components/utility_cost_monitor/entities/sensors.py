"""Sensor entities using factory pattern.

Instead of defining each sensor manually, we use a data-driven approach.
Add a new sensor = add one line to SENSOR_DEFINITIONS.

Value functions receive the coordinator so they can read both the channel
state and its config. ``exists_fn`` decides whether a channel gets the
sensor at all (gas volumes only for gas, HT/NT only with HT/NT, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.const import UnitOfTime, UnitOfVolume
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import EntityCategory

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback
    from ..coordinator import UtilityCoordinator
    from ..core.config import ChannelConfig

from ..const import CHANNEL_WATER, CURRENCY, SIGNAL_UPDATE, UNIT_KWH, UNIT_M3
from .device import channel_device_info

# Unit placeholders resolved per channel
BILLED_UNIT = "billed_unit"
PRICE_UNIT = "price_unit"
METER_UNIT = "meter_unit"


def _always(config: ChannelConfig) -> bool:
    return True


def _tracks_volume(config: ChannelConfig) -> bool:
    return config.tracks_volume


def _ht_nt(config: ChannelConfig) -> bool:
    return config.ht_nt_enabled


def _priced(config: ChannelConfig) -> bool:
    return config.has_price


def _priced_ht_nt(config: ChannelConfig) -> bool:
    return config.has_price and config.ht_nt_enabled


def _has_contract(config: ChannelConfig) -> bool:
    return bool(config.contract_start_raw)


def _history_attributes(coordinator: UtilityCoordinator) -> dict[str, Any]:
    return {
        str(year): record.to_dict()
        for year, record in sorted(coordinator.state.history.items())
    }


def _adjustment_attributes(coordinator: UtilityCoordinator) -> dict[str, Any]:
    adjustment = coordinator.state.adjustment
    return {
        "note": adjustment.note,
        "applied": adjustment.applied.isoformat() if adjustment.applied else None,
    }


def _billing_attributes(coordinator: UtilityCoordinator) -> dict[str, Any]:
    billing = coordinator.state.billing
    return {
        "period_end": billing.period_end,
        "notification_sent": billing.notification_sent,
        "notification_change_sent": billing.notification_change_sent,
        "last_close_error": billing.last_close_error or None,
    }


@dataclass
class SensorDefinition:
    """Definition for a sensor entity."""

    key: str  # Unique identifier
    name: str  # Display name
    value_fn: Callable[[Any], Any]  # Function to get value from the coordinator
    unit: str | None = None
    device_class: SensorDeviceClass | None = None
    state_class: SensorStateClass | None = None
    icon: str | None = None
    exists_fn: Callable[[Any], bool] = _always
    attributes_fn: Callable[[Any], dict[str, Any]] | None = None
    entity_category: EntityCategory | None = None


def _consumption(key: str, name: str, value_fn, exists_fn=_always, icon: str | None = None) -> SensorDefinition:
    return SensorDefinition(
        key=key,
        name=name,
        value_fn=value_fn,
        unit=BILLED_UNIT,
        state_class=SensorStateClass.TOTAL,
        exists_fn=exists_fn,
        icon=icon,
    )


def _volume(key: str, name: str, value_fn) -> SensorDefinition:
    return SensorDefinition(
        key=key,
        name=name,
        value_fn=value_fn,
        unit=UnitOfVolume.CUBIC_METERS,
        device_class=SensorDeviceClass.GAS,
        state_class=SensorStateClass.TOTAL,
        exists_fn=_tracks_volume,
    )


def _money(key: str, name: str, value_fn, exists_fn=_priced, icon: str = "mdi:currency-eur") -> SensorDefinition:
    return SensorDefinition(
        key=key,
        name=name,
        value_fn=value_fn,
        unit=CURRENCY,
        device_class=SensorDeviceClass.MONETARY,
        state_class=SensorStateClass.TOTAL,
        exists_fn=exists_fn,
        icon=icon,
    )


# All sensor definitions in one place
SENSOR_DEFINITIONS: list[SensorDefinition] = [
    # Consumption
    _consumption("consumption_daily", "Consumption Today", lambda c: c.state.consumption.daily),
    _consumption("consumption_monthly", "Consumption This Month", lambda c: c.state.consumption.monthly),
    _consumption("consumption_yearly", "Consumption This Year", lambda c: c.state.consumption.yearly),

    # Gas volumes
    _volume("volume_daily", "Volume Today", lambda c: c.state.consumption.daily_volume),
    _volume("volume_monthly", "Volume This Month", lambda c: c.state.consumption.monthly_volume),
    _volume("volume_yearly", "Volume This Year", lambda c: c.state.consumption.yearly_volume),

    # HT/NT split
    _consumption("consumption_daily_ht", "Consumption Today HT", lambda c: c.state.consumption.daily_ht, _ht_nt),
    _consumption("consumption_daily_nt", "Consumption Today NT", lambda c: c.state.consumption.daily_nt, _ht_nt),
    _consumption("consumption_monthly_ht", "Consumption This Month HT", lambda c: c.state.consumption.monthly_ht, _ht_nt),
    _consumption("consumption_monthly_nt", "Consumption This Month NT", lambda c: c.state.consumption.monthly_nt, _ht_nt),
    _consumption("consumption_yearly_ht", "Consumption This Year HT", lambda c: c.state.consumption.yearly_ht, _ht_nt),
    _consumption("consumption_yearly_nt", "Consumption This Year NT", lambda c: c.state.consumption.yearly_nt, _ht_nt),

    # Costs
    _money("cost_daily", "Cost Today", lambda c: c.state.costs.daily),
    _money("cost_monthly", "Cost This Month", lambda c: c.state.costs.monthly),
    _money("cost_yearly", "Consumption Cost This Year", lambda c: c.state.costs.yearly),
    _money("cost_daily_ht", "Cost Today HT", lambda c: c.state.costs.daily_ht, _priced_ht_nt),
    _money("cost_daily_nt", "Cost Today NT", lambda c: c.state.costs.daily_nt, _priced_ht_nt),
    _money("cost_monthly_ht", "Cost This Month HT", lambda c: c.state.costs.monthly_ht, _priced_ht_nt),
    _money("cost_monthly_nt", "Cost This Month NT", lambda c: c.state.costs.monthly_nt, _priced_ht_nt),
    _money("cost_yearly_ht", "Cost This Year HT", lambda c: c.state.costs.yearly_ht, _priced_ht_nt),
    _money("cost_yearly_nt", "Cost This Year NT", lambda c: c.state.costs.yearly_nt, _priced_ht_nt),
    _money("basic_charge", "Basic Charge Accrued", lambda c: c.state.costs.basic_charge),
    _money("annual_fee", "Annual Fee Accrued", lambda c: c.state.costs.annual_fee),
    _money("fixed_costs", "Fixed Costs Accrued", lambda c: c.state.costs.fixed_costs),
    _money("total_yearly_cost", "Total Cost This Year", lambda c: c.state.costs.total_yearly, icon="mdi:cash-multiple"),
    _money("paid_total", "Prepayments Paid", lambda c: c.state.costs.paid_total, icon="mdi:cash-check"),
    _money("balance", "Balance", lambda c: c.state.costs.balance, icon="mdi:scale-balance"),

    # Meter
    SensorDefinition(
        key="meter_reading",
        name="Meter Reading",
        value_fn=lambda c: c.state.meter.reading,
        unit=BILLED_UNIT,
        state_class=SensorStateClass.TOTAL_INCREASING,
        icon="mdi:counter",
    ),
    SensorDefinition(
        key="meter_reading_volume",
        name="Meter Reading Volume",
        value_fn=lambda c: c.state.meter.reading_volume,
        unit=UnitOfVolume.CUBIC_METERS,
        device_class=SensorDeviceClass.GAS,
        state_class=SensorStateClass.TOTAL_INCREASING,
        exists_fn=_tracks_volume,
    ),
    SensorDefinition(
        key="last_sync",
        name="Last Reading",
        value_fn=lambda c: c.state.meter.last_sync,
        device_class=SensorDeviceClass.TIMESTAMP,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),

    # Tariff
    SensorDefinition(
        key="current_tariff",
        name="Current Tariff",
        value_fn=lambda c: c.state.meter.current_tariff or None,
        icon="mdi:clock-time-four-outline",
    ),
    SensorDefinition(
        key="current_price",
        name="Current Price",
        value_fn=lambda c: c.state.meter.current_price,
        unit=PRICE_UNIT,
        icon="mdi:currency-eur",
        exists_fn=_priced,
    ),

    # Statistics
    _consumption("last_day", "Consumption Yesterday", lambda c: c.state.statistics.last_day, icon="mdi:history"),
    _volume("last_day_volume", "Volume Yesterday", lambda c: c.state.statistics.last_day_volume),
    _consumption("average_daily", "Average Daily Consumption", lambda c: c.state.statistics.average_daily, icon="mdi:chart-line"),
    _consumption("average_monthly", "Average Monthly Consumption", lambda c: c.state.statistics.average_monthly, icon="mdi:chart-line"),

    # Billing period
    SensorDefinition(
        key="days_remaining",
        name="Billing Days Remaining",
        value_fn=lambda c: c.state.billing.days_remaining,
        unit=UnitOfTime.DAYS,
        icon="mdi:calendar-clock",
        exists_fn=_has_contract,
        attributes_fn=_billing_attributes,
    ),
    SensorDefinition(
        key="period_end",
        name="Billing Period End",
        value_fn=lambda c: c.state.billing.period_end or None,
        icon="mdi:calendar-end",
        exists_fn=_has_contract,
    ),
    SensorDefinition(
        key="new_initial_reading",
        name="New Initial Reading",
        value_fn=lambda c: c.state.billing.new_initial_reading,
        unit=METER_UNIT,
        icon="mdi:counter",
    ),
    SensorDefinition(
        key="adjustment",
        name="Manual Adjustment",
        value_fn=lambda c: c.state.adjustment.value,
        unit=METER_UNIT,
        icon="mdi:delta",
        attributes_fn=_adjustment_attributes,
    ),
    SensorDefinition(
        key="billing_history",
        name="Archived Billing Periods",
        value_fn=lambda c: len(c.state.history),
        icon="mdi:archive",
        attributes_fn=_history_attributes,
    ),
]


def resolve_unit(unit: str | None, config: ChannelConfig) -> str | None:
    """Turn unit placeholders into the channel's units."""
    if unit == BILLED_UNIT:
        return config.billed_unit
    if unit == METER_UNIT:
        return config.volume_unit or config.billed_unit
    if unit == PRICE_UNIT:
        return f"{CURRENCY}/{config.billed_unit}"
    return unit


def consumption_device_class(config: ChannelConfig) -> SensorDeviceClass | None:
    """Device class matching the billed unit."""
    if config.billed_unit == UNIT_KWH:
        return SensorDeviceClass.ENERGY
    if config.channel_type == CHANNEL_WATER and config.billed_unit == UNIT_M3:
        return SensorDeviceClass.WATER
    return None


class UtilitySensor(SensorEntity):
    """Generic utility sensor entity."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self,
        coordinator: UtilityCoordinator,
        definition: SensorDefinition,
    ) -> None:
        """Initialize the sensor."""
        self._coordinator = coordinator
        self._definition = definition
        config = coordinator.config
        entry_id = coordinator.entry_id

        self._attr_unique_id = f"{entry_id}_{definition.key}"
        self._attr_name = definition.name
        self._attr_native_unit_of_measurement = resolve_unit(definition.unit, config)
        self._attr_device_class = definition.device_class
        if definition.unit == BILLED_UNIT and definition.device_class is None:
            self._attr_device_class = consumption_device_class(config)
        self._attr_state_class = definition.state_class
        if definition.icon:
            self._attr_icon = definition.icon
        if definition.entity_category:
            self._attr_entity_category = definition.entity_category

        self._attr_device_info = channel_device_info(entry_id, config)

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
            self._attr_native_value = self._definition.value_fn(self._coordinator)
            if self._definition.attributes_fn:
                self._attr_extra_state_attributes = self._definition.attributes_fn(self._coordinator)
        except (ValueError, TypeError, AttributeError, KeyError):
            self._attr_native_value = None
        self.async_write_ha_state()


async def async_setup_sensors(
    hass: HomeAssistant,
    entry: ConfigEntry,
    coordinator: UtilityCoordinator,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up all sensor entities of a channel."""
    entities = [
        UtilitySensor(coordinator, definition)
        for definition in SENSOR_DEFINITIONS
        if definition.exists_fn(coordinator.config)
    ]
    async_add_entities(entities)
