"""The Utility Cost Monitor integration.

Tracks consumption and costs of one utility meter (gas, water, electricity
or a custom one) per config entry:
- Channel state and typed config (core/state.py, core/config.py)
- Event-driven updates (core/events.py)
- HA access through one gateway (core/gateway.py)
- Pure domain logic (domain/*.py)
- Factory-based entities (entities/*.py)
- Structured logging (monitor_logging/*.py)
"""

from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import ServiceValidationError
from homeassistant.helpers import config_validation as cv

from .const import (
    ATTR_CONFIG_ENTRY_ID,
    ATTR_FORMAT,
    ATTR_NOTE,
    ATTR_READING,
    ATTR_VALUE,
    DOMAIN,
    SERVICE_CLEAR_ADJUSTMENT,
    SERVICE_CLOSE_PERIOD,
    SERVICE_EXPORT_HISTORY,
    SERVICE_RECALCULATE,
    SERVICE_SET_ADJUSTMENT,
    SERVICE_SET_END_READING,
)
from .coordinator import EXPORT_FORMATS, UtilityCoordinator

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.SENSOR,
    Platform.BINARY_SENSOR,
    Platform.BUTTON,
    Platform.NUMBER,
    Platform.SWITCH,
]

SERVICES = [
    SERVICE_CLOSE_PERIOD,
    SERVICE_SET_END_READING,
    SERVICE_SET_ADJUSTMENT,
    SERVICE_CLEAR_ADJUSTMENT,
    SERVICE_RECALCULATE,
    SERVICE_EXPORT_HISTORY,
]

ENTRY_SCHEMA = vol.Schema({vol.Required(ATTR_CONFIG_ENTRY_ID): cv.string})

END_READING_SCHEMA = ENTRY_SCHEMA.extend(
    {vol.Required(ATTR_READING): vol.All(vol.Coerce(float), vol.Range(min=0))}
)

ADJUSTMENT_SCHEMA = ENTRY_SCHEMA.extend(
    {
        vol.Required(ATTR_VALUE): vol.Coerce(float),
        vol.Optional(ATTR_NOTE): cv.string,
    }
)

EXPORT_SCHEMA = ENTRY_SCHEMA.extend(
    {vol.Optional(ATTR_FORMAT, default="json"): vol.In(EXPORT_FORMATS)}
)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up one utility channel from a config entry."""
    hass.data.setdefault(DOMAIN, {})

    # Create coordinator
    coordinator = UtilityCoordinator(hass, entry)
    await coordinator.async_init()

    # Store coordinator
    hass.data[DOMAIN][entry.entry_id] = coordinator

    _async_register_services(hass)

    # Forward to platforms
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    _LOGGER.info("Utility Cost Monitor channel '%s' initialized", coordinator.config.name)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        coordinator: UtilityCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.async_unload()

        if not hass.data[DOMAIN]:
            for service in SERVICES:
                hass.services.async_remove(DOMAIN, service)

    return unload_ok


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the channel when its options change."""
    await hass.config_entries.async_reload(entry.entry_id)


def _get_coordinator(hass: HomeAssistant, call: ServiceCall) -> UtilityCoordinator:
    """Coordinator addressed by a service call."""
    entry_id = call.data[ATTR_CONFIG_ENTRY_ID]
    coordinator = hass.data.get(DOMAIN, {}).get(entry_id)
    if coordinator is None:
        raise ServiceValidationError(
            translation_domain=DOMAIN,
            translation_key="unknown_entry",
            translation_placeholders={"entry_id": entry_id},
        )
    return coordinator


def _async_register_services(hass: HomeAssistant) -> None:
    """Register the domain services once for all channels."""
    if hass.services.has_service(DOMAIN, SERVICE_CLOSE_PERIOD):
        return

    async def handle_close_period(call: ServiceCall) -> None:
        coordinator = _get_coordinator(hass, call)
        if not await coordinator.async_request_close_period():
            raise ServiceValidationError(
                translation_domain=DOMAIN,
                translation_key="close_rejected",
                translation_placeholders={
                    "reason": coordinator.state.billing.last_close_error or "already_pending",
                },
            )

    async def handle_set_end_reading(call: ServiceCall) -> None:
        await _get_coordinator(hass, call).async_set_end_reading(call.data[ATTR_READING])

    async def handle_set_adjustment(call: ServiceCall) -> None:
        await _get_coordinator(hass, call).async_set_adjustment(
            call.data[ATTR_VALUE], call.data.get(ATTR_NOTE)
        )

    async def handle_clear_adjustment(call: ServiceCall) -> None:
        await _get_coordinator(hass, call).async_clear_adjustment()

    async def handle_recalculate(call: ServiceCall) -> None:
        await _get_coordinator(hass, call).async_recalculate_costs()

    async def handle_export_history(call: ServiceCall) -> ServiceResponse:
        return _get_coordinator(hass, call).export_history(call.data[ATTR_FORMAT])

    hass.services.async_register(DOMAIN, SERVICE_CLOSE_PERIOD, handle_close_period, schema=ENTRY_SCHEMA)
    hass.services.async_register(
        DOMAIN, SERVICE_SET_END_READING, handle_set_end_reading, schema=END_READING_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SET_ADJUSTMENT, handle_set_adjustment, schema=ADJUSTMENT_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_CLEAR_ADJUSTMENT, handle_clear_adjustment, schema=ENTRY_SCHEMA
    )
    hass.services.async_register(DOMAIN, SERVICE_RECALCULATE, handle_recalculate, schema=ENTRY_SCHEMA)
    hass.services.async_register(
        DOMAIN,
        SERVICE_EXPORT_HISTORY,
        handle_export_history,
        schema=EXPORT_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
