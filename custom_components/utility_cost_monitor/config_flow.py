"""Config flow for Utility Cost Monitor integration."""
from __future__ import annotations

from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .const import (
    CHANNEL_CUSTOM,
    CHANNEL_GAS,
    CHANNEL_TYPES,
    CONF_ACTIVE,
    CONF_ANNUAL_FEE,
    CONF_BASIC_CHARGE,
    CONF_CALORIFIC_VALUE,
    CONF_CHANNEL_TYPE,
    CONF_CONTRACT_START,
    CONF_HT_END,
    CONF_HT_NT_ENABLED,
    CONF_HT_PRICE,
    CONF_HT_START,
    CONF_INITIAL_READING,
    CONF_NAME,
    CONF_NOTIFY_BILLING,
    CONF_NOTIFY_BILLING_DAYS,
    CONF_NOTIFY_CHANGE,
    CONF_NOTIFY_CHANGE_DAYS,
    CONF_NOTIFY_SERVICE,
    CONF_NT_PRICE,
    CONF_OFFSET,
    CONF_PREPAYMENT,
    CONF_PRICE,
    CONF_SENSOR_ENTITY,
    CONF_STATE_NUMBER,
    CONF_UNIT,
    CURRENCY,
    DEFAULT_CALORIFIC_VALUE,
    DEFAULT_HT_END,
    DEFAULT_HT_START,
    DEFAULT_NOTIFY_BILLING,
    DEFAULT_NOTIFY_BILLING_DAYS,
    DEFAULT_NOTIFY_CHANGE,
    DEFAULT_NOTIFY_CHANGE_DAYS,
    DEFAULT_STATE_NUMBER,
    DEFAULT_UNITS,
    DOMAIN,
    UNIT_KWH,
)
from .domain.calculator import parse_local_date, parse_time_of_day


def _money(unit: str) -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            min=0,
            max=10000,
            step=0.0001,
            unit_of_measurement=unit,
            mode=selector.NumberSelectorMode.BOX,
        )
    )


def _reading() -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            min=0,
            max=100000000,
            step=0.001,
            mode=selector.NumberSelectorMode.BOX,
        )
    )


def _days(maximum: int) -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            min=1,
            max=maximum,
            step=1,
            unit_of_measurement="days",
            mode=selector.NumberSelectorMode.BOX,
        )
    )


def validate_tariff(user_input: dict[str, Any]) -> dict[str, str]:
    """Check HT/NT settings. Returns form errors."""
    errors: dict[str, str] = {}
    if not user_input.get(CONF_HT_NT_ENABLED):
        return errors

    start = parse_time_of_day(user_input.get(CONF_HT_START, DEFAULT_HT_START))
    end = parse_time_of_day(user_input.get(CONF_HT_END, DEFAULT_HT_END))
    if start is None or end is None or start == end:
        errors["base"] = "invalid_window"
    elif not user_input.get(CONF_HT_PRICE) and not user_input.get(CONF_NT_PRICE):
        errors["base"] = "invalid_price"
    return errors


def validate_contract(user_input: dict[str, Any]) -> dict[str, str]:
    """Check the contract start date. Returns form errors."""
    raw = user_input.get(CONF_CONTRACT_START)
    if raw and parse_local_date(raw) is None:
        return {CONF_CONTRACT_START: "invalid_date"}
    return {}


def tariff_schema(channel_type: str, values: dict[str, Any]) -> dict:
    """Meter correction and tariff fields, defaults taken from ``values``."""
    unit = values.get(CONF_UNIT, DEFAULT_UNITS.get(channel_type, UNIT_KWH))
    price_unit = f"{CURRENCY}/{unit}"

    schema: dict = {}
    if channel_type == CHANNEL_CUSTOM:
        schema[vol.Required(CONF_UNIT, default=unit)] = selector.TextSelector()

    if channel_type == CHANNEL_GAS:
        schema[
            vol.Required(
                CONF_CALORIFIC_VALUE,
                default=values.get(CONF_CALORIFIC_VALUE, DEFAULT_CALORIFIC_VALUE),
            )
        ] = selector.NumberSelector(
            selector.NumberSelectorConfig(
                min=0.1,
                max=20,
                step=0.001,
                unit_of_measurement="kWh/m³",
                mode=selector.NumberSelectorMode.BOX,
            )
        )
        schema[
            vol.Required(
                CONF_STATE_NUMBER,
                default=values.get(CONF_STATE_NUMBER, DEFAULT_STATE_NUMBER),
            )
        ] = selector.NumberSelector(
            selector.NumberSelectorConfig(
                min=0.0001,
                max=1,
                step=0.0001,
                mode=selector.NumberSelectorMode.BOX,
            )
        )

    schema.update(
        {
            vol.Optional(CONF_OFFSET, default=values.get(CONF_OFFSET, 0)): _reading(),
            vol.Optional(CONF_INITIAL_READING, default=values.get(CONF_INITIAL_READING, 0)): _reading(),
            vol.Optional(CONF_PRICE, default=values.get(CONF_PRICE, 0)): _money(price_unit),
            vol.Optional(
                CONF_HT_NT_ENABLED, default=values.get(CONF_HT_NT_ENABLED, False)
            ): selector.BooleanSelector(),
            vol.Optional(CONF_HT_PRICE, default=values.get(CONF_HT_PRICE, 0)): _money(price_unit),
            vol.Optional(CONF_NT_PRICE, default=values.get(CONF_NT_PRICE, 0)): _money(price_unit),
            vol.Optional(
                CONF_HT_START, default=values.get(CONF_HT_START, DEFAULT_HT_START)
            ): selector.TimeSelector(),
            vol.Optional(
                CONF_HT_END, default=values.get(CONF_HT_END, DEFAULT_HT_END)
            ): selector.TimeSelector(),
            vol.Optional(
                CONF_BASIC_CHARGE, default=values.get(CONF_BASIC_CHARGE, 0)
            ): _money(f"{CURRENCY}/month"),
            vol.Optional(
                CONF_ANNUAL_FEE, default=values.get(CONF_ANNUAL_FEE, 0)
            ): _money(f"{CURRENCY}/year"),
            vol.Optional(
                CONF_PREPAYMENT, default=values.get(CONF_PREPAYMENT, 0)
            ): _money(f"{CURRENCY}/month"),
        }
    )
    return schema


def contract_schema(values: dict[str, Any]) -> dict:
    """Contract start field."""
    return {
        vol.Optional(
            CONF_CONTRACT_START,
            description={"suggested_value": values.get(CONF_CONTRACT_START, "")},
        ): selector.TextSelector(),
    }


def notification_schema(values: dict[str, Any], notify_services: list[dict[str, str]]) -> dict:
    """Reminder fields."""
    schema: dict = {}
    service_key = vol.Optional(
        CONF_NOTIFY_SERVICE,
        description={"suggested_value": values.get(CONF_NOTIFY_SERVICE, "")},
    )
    if notify_services:
        schema[service_key] = selector.SelectSelector(
            selector.SelectSelectorConfig(
                options=notify_services,
                mode=selector.SelectSelectorMode.DROPDOWN,
                custom_value=True,
            )
        )
    else:
        schema[service_key] = selector.TextSelector(
            selector.TextSelectorConfig(type=selector.TextSelectorType.TEXT)
        )

    schema.update(
        {
            vol.Optional(
                CONF_NOTIFY_BILLING,
                default=values.get(CONF_NOTIFY_BILLING, DEFAULT_NOTIFY_BILLING),
            ): selector.BooleanSelector(),
            vol.Optional(
                CONF_NOTIFY_BILLING_DAYS,
                default=values.get(CONF_NOTIFY_BILLING_DAYS, DEFAULT_NOTIFY_BILLING_DAYS),
            ): _days(90),
            vol.Optional(
                CONF_NOTIFY_CHANGE,
                default=values.get(CONF_NOTIFY_CHANGE, DEFAULT_NOTIFY_CHANGE),
            ): selector.BooleanSelector(),
            vol.Optional(
                CONF_NOTIFY_CHANGE_DAYS,
                default=values.get(CONF_NOTIFY_CHANGE_DAYS, DEFAULT_NOTIFY_CHANGE_DAYS),
            ): _days(365),
        }
    )
    return schema


def get_notify_services(hass) -> list[dict[str, str]]:
    """Get list of available notify services."""
    notify_services = hass.services.async_services().get("notify", {})
    return [
        {"value": f"notify.{service}", "label": f"notify.{service}"}
        for service in notify_services.keys()
    ]


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Utility Cost Monitor.

    One flow creates one channel.
    """

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self.channel_info: dict[str, Any] = {}
        self.tariff_info: dict[str, Any] = {}
        self.contract_info: dict[str, Any] = {}

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 1: Channel - name, type and meter sensor."""
        errors: dict[str, str] = {}

        if user_input is not None:
            if self.hass.states.get(user_input[CONF_SENSOR_ENTITY]) is None:
                errors[CONF_SENSOR_ENTITY] = "entity_not_found"

            if not errors:
                await self.async_set_unique_id(
                    f"{user_input[CONF_CHANNEL_TYPE]}_{user_input[CONF_SENSOR_ENTITY]}"
                )
                self._abort_if_unique_id_configured()
                self.channel_info = user_input
                return await self.async_step_tariff()

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_NAME): selector.TextSelector(),
                    vol.Required(CONF_CHANNEL_TYPE, default=CHANNEL_GAS): selector.SelectSelector(
                        selector.SelectSelectorConfig(
                            options=CHANNEL_TYPES,
                            mode=selector.SelectSelectorMode.DROPDOWN,
                            translation_key=CONF_CHANNEL_TYPE,
                        )
                    ),
                    vol.Required(CONF_SENSOR_ENTITY): selector.EntitySelector(
                        selector.EntitySelectorConfig(domain=["sensor", "input_number"])
                    ),
                    vol.Optional(CONF_ACTIVE, default=True): selector.BooleanSelector(),
                }
            ),
            errors=errors,
        )

    async def async_step_tariff(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 2: Meter correction and tariff."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = validate_tariff(user_input)
            if not errors:
                self.tariff_info = user_input
                return await self.async_step_contract()

        return self.async_show_form(
            step_id="tariff",
            data_schema=vol.Schema(
                tariff_schema(self.channel_info[CONF_CHANNEL_TYPE], user_input or {})
            ),
            errors=errors,
        )

    async def async_step_contract(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 3: Contract start (DD.MM.YYYY)."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = validate_contract(user_input)
            if not errors:
                self.contract_info = user_input
                return await self.async_step_notifications()

        return self.async_show_form(
            step_id="contract",
            data_schema=vol.Schema(contract_schema(user_input or {})),
            errors=errors,
        )

    async def async_step_notifications(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 4: Reminders."""
        if user_input is not None:
            data = {
                **self.channel_info,
                **self.tariff_info,
                **self.contract_info,
                **user_input,
            }
            return self.async_create_entry(title=self.channel_info[CONF_NAME], data=data)

        return self.async_show_form(
            step_id="notifications",
            data_schema=vol.Schema(notification_schema({}, get_notify_services(self.hass))),
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Create the options flow."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options flow for Utility Cost Monitor."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry

    def _current_values(self) -> dict[str, Any]:
        """Options over data."""
        return {**self._config_entry.data, **self._config_entry.options}

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Manage the options - single page for simplicity."""
        errors: dict[str, str] = {}
        values = self._current_values()

        if user_input is not None:
            errors = {**validate_tariff(user_input), **validate_contract(user_input)}
            if not errors:
                return self.async_create_entry(title="", data=user_input)
            values = {**values, **user_input}

        schema_dict = {
            vol.Optional(CONF_ACTIVE, default=values.get(CONF_ACTIVE, True)): selector.BooleanSelector(),
            **tariff_schema(values.get(CONF_CHANNEL_TYPE, CHANNEL_CUSTOM), values),
            **contract_schema(values),
            **notification_schema(values, get_notify_services(self.hass)),
        }

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(schema_dict),
            errors=errors,
        )
