"""Test the config flow."""
from unittest.mock import patch

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from homeassistant import config_entries, data_entry_flow
from homeassistant.core import HomeAssistant

from custom_components.utility_cost_monitor.const import DOMAIN

GAS_METER = "sensor.gas_meter"


@pytest.mark.asyncio
async def test_form_step_user(hass: HomeAssistant):
    """Test we get the first form step."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "user"
    assert result["errors"] == {}


@pytest.mark.asyncio
async def test_unknown_sensor(hass: HomeAssistant):
    """A meter sensor that does not exist is refused."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "name": "Gas",
            "channel_type": "gas",
            "meter_sensor_entity_id": "sensor.missing",
        },
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["errors"] == {"meter_sensor_entity_id": "entity_not_found"}


@pytest.mark.asyncio
async def test_complete_config_flow(hass: HomeAssistant):
    """Test complete multi-step configuration flow."""
    hass.states.async_set(GAS_METER, "100.0")

    result1 = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(
        "custom_components.utility_cost_monitor.async_setup_entry",
        return_value=True,
    ) as mock_setup_entry:
        # Step 1: Channel
        result2 = await hass.config_entries.flow.async_configure(
            result1["flow_id"],
            {
                "name": "Gas",
                "channel_type": "gas",
                "meter_sensor_entity_id": GAS_METER,
            },
        )
        assert result2["type"] == data_entry_flow.FlowResultType.FORM
        assert result2["step_id"] == "tariff"

        # Step 2: Tariff
        result3 = await hass.config_entries.flow.async_configure(
            result2["flow_id"],
            {
                "calorific_value": 11.5,
                "state_number": 0.95,
                "price_per_unit": 0.1,
                "basic_charge_monthly": 10.0,
            },
        )
        assert result3["type"] == data_entry_flow.FlowResultType.FORM
        assert result3["step_id"] == "contract"

        # Step 3: Contract
        result4 = await hass.config_entries.flow.async_configure(
            result3["flow_id"],
            {"contract_start": "12.05.2025"},
        )
        assert result4["type"] == data_entry_flow.FlowResultType.FORM
        assert result4["step_id"] == "notifications"

        # Step 4: Notifications (without notify service)
        result5 = await hass.config_entries.flow.async_configure(
            result4["flow_id"],
            {},
        )
        await hass.async_block_till_done()

    assert result5["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert result5["title"] == "Gas"
    data = result5["data"]
    assert data["channel_type"] == "gas"
    assert data["meter_sensor_entity_id"] == GAS_METER
    assert data["calorific_value"] == 11.5
    assert data["price_per_unit"] == 0.1
    assert data["contract_start"] == "12.05.2025"
    assert data["notify_billing_reminder"] is True
    assert len(mock_setup_entry.mock_calls) == 1


@pytest.mark.asyncio
async def test_invalid_ht_window(hass: HomeAssistant):
    """HT start and end must differ."""
    hass.states.async_set("sensor.power_meter", "1000.0")
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "name": "Power",
            "channel_type": "electricity",
            "meter_sensor_entity_id": "sensor.power_meter",
        },
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "ht_nt_enabled": True,
            "ht_price_per_unit": 0.3,
            "nt_price_per_unit": 0.2,
            "ht_window_start": "06:00:00",
            "ht_window_end": "06:00:00",
        },
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "tariff"
    assert result["errors"] == {"base": "invalid_window"}


@pytest.mark.asyncio
async def test_ht_nt_needs_a_price(hass: HomeAssistant):
    """HT/NT without any price is refused."""
    hass.states.async_set("sensor.power_meter", "1000.0")
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "name": "Power",
            "channel_type": "electricity",
            "meter_sensor_entity_id": "sensor.power_meter",
        },
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {"ht_nt_enabled": True},
    )
    assert result["errors"] == {"base": "invalid_price"}


@pytest.mark.asyncio
async def test_invalid_contract_date(hass: HomeAssistant):
    """The contract start must be DD.MM.YYYY."""
    hass.states.async_set("sensor.water_meter", "10.0")
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "name": "Water",
            "channel_type": "water",
            "meter_sensor_entity_id": "sensor.water_meter",
        },
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"], {"price_per_unit": 4.5}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"], {"contract_start": "31.02.2025"}
    )
    assert result["step_id"] == "contract"
    assert result["errors"] == {"contract_start": "invalid_date"}


@pytest.mark.asyncio
async def test_duplicate_channel_aborts(hass: HomeAssistant):
    """The same meter cannot be added twice as the same type."""
    hass.states.async_set(GAS_METER, "100.0")
    MockConfigEntry(domain=DOMAIN, unique_id=f"gas_{GAS_METER}", data={}).add_to_hass(hass)

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"],
        {
            "name": "Gas",
            "channel_type": "gas",
            "meter_sensor_entity_id": GAS_METER,
        },
    )
    assert result["type"] == data_entry_flow.FlowResultType.ABORT
    assert result["reason"] == "already_configured"


@pytest.mark.asyncio
async def test_options_flow(hass: HomeAssistant, gas_data):
    """Options update the tariff of an existing channel."""
    entry = MockConfigEntry(domain=DOMAIN, title="Gas", data=gas_data)
    entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(entry.entry_id)
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "init"

    with patch(
        "custom_components.utility_cost_monitor.async_setup_entry",
        return_value=True,
    ):
        result = await hass.config_entries.options.async_configure(
            result["flow_id"],
            {"price_per_unit": 0.12, "contract_start": "12.05.2025"},
        )
        await hass.async_block_till_done()

    assert result["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert entry.options["price_per_unit"] == 0.12


@pytest.mark.asyncio
async def test_options_flow_rejects_bad_date(hass: HomeAssistant, gas_data):
    """Invalid options keep the form open."""
    entry = MockConfigEntry(domain=DOMAIN, title="Gas", data=gas_data)
    entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(entry.entry_id)
    result = await hass.config_entries.options.async_configure(
        result["flow_id"],
        {"contract_start": "2025/05/12"},
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["errors"] == {"contract_start": "invalid_date"}
