"""Fixtures for testing."""
import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from homeassistant.core import HomeAssistant

from custom_components.utility_cost_monitor.const import (
    DOMAIN,
    CONF_ACTIVE,
    CONF_BASIC_CHARGE,
    CONF_CALORIFIC_VALUE,
    CONF_CHANNEL_TYPE,
    CONF_CONTRACT_START,
    CONF_HT_END,
    CONF_HT_NT_ENABLED,
    CONF_HT_PRICE,
    CONF_HT_START,
    CONF_NAME,
    CONF_NT_PRICE,
    CONF_PRICE,
    CONF_SENSOR_ENTITY,
    CONF_STATE_NUMBER,
)
from custom_components.utility_cost_monitor.core.config import ChannelConfig
from custom_components.utility_cost_monitor.core.state import ChannelState

GAS_METER = "sensor.gas_meter"
POWER_METER = "sensor.power_meter"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Enable custom integrations defined in the test dir."""
    yield


@pytest.fixture
def gas_data():
    """Gas channel: 11.5 kWh/m³, Z 0.95, 10 ct/kWh."""
    return {
        CONF_NAME: "Gas",
        CONF_CHANNEL_TYPE: "gas",
        CONF_SENSOR_ENTITY: GAS_METER,
        CONF_ACTIVE: True,
        CONF_CALORIFIC_VALUE: 11.5,
        CONF_STATE_NUMBER: 0.95,
        CONF_PRICE: 0.10,
        CONF_BASIC_CHARGE: 10.0,
        CONF_CONTRACT_START: "12.05.2025",
    }


@pytest.fixture
def power_data():
    """Electricity channel with a single 25 ct price."""
    return {
        CONF_NAME: "Power",
        CONF_CHANNEL_TYPE: "electricity",
        CONF_SENSOR_ENTITY: POWER_METER,
        CONF_ACTIVE: True,
        CONF_PRICE: 0.25,
    }


@pytest.fixture
def ht_nt_data(power_data):
    """Electricity channel with HT 06:00-22:00."""
    return {
        **power_data,
        CONF_PRICE: 0,
        CONF_HT_NT_ENABLED: True,
        CONF_HT_PRICE: 0.30,
        CONF_NT_PRICE: 0.20,
        CONF_HT_START: "06:00:00",
        CONF_HT_END: "22:00:00",
    }


@pytest.fixture
def gas_config(gas_data):
    """Typed gas config."""
    return ChannelConfig.from_mapping(gas_data)


@pytest.fixture
def power_config(power_data):
    """Typed electricity config."""
    return ChannelConfig.from_mapping(power_data)


@pytest.fixture
def ht_nt_config(ht_nt_data):
    """Typed HT/NT config."""
    return ChannelConfig.from_mapping(ht_nt_data)


@pytest.fixture
def channel_state():
    """Fresh channel state."""
    return ChannelState()


@pytest.fixture
async def setup_integration(hass: HomeAssistant, gas_data):
    """Set up a gas channel with its meter at 100 m³."""
    hass.states.async_set(GAS_METER, "100.0", {"unit_of_measurement": "m³"})

    entry = MockConfigEntry(
        domain=DOMAIN,
        title="Gas",
        data=gas_data,
        unique_id=f"gas_{GAS_METER}",
    )
    entry.add_to_hass(hass)

    await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()

    yield entry

    await hass.config_entries.async_unload(entry.entry_id)
    await hass.async_block_till_done()
