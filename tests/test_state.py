"""Test channel state persistence and typed config."""
from datetime import datetime

from custom_components.utility_cost_monitor.const import (
    CONF_CONTRACT_START,
    CONF_PRICE,
)
from custom_components.utility_cost_monitor.core.config import ChannelConfig
from custom_components.utility_cost_monitor.core.state import (
    BillingPeriodRecord,
    ChannelState,
    PeriodPhase,
)


def test_state_round_trip(channel_state):
    """Everything persisted comes back."""
    channel_state.consumption.yearly = 123.456
    channel_state.costs.balance = -4.2
    channel_state.meter.reading = 1000.0
    channel_state.meter.last_sync = datetime(2026, 3, 1, 10, 0)
    channel_state.anchors.last_year_start = datetime(2026, 1, 1)
    channel_state.adjustment.value = 2.5
    channel_state.adjustment.note = "estimate"
    channel_state.billing.end_reading = 900.0
    channel_state.history[2025] = BillingPeriodRecord(
        year=2025,
        closed_at="2026-01-02T10:00:00",
        end_reading=900.0,
        unit="kWh",
        yearly=3000.0,
        total_yearly_cost=950.0,
        balance=10.0,
    )

    restored = ChannelState.from_dict(channel_state.to_dict())

    assert restored.consumption.yearly == 123.456
    assert restored.costs.balance == -4.2
    assert restored.meter.reading == 1000.0
    assert restored.meter.last_sync == datetime(2026, 3, 1, 10, 0)
    assert restored.anchors.last_year_start == datetime(2026, 1, 1)
    assert restored.adjustment.note == "estimate"
    assert restored.billing.end_reading == 900.0
    assert restored.history[2025] == channel_state.history[2025]


def test_pending_close_not_restored(channel_state):
    """A close request does not survive a restart."""
    channel_state.billing.phase = PeriodPhase.CLOSING_REQUESTED
    restored = ChannelState.from_dict(channel_state.to_dict())
    assert restored.billing.phase == PeriodPhase.OPEN


def test_broken_storage_is_tolerated():
    """Garbage values fall back to defaults."""
    restored = ChannelState.from_dict(
        {
            "consumption": {"daily": "abc", "monthly": 5},
            "anchors": {"last_day_start": "not a date"},
            "history": {"x": {"year": "bad"}, "2024": {}},
        }
    )
    assert restored.consumption.daily == 0.0
    assert restored.consumption.monthly == 5.0
    assert restored.anchors.last_day_start is None
    assert restored.history == {}


def test_options_override_data(power_data):
    """Options take precedence over the initial data."""
    config = ChannelConfig.from_mapping(power_data, {CONF_PRICE: "0,31"})
    assert config.price == 0.31
    assert config.billed_unit == "kWh"
    assert not config.is_gas


def test_gas_config(gas_config):
    """Gas derives its factor from calorific value and state number."""
    assert gas_config.is_gas
    assert gas_config.gas_factor == 11.5 * 0.95
    assert gas_config.contract_start == datetime(2025, 5, 12, 12, 0)
    assert gas_config.has_price
    assert gas_config.tracks_volume
    assert gas_config.volume_unit == "m³"


def test_water_defaults_to_cubic_meters(power_data):
    """Water is billed in m³ unless configured otherwise."""
    config = ChannelConfig.from_mapping({**power_data, "channel_type": "water"})
    assert config.billed_unit == "m³"
    assert not config.tracks_volume
    assert config.volume_unit is None


def test_invalid_contract_keeps_raw(power_data):
    """A malformed contract date is kept raw but not parsed."""
    config = ChannelConfig.from_mapping({**power_data, CONF_CONTRACT_START: "31.02.2025"})
    assert config.contract_start_raw == "31.02.2025"
    assert config.contract_start is None


def test_ht_window(ht_nt_config, power_config):
    """HT window only when HT/NT is enabled."""
    assert ht_nt_config.ht_window == (360, 1320)
    assert power_config.ht_window == (None, None)
    assert ht_nt_config.has_price
