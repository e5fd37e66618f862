"""Test consumption accrual from raw meter readings."""
from dataclasses import asdict
from datetime import datetime

import pytest

from custom_components.utility_cost_monitor.const import (
    CONF_INITIAL_READING,
    CONF_OFFSET,
)
from custom_components.utility_cost_monitor.core.config import ChannelConfig
from custom_components.utility_cost_monitor.core.state import ChannelState
from custom_components.utility_cost_monitor.domain.accrual import ConsumptionAccrual
from custom_components.utility_cost_monitor.domain.calculator import ConversionError

NOON = datetime(2026, 3, 10, 12, 0, 0)
NIGHT = datetime(2026, 3, 10, 23, 0, 0)


def test_first_reading_sets_baseline(channel_state, power_config):
    """The first reading only records the meter."""
    accrual = ConsumptionAccrual()
    result = accrual.process(channel_state, power_config, 1000.0, NOON)

    assert result.first_reading
    assert not result.applied
    assert channel_state.meter.reading == 1000.0
    assert channel_state.meter.last_sync == NOON
    assert channel_state.meter.sensor_active
    assert channel_state.consumption.daily == 0.0
    assert accrual.last_value(power_config.sensor_entity) == 1000.0


def test_delta_added_to_all_windows(channel_state, power_config):
    """A rising meter adds the delta to day, month and year."""
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, power_config, 1000.0, NOON)
    result = accrual.process(channel_state, power_config, 1002.5, NOON)

    assert result.applied
    assert result.delta == pytest.approx(2.5)
    totals = channel_state.consumption
    assert totals.daily == 2.5
    assert totals.monthly == 2.5
    assert totals.yearly == 2.5


def test_identical_reading_is_noop(channel_state, power_config):
    """Repeating the same value accrues nothing."""
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, power_config, 1000.0, NOON)
    accrual.process(channel_state, power_config, 1001.0, NOON)
    result = accrual.process(channel_state, power_config, 1001.0, NOON)

    assert not result.applied
    assert not result.meter_decreased
    assert channel_state.consumption.daily == 1.0


def test_meter_decrease_rebases(channel_state, power_config):
    """A replaced meter becomes the new baseline without negative consumption."""
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, power_config, 1000.0, NOON)
    accrual.process(channel_state, power_config, 1004.0, NOON)

    result = accrual.process(channel_state, power_config, 10.0, NOON)
    assert result.meter_decreased
    assert result.previous == 1004.0
    assert channel_state.consumption.daily == 4.0
    assert channel_state.meter.reading == 10.0

    accrual.process(channel_state, power_config, 12.0, NOON)
    assert channel_state.consumption.daily == 6.0


def test_offset_is_subtracted(channel_state, power_data):
    """The meter offset corrects the raw value."""
    config = ChannelConfig.from_mapping({**power_data, CONF_OFFSET: 100})
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, config, 1100.0, NOON)

    assert channel_state.meter.reading == 1000.0


def test_restore_continues_after_restart(channel_state, power_config):
    """A restored last value turns the next reading into a delta."""
    accrual = ConsumptionAccrual()
    accrual.restore(power_config.sensor_entity, 1000.0)
    result = accrual.process(channel_state, power_config, 1003.0, NOON)

    assert result.applied
    assert channel_state.consumption.daily == 3.0


def test_gas_tracks_volume_and_energy(channel_state, gas_config):
    """Gas is billed in kWh and tracked in m³."""
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, gas_config, 100.0, NOON)
    assert channel_state.meter.reading == pytest.approx(1092.5)
    assert channel_state.meter.reading_volume == 100.0

    accrual.process(channel_state, gas_config, 102.0, NOON)
    totals = channel_state.consumption
    assert totals.daily == pytest.approx(21.85)
    assert totals.daily_volume == pytest.approx(2.0)
    assert totals.monthly_volume == pytest.approx(2.0)
    assert totals.yearly_volume == pytest.approx(2.0)
    assert totals.yearly == pytest.approx(21.85)


def test_gas_negative_volume_rejected(channel_state, gas_data):
    """A negative corrected volume raises and leaves the state untouched."""
    config = ChannelConfig.from_mapping({**gas_data, CONF_OFFSET: 500})
    accrual = ConsumptionAccrual()

    with pytest.raises(ConversionError):
        accrual.process(channel_state, config, 100.0, NOON)

    assert channel_state.meter.reading is None
    assert accrual.last_value(config.sensor_entity) is None


def test_baseline_mode_recomputes_yearly(channel_state, power_data):
    """With an initial reading the year is reading minus initial."""
    config = ChannelConfig.from_mapping({**power_data, CONF_INITIAL_READING: 900})
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, config, 1000.0, NOON)
    accrual.process(channel_state, config, 1010.0, NOON)

    assert channel_state.consumption.daily == 10.0
    assert channel_state.consumption.yearly == 110.0


def test_baseline_mode_gas(channel_state, gas_data):
    """Gas baseline is taken in m³ and converted."""
    config = ChannelConfig.from_mapping({**gas_data, CONF_INITIAL_READING: 90})
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, config, 100.0, NOON)
    accrual.process(channel_state, config, 102.0, NOON)

    assert channel_state.consumption.yearly_volume == pytest.approx(12.0)
    assert channel_state.consumption.yearly == pytest.approx(131.1)


def test_ht_nt_split(channel_state, ht_nt_config):
    """Deltas land in the bucket of the tariff in force."""
    accrual = ConsumptionAccrual()
    accrual.process(channel_state, ht_nt_config, 1000.0, NOON)

    result = accrual.process(channel_state, ht_nt_config, 1004.0, NOON)
    assert result.tariff == "HT"

    result = accrual.process(channel_state, ht_nt_config, 1005.5, NIGHT)
    assert result.tariff == "NT"

    totals = channel_state.consumption
    assert totals.daily_ht == 4.0
    assert totals.daily_nt == 1.5
    assert totals.yearly_ht == 4.0
    assert totals.yearly_nt == 1.5
    assert totals.daily == 5.5



def test_baseline_matches_accumulation_with_missed_readings(power_data, power_config):
    """Baseline mode reaches the accumulated yearly total even when readings are skipped."""
    readings = [1000.0, 1001.25, 1003.5, 1007.0, 1010.125]

    accumulated = ChannelState()
    accrual = ConsumptionAccrual()
    for value in readings:
        accrual.process(accumulated, power_config, value, NOON)

    baseline_config = ChannelConfig.from_mapping({**power_data, CONF_INITIAL_READING: readings[0]})
    baseline = ChannelState()
    accrual = ConsumptionAccrual()
    for value in (readings[1], readings[-1]):
        accrual.process(baseline, baseline_config, value, NOON)

    assert accumulated.consumption.yearly == 10.125
    assert baseline.consumption.yearly == accumulated.consumption.yearly


def test_totals_never_drop_on_meter_decrease(power_config, gas_config, ht_nt_config):
    """Meter swaps and glitches never reduce or negate a running total."""
    readings = [1000.0, 1004.0, 990.0, 995.0, 995.0, 1001.5, 0.5, 3.0]

    for config in (power_config, gas_config, ht_nt_config):
        state = ChannelState()
        accrual = ConsumptionAccrual()
        previous = asdict(state.consumption)
        for value in readings:
            accrual.process(state, config, value, NOON)
            current = asdict(state.consumption)
            for name, total in current.items():
                assert total >= 0.0, f"{name} negative for {config.channel_type}"
                assert total >= previous[name], f"{name} dropped for {config.channel_type}"
            previous = current
        assert state.consumption.yearly > 0.0
