"""Consumption accrual - turns raw meter readings into running totals.

Daily and monthly totals always accumulate positive deltas between
consecutive readings. The yearly total has two modes:

- Baseline mode (initial reading > 0): recomputed from scratch on every
  delta as (corrected reading - initial reading). Missed readings while
  Home Assistant was down are therefore healed by the next one.
- Accumulation mode: deltas are added like daily/monthly.

A reading at or below the previous one never produces consumption. A
decrease means the meter was replaced or reset; the new value simply
becomes the next baseline for deltas.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from ..const import CONSUMPTION_DECIMALS, MONEY_DECIMALS, TARIFF_HT, TARIFF_NT
from .calculator import (
    gas_volume_to_energy,
    is_peak_tariff_now,
    minutes_since_midnight,
    round_to,
)

if TYPE_CHECKING:
    from ..core.config import ChannelConfig
    from ..core.state import ChannelState


@dataclass
class AccrualResult:
    """Outcome of processing one reading."""

    energy: float
    volume: float | None = None
    delta: float = 0.0
    delta_volume: float = 0.0
    tariff: str | None = None
    applied: bool = False
    first_reading: bool = False
    meter_decreased: bool = False
    previous: float | None = None


def _add(total: float, delta: float) -> float:
    return round_to(total + delta, CONSUMPTION_DECIMALS)


class ConsumptionAccrual:
    """Delta accrual for one channel.

    Owns the last corrected reading per sensor key. The value only lives in
    memory; the coordinator seeds it from the persisted meter reading at
    start-up through ``restore``.
    """

    def __init__(self) -> None:
        """Initialize with an empty last-value record."""
        self._last_values: dict[str, float] = {}

    def restore(self, sensor_key: str, value: float | None) -> None:
        """Seed the last value for a sensor (e.g. after a restart)."""
        if value is None:
            return
        self._last_values[sensor_key] = value

    def last_value(self, sensor_key: str) -> float | None:
        """Last corrected reading seen for a sensor."""
        return self._last_values.get(sensor_key)

    def process(
        self,
        state: ChannelState,
        config: ChannelConfig,
        raw_value: float,
        now: datetime,
        sensor_key: str | None = None,
    ) -> AccrualResult:
        """Apply one raw reading to the channel state.

        Raises:
            ConversionError: if the gas conversion rejects the reading.
                Nothing has been mutated in that case.
        """
        key = sensor_key or config.sensor_entity
        corrected = raw_value - config.offset

        volume: float | None = None
        if config.is_gas:
            volume = corrected
            energy = round_to(
                gas_volume_to_energy(volume, config.calorific_value, config.state_number),
                MONEY_DECIMALS,
            )
        else:
            energy = round_to(corrected, CONSUMPTION_DECIMALS)

        meter = state.meter
        meter.reading = energy
        meter.reading_volume = round_to(volume, CONSUMPTION_DECIMALS) if volume is not None else None
        meter.last_sync = now
        meter.sensor_active = True

        last = self._last_values.get(key)
        result = AccrualResult(energy=energy, volume=volume, previous=last)

        if last is None or energy <= last:
            self._last_values[key] = energy
            result.first_reading = last is None
            result.meter_decreased = last is not None and energy < last
            return result

        delta = energy - last
        self._last_values[key] = energy
        result.delta = delta
        result.applied = True

        totals = state.consumption
        totals.daily = _add(totals.daily, delta)
        totals.monthly = _add(totals.monthly, delta)

        if config.is_gas:
            delta_volume = delta / config.gas_factor
            result.delta_volume = delta_volume
            totals.daily_volume = _add(totals.daily_volume, delta_volume)
            totals.monthly_volume = _add(totals.monthly_volume, delta_volume)
            totals.yearly_volume = _add(totals.yearly_volume, delta_volume)

        if config.ht_nt_enabled:
            start, end = config.ht_window
            if is_peak_tariff_now(start, end, minutes_since_midnight(now)):
                result.tariff = TARIFF_HT
                totals.daily_ht = _add(totals.daily_ht, delta)
                totals.monthly_ht = _add(totals.monthly_ht, delta)
                totals.yearly_ht = _add(totals.yearly_ht, delta)
            else:
                result.tariff = TARIFF_NT
                totals.daily_nt = _add(totals.daily_nt, delta)
                totals.monthly_nt = _add(totals.monthly_nt, delta)
                totals.yearly_nt = _add(totals.yearly_nt, delta)

        if config.initial_reading > 0:
            if config.is_gas:
                yearly_volume = max(0.0, volume - config.initial_reading)
                totals.yearly_volume = round_to(yearly_volume, CONSUMPTION_DECIMALS)
                totals.yearly = round_to(
                    gas_volume_to_energy(yearly_volume, config.calorific_value, config.state_number),
                    MONEY_DECIMALS,
                )
            else:
                totals.yearly = round_to(
                    max(0.0, corrected - config.initial_reading), CONSUMPTION_DECIMALS
                )
        else:
            totals.yearly = _add(totals.yearly, delta)

        return result
