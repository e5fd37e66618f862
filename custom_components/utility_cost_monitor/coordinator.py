"""Utility Coordinator - thin orchestrator for one utility channel.

It:
- Initializes all components of the channel
- Listens to the meter sensor and the 60 s scheduler
- Delegates all logic to domain modules
- Persists state and emits events for state changes

Every mutating operation runs under the channel lock, whatever triggered it
(sensor event, scheduler, service, entity). A reset can therefore never
interleave with a delta being added to the same totals. Reminders are sent
after the lock is released so a slow notify service never delays readings.
"""

from __future__ import annotations

import asyncio
import csv
import io
import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.core import Event, callback
from homeassistant.helpers import storage
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.event import (
    async_track_state_change_event,
    async_track_time_interval,
)
from homeassistant.util import dt as dt_util

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .infra.notifier import Reminder

from .const import (
    CONSUMPTION_DECIMALS,
    SCAN_INTERVAL_SECONDS,
    STORAGE_KEY,
    STORAGE_VERSION,
)
from .core.config import ChannelConfig
from .core.events import UtilityEvent, UtilityEventBus
from .core.gateway import UtilityGateway, parse_meter_state
from .core.state import ChannelState, PeriodPhase
from .domain.accrual import ConsumptionAccrual
from .domain.billing import BillingCalculator, CostBreakdown
from .domain.calculator import ConversionError, round_to
from .domain.period import BillingPeriodLifecycle, PeriodResetEvaluator, ResetKind
from .domain.reminders import ReminderKind, ReminderPlanner
from .infra.notifier import Notifier
from .monitor_logging import get_logger

EXPORT_FORMATS = ("json", "csv")

_CSV_FIELDS = [
    "year",
    "closed_at",
    "end_reading",
    "reading_unit",
    "unit",
    "yearly",
    "yearly_volume",
    "yearly_ht",
    "yearly_nt",
    "total_yearly_cost",
    "balance",
]


class UtilityCoordinator:
    """Thin orchestrator for one utility channel.

    This class:
    - Loads and saves the channel state
    - Feeds meter readings into the accrual
    - Runs resets, countdown and reminders every minute
    - Drives the billing period lifecycle
    """

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        """Initialize the coordinator."""
        self.hass = hass
        self.entry = entry
        self._listeners = []
        self._logger = get_logger()
        self._lock = asyncio.Lock()
        self._unloaded = False
        self._reminders_in_flight: set[ReminderKind] = set()

        self.config = ChannelConfig.from_mapping(entry.data, entry.options)
        self.state = ChannelState()

        self.events = UtilityEventBus(hass, entry.entry_id, self.config.name)
        self.gateway = UtilityGateway(hass, self.events)
        self.notifier = Notifier(self.gateway)
        self.accrual = ConsumptionAccrual()

        # One store per channel
        self._store = storage.Store(hass, STORAGE_VERSION, f"{STORAGE_KEY}.{entry.entry_id}")

        self._logger.info(
            "COORDINATOR_INIT",
            channel=self.config.name,
            type=self.config.channel_type,
            sensor=self.config.sensor_entity,
        )

    @property
    def entry_id(self) -> str:
        """Config entry id of the channel."""
        return self.entry.entry_id

    @property
    def lock(self) -> asyncio.Lock:
        """Channel lock serializing all mutations."""
        return self._lock

    async def async_init(self) -> None:
        """Load state, subscribe to the meter and start the scheduler."""
        self._logger.info("COORDINATOR_ASYNC_INIT_START", channel=self.config.name)

        await self._load_data()

        now = dt_util.now()
        if PeriodResetEvaluator.initial_anchors(self.state.anchors, self.config.contract_start, now):
            self._logger.info(
                "ANCHORS_SEEDED",
                channel=self.config.name,
                year_start=self.state.anchors.last_year_start,
            )

        self.accrual.restore(self.config.sensor_entity, self.state.meter.reading)
        self._logger.debug(
            "LAST_VALUE_RESTORED",
            channel=self.config.name,
            value=self.accrual.last_value(self.config.sensor_entity),
        )

        if not self.config.active:
            self._logger.info("CHANNEL_INACTIVE", channel=self.config.name)
            return

        self._setup_meter_tracking()
        self._setup_scheduler()

        await self.async_run_periodic_checks()

        value = self.gateway.read_meter(self.config.sensor_entity)
        if value is not None:
            await self.async_handle_reading(value)

        self._logger.info("COORDINATOR_ASYNC_INIT_COMPLETE", channel=self.config.name)

    async def _load_data(self) -> None:
        """Load persisted state from storage."""
        data = await self._store.async_load()
        if data:
            self.state = ChannelState.from_dict(data)
            self._logger.info(
                "STATE_LOADED",
                channel=self.config.name,
                meter_reading=self.state.meter.reading,
                history=len(self.state.history),
            )

    async def _save_data(self) -> None:
        """Save state to storage."""
        await self._store.async_save(self.state.to_dict())
        self._logger.debug("DATA_SAVED", channel=self.config.name)

    def _setup_meter_tracking(self) -> None:
        """Subscribe to the meter sensor."""
        if not self.config.sensor_entity:
            self._logger.warning("METER_SENSOR_NOT_CONFIGURED", channel=self.config.name)
            return

        self._listeners.append(
            async_track_state_change_event(
                self.hass,
                [self.config.sensor_entity],
                self._handle_meter_change,
            )
        )
        self.state.meter.sensor_active = self.hass.states.get(self.config.sensor_entity) is not None
        self._logger.debug("METER_TRACKING_ENABLED", sensor=self.config.sensor_entity)

    def _setup_scheduler(self) -> None:
        """Run the periodic checks every minute."""
        self._listeners.append(
            async_track_time_interval(
                self.hass,
                self._handle_interval,
                timedelta(seconds=SCAN_INTERVAL_SECONDS),
            )
        )
        self._logger.debug("SCHEDULER_STARTED", interval=SCAN_INTERVAL_SECONDS)

    async def async_unload(self) -> None:
        """Stop listening and wait for the running operation to finish."""
        for remove in self._listeners:
            remove()
        self._listeners.clear()

        async with self._lock:
            self._unloaded = True
            await self._save_data()

        self._logger.info("COORDINATOR_UNLOADED", channel=self.config.name)

    # ========== Event Handlers ==========

    @callback
    def _handle_meter_change(self, event: Event) -> None:
        """Turn a meter state change into a reading task."""
        new_state = event.data.get("new_state")
        if new_state is None or new_state.state in (STATE_UNKNOWN, STATE_UNAVAILABLE):
            self.state.meter.sensor_active = False
            async_dispatcher_send(self.hass, self.events.signal)
            return

        value = parse_meter_state(new_state.state)
        if value is None:
            self._logger.warning(
                "READING_REJECTED",
                channel=self.config.name,
                entity_id=new_state.entity_id,
                value=new_state.state,
            )
            return

        self.hass.async_create_task(self.async_handle_reading(value))

    async def _handle_interval(self, now: datetime) -> None:
        """Scheduler tick."""
        await self.async_run_periodic_checks()

    # ========== Readings ==========

    async def async_handle_reading(self, value: float, now: datetime | None = None) -> bool:
        """Process one raw meter reading.

        Returns:
            True if the reading was accepted
        """
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            self._logger.warning("READING_REJECTED", channel=self.config.name, value=value)
            await self.events.emit(UtilityEvent.READING_REJECTED, value=value)
            return False

        async with self._lock:
            if self._unloaded:
                return False

            now = now or dt_util.now()
            try:
                result = self.accrual.process(self.state, self.config, float(value), now)
            except ConversionError as ex:
                self._logger.warning(
                    "READING_REJECTED",
                    channel=self.config.name,
                    value=value,
                    error=str(ex),
                )
                await self.events.emit(UtilityEvent.READING_REJECTED, value=value, error=str(ex))
                return False

            if result.meter_decreased:
                self._logger.warning(
                    "METER_RESET_DETECTED",
                    channel=self.config.name,
                    last=result.previous,
                    value=result.energy,
                )
            elif result.applied:
                self._logger.debug(
                    "READING_PROCESSED",
                    channel=self.config.name,
                    value=result.energy,
                    delta=round_to(result.delta, CONSUMPTION_DECIMALS),
                    tariff=result.tariff,
                )

            self._recalculate_costs(now)
            await self._save_data()

        if result.meter_decreased:
            await self.events.emit(
                UtilityEvent.METER_RESET_DETECTED,
                last=result.previous,
                value=result.energy,
            )
        else:
            await self.events.emit(
                UtilityEvent.READING_PROCESSED,
                value=result.energy,
                delta=result.delta,
            )
        return True

    # ========== Scheduler ==========

    async def async_run_periodic_checks(self, now: datetime | None = None) -> list[ResetKind]:
        """One scheduler pass: tariff, resets, countdown, reminders, costs.

        Returns:
            The resets that were performed
        """
        performed: list[ResetKind] = []
        reminders: list[Reminder] = []

        async with self._lock:
            if self._unloaded or not self.config.active:
                return performed

            now = now or dt_util.now()
            self._refresh_tariff(now)

            for kind in PeriodResetEvaluator.due_resets(
                self.state.anchors, self.config.contract_start, now
            ):
                if kind == ResetKind.DAILY:
                    finished = PeriodResetEvaluator.apply_daily_reset(self.state, now)
                    self._logger.info("DAILY_RESET", channel=self.config.name, last_day=finished)
                elif kind == ResetKind.MONTHLY:
                    finished = PeriodResetEvaluator.apply_monthly_reset(self.state, now)
                    self._logger.info("MONTHLY_RESET", channel=self.config.name, last_month=finished)
                else:
                    PeriodResetEvaluator.apply_yearly_reset(self.state, self.config.contract_start, now)
                    self._logger.info(
                        "YEARLY_RESET",
                        channel=self.config.name,
                        year_start=self.state.anchors.last_year_start,
                    )
                performed.append(kind)

            ReminderPlanner.update_countdown(self.state.billing, self.config, now.date())
            reminders = [
                reminder
                for reminder in self.notifier.due_reminders(self.config, self.state)
                if reminder.kind not in self._reminders_in_flight
            ]
            self._reminders_in_flight.update(reminder.kind for reminder in reminders)

            self._recalculate_costs(now)
            await self._save_data()

        sent = await self._async_send_reminders(reminders)

        reset_events = {
            ResetKind.DAILY: UtilityEvent.DAILY_RESET,
            ResetKind.MONTHLY: UtilityEvent.MONTHLY_RESET,
            ResetKind.YEARLY: UtilityEvent.YEARLY_RESET,
        }
        for kind in performed:
            await self.events.emit(reset_events[kind])
        for kind in sent:
            await self.events.emit(UtilityEvent.REMINDER_SENT, kind=kind.value)

        await self.events.emit_state_update()
        return performed

    async def _async_send_reminders(self, reminders: list[Reminder]) -> list[ReminderKind]:
        """Send reminders without holding the lock, then flag the delivered ones."""
        sent: list[ReminderKind] = []
        try:
            for reminder in reminders:
                if not await self.notifier.async_send(self.config, reminder):
                    continue
                async with self._lock:
                    if self._unloaded:
                        break
                    ReminderPlanner.mark_sent(self.state.billing, reminder.kind)
                    await self._save_data()
                sent.append(reminder.kind)
        finally:
            self._reminders_in_flight.difference_update(reminder.kind for reminder in reminders)
        return sent

    # ========== Costs ==========

    def _refresh_tariff(self, now: datetime) -> None:
        """Update the current tariff label and price."""
        self.state.meter.current_tariff = BillingCalculator.tariff_label(self.config, now)
        self.state.meter.current_price = BillingCalculator.current_price(self.config, now)

    def _recalculate_costs(self, now: datetime) -> CostBreakdown | None:
        """Recompute all cost figures. Caller holds the lock."""
        try:
            breakdown = BillingCalculator.compute(self.state, self.config, now)
        except ConversionError as ex:
            self._logger.warning("COST_CALCULATION_FAILED", channel=self.config.name, error=str(ex))
            return None

        if breakdown is None:
            self._logger.debug("NO_PRICE_CONFIGURED", channel=self.config.name)
            return None

        BillingCalculator.apply(self.state, breakdown, self.config.ht_nt_enabled)
        self._logger.debug(
            "COSTS_UPDATED",
            channel=self.config.name,
            total_yearly=breakdown.total_yearly,
            months=breakdown.months,
            balance=breakdown.balance,
        )
        return breakdown

    async def async_recalculate_costs(self) -> bool:
        """Recompute costs on demand.

        Returns:
            False when no price is configured
        """
        async with self._lock:
            now = dt_util.now()
            self._refresh_tariff(now)
            breakdown = self._recalculate_costs(now)
            await self._save_data()

        self._logger.info("COSTS_RECALCULATED", channel=self.config.name, ok=breakdown is not None)
        await self.events.emit(UtilityEvent.COSTS_UPDATED)
        return breakdown is not None

    # ========== Billing Period ==========

    async def async_request_close_period(self) -> bool:
        """User asked to close the billing period.

        Returns:
            True if the period was archived
        """
        async with self._lock:
            if not BillingPeriodLifecycle.request_close(self.state.billing):
                self._logger.warning("CLOSE_ALREADY_PENDING", channel=self.config.name)
                return False
            self._logger.info(
                "CLOSE_REQUESTED",
                channel=self.config.name,
                end_reading=self.state.billing.end_reading,
            )

        await self.events.emit(UtilityEvent.CLOSE_REQUESTED)
        return await self.async_close_period()

    async def async_close_period(self, now: datetime | None = None) -> bool:
        """Validate and perform a requested close.

        Returns:
            True if the period was archived
        """
        async with self._lock:
            billing = self.state.billing
            if billing.phase != PeriodPhase.CLOSING_REQUESTED:
                self._logger.debug("CLOSE_NOT_REQUESTED", channel=self.config.name, phase=billing.phase.value)
                return False

            now = now or dt_util.now()
            check = BillingPeriodLifecycle.validate_close(self.state, self.config, now)
            if not check.ok:
                BillingPeriodLifecycle.reject(billing, check.rejection)
                self._logger.error(
                    "CLOSE_REJECTED",
                    channel=self.config.name,
                    reason=check.rejection.value,
                    end_reading=billing.end_reading,
                    contract_start=self.config.contract_start_raw,
                    year=check.year,
                )
                await self._save_data()
                rejection = check.rejection
                record = None
            else:
                self._recalculate_costs(now)
                record = BillingPeriodLifecycle.close(self.state, self.config, check.year, now)
                self._logger.info(
                    "PERIOD_CLOSED",
                    channel=self.config.name,
                    year=record.year,
                    yearly=record.yearly,
                    total_cost=record.total_yearly_cost,
                    balance=record.balance,
                    new_initial_reading=billing.new_initial_reading,
                )
                await self._save_data()

        if record is None:
            await self.events.emit(UtilityEvent.CLOSE_REJECTED, reason=rejection.value)
            return False

        await self.events.emit(UtilityEvent.PERIOD_CLOSED, year=record.year)
        return True

    async def async_set_end_reading(self, value: float) -> bool:
        """Record the end-of-period meter reading."""
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            self._logger.warning("END_READING_INVALID", channel=self.config.name, value=value)
            return False

        async with self._lock:
            self.state.billing.end_reading = round_to(float(value), CONSUMPTION_DECIMALS)
            await self._save_data()

        self._logger.info("END_READING_SET", channel=self.config.name, value=value)
        await self.events.emit(UtilityEvent.END_READING_SET, value=value)
        return True

    # ========== Manual Adjustment ==========

    async def async_set_adjustment(self, value: float, note: str | None = None) -> bool:
        """Set the manual correction (m³ for gas, billed unit otherwise)."""
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            self._logger.warning("ADJUSTMENT_INVALID", channel=self.config.name, value=value)
            return False

        async with self._lock:
            adjustment = self.state.adjustment
            adjustment.value = round_to(float(value), CONSUMPTION_DECIMALS)
            if note is not None:
                adjustment.note = note
            adjustment.applied = dt_util.now()
            self._recalculate_costs(adjustment.applied)
            await self._save_data()

        self._logger.info("ADJUSTMENT_SET", channel=self.config.name, value=value, note=note)
        await self.events.emit(UtilityEvent.ADJUSTMENT_CHANGED, value=value)
        return True

    async def async_clear_adjustment(self) -> None:
        """Remove the manual correction."""
        async with self._lock:
            self.state.adjustment.clear()
            self._recalculate_costs(dt_util.now())
            await self._save_data()

        self._logger.info("ADJUSTMENT_CLEARED", channel=self.config.name)
        await self.events.emit(UtilityEvent.ADJUSTMENT_CHANGED, value=0.0)

    # ========== Export ==========

    def export_history(self, fmt: str = "json") -> dict[str, Any]:
        """Archived billing periods as JSON records or CSV text."""
        records = [record.to_dict() for _, record in sorted(self.state.history.items())]
        result: dict[str, Any] = {
            "channel": self.config.name,
            "channel_type": self.config.channel_type,
            "unit": self.config.billed_unit,
        }

        if fmt == "csv":
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=_CSV_FIELDS, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(records)
            result["csv"] = buffer.getvalue()
        else:
            result["records"] = records

        self._logger.debug("HISTORY_EXPORTED", channel=self.config.name, format=fmt, records=len(records))
        return result

    # ========== Debug ==========

    async def async_set_file_logging(self, enabled: bool) -> None:
        """Switch the JSON event log on or off."""
        await self.hass.async_add_executor_job(self._logger.set_file_logging, enabled)
        await self.events.emit_state_update()
