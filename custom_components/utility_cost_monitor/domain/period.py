"""Billing period lifecycle and window resets.

Two independent ways end a billing year:

1. Manual close (OPEN -> CLOSING_REQUESTED -> CLOSED -> OPEN)
   The user records the end-of-period meter reading and triggers the close.
   The year is archived into history and the running totals restart.
   Only a human can read the physical meter, so this never runs by itself.

2. Automatic yearly reset
   When the contract anniversary passes (or the calendar year changes for
   channels without a contract date) the yearly totals restart without
   archiving anything.

Daily and monthly windows reset on date changes and keep the finished
window in the statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from ..const import CHANNEL_WATER, MONEY_DECIMALS
from ..core.state import BillingPeriodRecord, PeriodPhase
from .calculator import (
    anniversary_in_year,
    is_anniversary_reached,
    most_recent_anniversary,
    nearest_anniversary,
    round_to,
)

if TYPE_CHECKING:
    from ..core.config import ChannelConfig
    from ..core.state import BillingState, ChannelState, PeriodAnchors


class ResetKind(str, Enum):
    """Accumulation window that has to be reset."""

    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class CloseRejection(str, Enum):
    """Why a close request was refused."""

    NO_END_READING = "no_end_reading"
    NO_CONTRACT_START = "no_contract_start"
    INVALID_CONTRACT_START = "invalid_contract_start"
    ALREADY_ARCHIVED = "already_archived"


def _noon(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 12, 0, 0)


class PeriodResetEvaluator:
    """Decides and performs daily, monthly and yearly resets."""

    @staticmethod
    def initial_anchors(anchors: PeriodAnchors, contract_start: datetime | None, now: datetime) -> bool:
        """Fill missing anchors. Returns True if anything was seeded.

        The yearly anchor starts at the most recent contract anniversary, or
        1 January without a contract, so a fresh install does not reset the
        year it was installed in.
        """
        seeded = False
        if anchors.last_day_start is None:
            anchors.last_day_start = now
            seeded = True
        if anchors.last_month_start is None:
            anchors.last_month_start = now
            seeded = True
        if anchors.last_year_start is None:
            if contract_start is not None:
                anchors.last_year_start = _noon(most_recent_anniversary(contract_start.date(), now.date()))
            else:
                anchors.last_year_start = datetime(now.year, 1, 1, 0, 0, 0)
            seeded = True
        return seeded

    @staticmethod
    def due_resets(
        anchors: PeriodAnchors,
        contract_start: datetime | None,
        now: datetime,
    ) -> list[ResetKind]:
        """Resets due at ``now``. An unset anchor never triggers a reset."""
        due: list[ResetKind] = []

        if anchors.last_day_start is not None and now.date() != anchors.last_day_start.date():
            due.append(ResetKind.DAILY)

        last_month = anchors.last_month_start
        if last_month is not None and (now.year, now.month) != (last_month.year, last_month.month):
            due.append(ResetKind.MONTHLY)

        last_year = anchors.last_year_start
        if last_year is not None and last_year.year != now.year:
            if contract_start is None or is_anniversary_reached(contract_start.date(), now.date()):
                due.append(ResetKind.YEARLY)

        return due

    @staticmethod
    def apply_daily_reset(state: ChannelState, now: datetime) -> float:
        """Close the day. Returns the finished day's consumption."""
        totals = state.consumption
        finished = totals.daily

        state.statistics.last_day = finished
        state.statistics.last_day_volume = totals.daily_volume
        state.statistics.average_daily = round_to(finished, MONEY_DECIMALS)

        totals.reset_daily()
        state.costs.reset_daily()
        state.anchors.last_day_start = now
        return finished

    @staticmethod
    def apply_monthly_reset(state: ChannelState, now: datetime) -> float:
        """Close the month. Returns the finished month's consumption."""
        totals = state.consumption
        finished = totals.monthly

        state.statistics.average_monthly = round_to(finished, MONEY_DECIMALS)

        totals.reset_monthly()
        state.costs.reset_monthly()
        state.anchors.last_month_start = now
        return finished

    @staticmethod
    def apply_yearly_reset(state: ChannelState, contract_start: datetime | None, now: datetime) -> None:
        """Restart the year without archiving it."""
        state.reset_yearly()
        if contract_start is not None:
            state.anchors.last_year_start = _noon(anniversary_in_year(contract_start.date(), now.year))
        else:
            state.anchors.last_year_start = now


@dataclass
class CloseCheck:
    """Outcome of the close guards."""

    rejection: CloseRejection | None = None
    year: int | None = None

    @property
    def ok(self) -> bool:
        """True when the period may be closed."""
        return self.rejection is None


class BillingPeriodLifecycle:
    """Explicit state machine for closing a billing period."""

    @staticmethod
    def request_close(billing: BillingState) -> bool:
        """OPEN -> CLOSING_REQUESTED. False if a close is already underway."""
        if billing.phase != PeriodPhase.OPEN:
            return False
        billing.phase = PeriodPhase.CLOSING_REQUESTED
        billing.last_close_error = ""
        return True

    @staticmethod
    def settled_anniversary(config: ChannelConfig, now: datetime) -> date | None:
        """Anniversary that ends the contract year a close at ``now`` settles.

        The anniversary nearest to the close, so a close a few days late
        still settles the year that just ended and an early one the year
        about to end.
        """
        if config.contract_start is None:
            return None
        return nearest_anniversary(config.contract_start.date(), now.date())

    @staticmethod
    def archive_year(config: ChannelConfig, now: datetime) -> int | None:
        """Year the period closed at ``now`` is archived under.

        The start year of the settled contract year, never before the
        contract start year.
        """
        settled = BillingPeriodLifecycle.settled_anniversary(config, now)
        if settled is None:
            return None
        return max(settled.year - 1, config.contract_start.year)

    @staticmethod
    def validate_close(state: ChannelState, config: ChannelConfig, now: datetime) -> CloseCheck:
        """Run the close guards in order, first failure wins."""
        if not state.billing.end_reading or state.billing.end_reading <= 0:
            return CloseCheck(CloseRejection.NO_END_READING)
        if not config.contract_start_raw:
            return CloseCheck(CloseRejection.NO_CONTRACT_START)
        if config.contract_start is None:
            return CloseCheck(CloseRejection.INVALID_CONTRACT_START)

        year = BillingPeriodLifecycle.archive_year(config, now)
        if year in state.history:
            return CloseCheck(CloseRejection.ALREADY_ARCHIVED, year)
        return CloseCheck(year=year)

    @staticmethod
    def reject(billing: BillingState, rejection: CloseRejection) -> None:
        """CLOSING_REQUESTED -> OPEN without touching anything else."""
        billing.phase = PeriodPhase.OPEN
        billing.last_close_error = rejection.value

    @staticmethod
    def snapshot(state: ChannelState, config: ChannelConfig, year: int, now: datetime) -> BillingPeriodRecord:
        """Immutable record of the running year."""
        totals = state.consumption
        yearly_volume = None
        if config.is_gas:
            yearly_volume = totals.yearly_volume
        elif config.channel_type == CHANNEL_WATER:
            yearly_volume = totals.yearly

        return BillingPeriodRecord(
            year=year,
            closed_at=now.isoformat(),
            end_reading=state.billing.end_reading,
            unit=config.billed_unit,
            yearly=totals.yearly,
            total_yearly_cost=state.costs.total_yearly,
            balance=state.costs.balance,
            yearly_volume=yearly_volume,
            yearly_ht=totals.yearly_ht if config.ht_nt_enabled else None,
            yearly_nt=totals.yearly_nt if config.ht_nt_enabled else None,
            reading_unit=config.volume_unit or config.billed_unit,
        )

    @staticmethod
    def close(state: ChannelState, config: ChannelConfig, year: int, now: datetime) -> BillingPeriodRecord:
        """CLOSING_REQUESTED -> CLOSED -> OPEN.

        Costs must be up to date before calling. The end reading is offered
        as the new initial reading; the configuration itself is left alone.
        The manual adjustment belongs to the settled period and is cleared.
        The next period starts at the settled anniversary, so the automatic
        yearly reset does not fire again for it.
        """
        record = BillingPeriodLifecycle.snapshot(state, config, year, now)
        state.history[year] = record

        billing = state.billing
        billing.phase = PeriodPhase.CLOSED
        billing.new_initial_reading = billing.end_reading
        billing.last_close_error = ""

        state.reset_yearly()
        state.adjustment.clear()
        settled = BillingPeriodLifecycle.settled_anniversary(config, now)
        state.anchors.last_year_start = _noon(settled) if settled is not None else now

        billing.phase = PeriodPhase.OPEN
        return record
