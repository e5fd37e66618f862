"""Billing calculator - consumption costs, fixed costs and prepayment balance.

Costs are always derived from the current totals, never accumulated, so a
recompute is safe at any time (after a reading, a reset, an adjustment or a
config change).

Fixed costs accrue per started month of the contract year:

    months = max(1, (year_now - year_anchor) * 12 + (month_now - month_anchor) + 1)
    fixed  = basic_charge * months + annual_fee / 12 * months

A positive balance means the prepayments do not cover the costs so far
(shortfall), a negative balance is a credit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from ..const import MONEY_DECIMALS, PRICE_DECIMALS, TARIFF_HT, TARIFF_NT, TARIFF_STANDARD
from .calculator import (
    gas_volume_to_energy,
    is_peak_tariff_now,
    minutes_since_midnight,
    months_elapsed,
    most_recent_anniversary,
    round_to,
)

if TYPE_CHECKING:
    from ..core.config import ChannelConfig
    from ..core.state import ChannelState


@dataclass
class CostBreakdown:
    """Result of a cost computation, already rounded for display."""

    daily: float
    monthly: float
    yearly: float
    months: int
    basic_charge: float
    annual_fee: float
    fixed_costs: float
    total_yearly: float
    paid_total: float
    balance: float
    yearly_consumption: float
    daily_ht: float = 0.0
    daily_nt: float = 0.0
    monthly_ht: float = 0.0
    monthly_nt: float = 0.0
    yearly_ht: float = 0.0
    yearly_nt: float = 0.0


class BillingCalculator:
    """Pure cost computation for one channel."""

    @staticmethod
    def months_anchor(state: ChannelState, config: ChannelConfig, now: datetime) -> datetime:
        """Date fixed costs are counted from.

        Start of the current contract year when a contract start is known,
        otherwise the last yearly reset (or now, before the first one).
        This is the contract start date itself only in the first contract
        year; later years count from their anniversary so fixed costs
        restart together with the yearly consumption.
        """
        if config.contract_start is not None:
            start = most_recent_anniversary(config.contract_start.date(), now.date())
            return datetime(start.year, start.month, start.day, 12, 0, 0)
        return state.anchors.last_year_start or now

    @staticmethod
    def adjusted_yearly(state: ChannelState, config: ChannelConfig) -> float:
        """Yearly consumption with the manual adjustment folded in.

        For gas the adjustment is in m³ and is added to the yearly volume
        before converting back to kWh.
        """
        totals = state.consumption
        adjustment = state.adjustment.value
        if not adjustment:
            return totals.yearly
        if config.is_gas:
            return gas_volume_to_energy(
                max(0.0, totals.yearly_volume + adjustment),
                config.calorific_value,
                config.state_number,
            )
        return totals.yearly + adjustment

    @staticmethod
    def compute(
        state: ChannelState,
        config: ChannelConfig,
        now: datetime,
    ) -> CostBreakdown | None:
        """Compute all cost figures, or None when no price is configured."""
        if not config.has_price:
            return None

        totals = state.consumption
        adjustment = state.adjustment.value
        yearly = BillingCalculator.adjusted_yearly(state, config)

        ht_costs: dict[str, float] = {}
        if config.ht_nt_enabled:
            yearly_ht = totals.yearly_ht
            if adjustment:
                # Whole adjustment is booked on HT
                if config.is_gas:
                    yearly_ht += adjustment * config.gas_factor
                else:
                    yearly_ht += adjustment

            ht, nt = config.ht_price, config.nt_price
            ht_costs = {
                "daily_ht": totals.daily_ht * ht,
                "daily_nt": totals.daily_nt * nt,
                "monthly_ht": totals.monthly_ht * ht,
                "monthly_nt": totals.monthly_nt * nt,
                "yearly_ht": yearly_ht * ht,
                "yearly_nt": totals.yearly_nt * nt,
            }
            daily_cost = ht_costs["daily_ht"] + ht_costs["daily_nt"]
            monthly_cost = ht_costs["monthly_ht"] + ht_costs["monthly_nt"]
            yearly_cost = ht_costs["yearly_ht"] + ht_costs["yearly_nt"]
        else:
            daily_cost = totals.daily * config.price
            monthly_cost = totals.monthly * config.price
            yearly_cost = yearly * config.price

        anchor = BillingCalculator.months_anchor(state, config, now)
        months = months_elapsed(anchor.date(), now.date())

        basic_charge = config.basic_charge_monthly * months
        annual_fee = config.annual_fee / 12 * months
        fixed_costs = basic_charge + annual_fee
        total_yearly = yearly_cost + fixed_costs

        if config.prepayment_monthly > 0:
            paid_total = config.prepayment_monthly * months
            balance = total_yearly - paid_total
        else:
            paid_total = 0.0
            balance = 0.0

        return CostBreakdown(
            daily=round_to(daily_cost, MONEY_DECIMALS),
            monthly=round_to(monthly_cost, MONEY_DECIMALS),
            yearly=round_to(yearly_cost, MONEY_DECIMALS),
            months=months,
            basic_charge=round_to(basic_charge, MONEY_DECIMALS),
            annual_fee=round_to(annual_fee, MONEY_DECIMALS),
            fixed_costs=round_to(fixed_costs, MONEY_DECIMALS),
            total_yearly=round_to(total_yearly, MONEY_DECIMALS),
            paid_total=round_to(paid_total, MONEY_DECIMALS),
            balance=round_to(balance, MONEY_DECIMALS),
            yearly_consumption=yearly,
            **{key: round_to(value, MONEY_DECIMALS) for key, value in ht_costs.items()},
        )

    @staticmethod
    def apply(state: ChannelState, breakdown: CostBreakdown, ht_nt_enabled: bool) -> None:
        """Write a breakdown into the channel's cost state."""
        costs = state.costs
        costs.daily = breakdown.daily
        costs.monthly = breakdown.monthly
        costs.yearly = breakdown.yearly
        costs.basic_charge = breakdown.basic_charge
        costs.annual_fee = breakdown.annual_fee
        costs.fixed_costs = breakdown.fixed_costs
        costs.total_yearly = breakdown.total_yearly
        costs.paid_total = breakdown.paid_total
        costs.balance = breakdown.balance

        if ht_nt_enabled:
            costs.daily_ht = breakdown.daily_ht
            costs.daily_nt = breakdown.daily_nt
            costs.monthly_ht = breakdown.monthly_ht
            costs.monthly_nt = breakdown.monthly_nt
            costs.yearly_ht = breakdown.yearly_ht
            costs.yearly_nt = breakdown.yearly_nt

    @staticmethod
    def is_peak(config: ChannelConfig, now: datetime) -> bool:
        """True when the HT tariff applies right now."""
        start, end = config.ht_window
        return is_peak_tariff_now(start, end, minutes_since_midnight(now))

    @staticmethod
    def tariff_label(config: ChannelConfig, now: datetime) -> str:
        """Name of the tariff currently in force."""
        if not config.ht_nt_enabled:
            return TARIFF_STANDARD
        return TARIFF_HT if BillingCalculator.is_peak(config, now) else TARIFF_NT

    @staticmethod
    def current_price(config: ChannelConfig, now: datetime) -> float:
        """Price per billed unit right now, rounded for display."""
        if not config.ht_nt_enabled:
            return round_to(config.price, PRICE_DECIMALS)
        price = config.ht_price if BillingCalculator.is_peak(config, now) else config.nt_price
        return round_to(price, PRICE_DECIMALS)
