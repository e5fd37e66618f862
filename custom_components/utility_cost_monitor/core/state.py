"""Channel state - everything the integration persists for one channel.

ChannelState is the only owner of accrued values. Domain code mutates it,
the coordinator persists it, entities read from it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt_from_str(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _load_floats(cls, data: dict | None):
    """Build a float-only dataclass, ignoring unknown or broken keys."""
    data = data or {}
    kwargs = {}
    for f in fields(cls):
        value = data.get(f.name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            kwargs[f.name] = float(value)
    return cls(**kwargs)


class PeriodPhase(str, Enum):
    """Billing period lifecycle phase."""

    OPEN = "open"
    CLOSING_REQUESTED = "closing_requested"
    CLOSED = "closed"


@dataclass
class ConsumptionTotals:
    """Running consumption per window, in the billed unit unless noted."""

    daily: float = 0.0
    monthly: float = 0.0
    yearly: float = 0.0

    # Gas only, in m³
    daily_volume: float = 0.0
    monthly_volume: float = 0.0
    yearly_volume: float = 0.0

    # HT/NT split
    daily_ht: float = 0.0
    daily_nt: float = 0.0
    monthly_ht: float = 0.0
    monthly_nt: float = 0.0
    yearly_ht: float = 0.0
    yearly_nt: float = 0.0

    def reset_daily(self) -> None:
        """Zero the daily window."""
        self.daily = self.daily_volume = self.daily_ht = self.daily_nt = 0.0

    def reset_monthly(self) -> None:
        """Zero the monthly window."""
        self.monthly = self.monthly_volume = self.monthly_ht = self.monthly_nt = 0.0

    def reset_yearly(self) -> None:
        """Zero the yearly window."""
        self.yearly = self.yearly_volume = self.yearly_ht = self.yearly_nt = 0.0


@dataclass
class CostState:
    """Cost figures written by the billing calculator (EUR)."""

    daily: float = 0.0
    monthly: float = 0.0
    yearly: float = 0.0

    daily_ht: float = 0.0
    daily_nt: float = 0.0
    monthly_ht: float = 0.0
    monthly_nt: float = 0.0
    yearly_ht: float = 0.0
    yearly_nt: float = 0.0

    basic_charge: float = 0.0
    annual_fee: float = 0.0
    fixed_costs: float = 0.0
    total_yearly: float = 0.0
    paid_total: float = 0.0
    balance: float = 0.0

    def reset_daily(self) -> None:
        """Zero daily costs."""
        self.daily = self.daily_ht = self.daily_nt = 0.0

    def reset_monthly(self) -> None:
        """Zero monthly costs."""
        self.monthly = self.monthly_ht = self.monthly_nt = 0.0

    def reset_yearly(self) -> None:
        """Zero yearly costs, fixed costs, prepayments and balance."""
        self.yearly = self.yearly_ht = self.yearly_nt = 0.0
        self.basic_charge = self.annual_fee = self.fixed_costs = 0.0
        self.total_yearly = self.paid_total = self.balance = 0.0


@dataclass
class MeterInfo:
    """Latest meter information."""

    reading: float | None = None
    reading_volume: float | None = None
    last_sync: datetime | None = None
    current_price: float = 0.0
    current_tariff: str = ""
    sensor_active: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "reading": self.reading,
            "reading_volume": self.reading_volume,
            "last_sync": _dt_to_str(self.last_sync),
            "current_price": self.current_price,
            "current_tariff": self.current_tariff,
            "sensor_active": self.sensor_active,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "MeterInfo":
        """Create from dictionary."""
        data = data or {}
        return cls(
            reading=data.get("reading"),
            reading_volume=data.get("reading_volume"),
            last_sync=_dt_from_str(data.get("last_sync")),
            current_price=data.get("current_price", 0.0),
            current_tariff=data.get("current_tariff", ""),
            sensor_active=data.get("sensor_active", False),
        )


@dataclass
class PeriodAnchors:
    """When each accumulation window was last reset."""

    last_day_start: datetime | None = None
    last_month_start: datetime | None = None
    last_year_start: datetime | None = None

    @property
    def is_seeded(self) -> bool:
        """True once every anchor has a value."""
        return None not in (self.last_day_start, self.last_month_start, self.last_year_start)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "last_day_start": _dt_to_str(self.last_day_start),
            "last_month_start": _dt_to_str(self.last_month_start),
            "last_year_start": _dt_to_str(self.last_year_start),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "PeriodAnchors":
        """Create from dictionary."""
        data = data or {}
        return cls(
            last_day_start=_dt_from_str(data.get("last_day_start")),
            last_month_start=_dt_from_str(data.get("last_month_start")),
            last_year_start=_dt_from_str(data.get("last_year_start")),
        )


@dataclass
class Statistics:
    """Values kept from the previous window at reset time."""

    last_day: float = 0.0
    last_day_volume: float = 0.0
    average_daily: float = 0.0
    average_monthly: float = 0.0


@dataclass
class ManualAdjustment:
    """Signed correction folded into the yearly figure for costing.

    Unit is m³ for gas, the billed unit otherwise.
    """

    value: float = 0.0
    note: str = ""
    applied: datetime | None = None

    def clear(self) -> None:
        """Remove the correction."""
        self.value = 0.0
        self.note = ""
        self.applied = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "value": self.value,
            "note": self.note,
            "applied": _dt_to_str(self.applied),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "ManualAdjustment":
        """Create from dictionary."""
        data = data or {}
        return cls(
            value=data.get("value", 0.0),
            note=data.get("note", ""),
            applied=_dt_from_str(data.get("applied")),
        )


@dataclass
class BillingState:
    """Billing period lifecycle and reminder bookkeeping."""

    phase: PeriodPhase = PeriodPhase.OPEN
    end_reading: float = 0.0
    new_initial_reading: float | None = None
    notification_sent: bool = False
    notification_change_sent: bool = False
    days_remaining: int | None = None
    period_end: str = ""
    last_close_error: str = ""

    def clear_reminders(self) -> None:
        """Allow reminders to be sent again for the next period."""
        self.notification_sent = False
        self.notification_change_sent = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "phase": self.phase.value,
            "end_reading": self.end_reading,
            "new_initial_reading": self.new_initial_reading,
            "notification_sent": self.notification_sent,
            "notification_change_sent": self.notification_change_sent,
            "days_remaining": self.days_remaining,
            "period_end": self.period_end,
            "last_close_error": self.last_close_error,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "BillingState":
        """Create from dictionary.

        A close request that was pending when Home Assistant stopped is
        dropped - the user has to trigger it again.
        """
        data = data or {}
        return cls(
            phase=PeriodPhase.OPEN,
            end_reading=data.get("end_reading", 0.0),
            new_initial_reading=data.get("new_initial_reading"),
            notification_sent=data.get("notification_sent", False),
            notification_change_sent=data.get("notification_change_sent", False),
            days_remaining=data.get("days_remaining"),
            period_end=data.get("period_end", ""),
            last_close_error=data.get("last_close_error", ""),
        )


@dataclass(frozen=True)
class BillingPeriodRecord:
    """Archived result of one closed billing period. Never modified."""

    year: int
    closed_at: str
    end_reading: float
    unit: str
    yearly: float
    total_yearly_cost: float
    balance: float
    yearly_volume: float | None = None
    yearly_ht: float | None = None
    yearly_nt: float | None = None
    reading_unit: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "BillingPeriodRecord":
        """Create from dictionary."""
        return cls(
            year=int(data["year"]),
            closed_at=data.get("closed_at", ""),
            end_reading=data.get("end_reading", 0.0),
            unit=data.get("unit", ""),
            yearly=data.get("yearly", 0.0),
            total_yearly_cost=data.get("total_yearly_cost", 0.0),
            balance=data.get("balance", 0.0),
            yearly_volume=data.get("yearly_volume"),
            yearly_ht=data.get("yearly_ht"),
            yearly_nt=data.get("yearly_nt"),
            reading_unit=data.get("reading_unit"),
        )


@dataclass
class ChannelState:
    """Single source of truth for one utility channel."""

    consumption: ConsumptionTotals = field(default_factory=ConsumptionTotals)
    costs: CostState = field(default_factory=CostState)
    meter: MeterInfo = field(default_factory=MeterInfo)
    anchors: PeriodAnchors = field(default_factory=PeriodAnchors)
    statistics: Statistics = field(default_factory=Statistics)
    adjustment: ManualAdjustment = field(default_factory=ManualAdjustment)
    billing: BillingState = field(default_factory=BillingState)
    history: dict[int, BillingPeriodRecord] = field(default_factory=dict)

    def reset_yearly(self) -> None:
        """Zero every yearly running total. The adjustment is kept."""
        self.consumption.reset_yearly()
        self.costs.reset_yearly()
        self.billing.clear_reminders()

    def to_dict(self) -> dict[str, Any]:
        """Export for storage."""
        return {
            "consumption": asdict(self.consumption),
            "costs": asdict(self.costs),
            "meter": self.meter.to_dict(),
            "anchors": self.anchors.to_dict(),
            "statistics": asdict(self.statistics),
            "adjustment": self.adjustment.to_dict(),
            "billing": self.billing.to_dict(),
            "history": {
                str(year): record.to_dict()
                for year, record in sorted(self.history.items())
            },
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "ChannelState":
        """Restore from storage."""
        data = data or {}
        history = {}
        for year, record in (data.get("history") or {}).items():
            try:
                history[int(year)] = BillingPeriodRecord.from_dict(record)
            except (KeyError, TypeError, ValueError):
                continue

        return cls(
            consumption=_load_floats(ConsumptionTotals, data.get("consumption")),
            costs=_load_floats(CostState, data.get("costs")),
            meter=MeterInfo.from_dict(data.get("meter")),
            anchors=PeriodAnchors.from_dict(data.get("anchors")),
            statistics=_load_floats(Statistics, data.get("statistics")),
            adjustment=ManualAdjustment.from_dict(data.get("adjustment")),
            billing=BillingState.from_dict(data.get("billing")),
            history=history,
        )
