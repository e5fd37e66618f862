"""Domain logic module - pure business logic without HA dependencies.

All modules in this package:
- Work on ChannelState / ChannelConfig passed in by the caller
- Never access HA directly
- Are easy to unit test
"""

from .accrual import AccrualResult, ConsumptionAccrual
from .billing import BillingCalculator, CostBreakdown
from .calculator import ConversionError
from .period import BillingPeriodLifecycle, CloseRejection, PeriodResetEvaluator, ResetKind
from .reminders import ReminderKind, ReminderPlanner

__all__ = [
    "AccrualResult",
    "BillingCalculator",
    "BillingPeriodLifecycle",
    "CloseRejection",
    "ConsumptionAccrual",
    "ConversionError",
    "CostBreakdown",
    "PeriodResetEvaluator",
    "ReminderKind",
    "ReminderPlanner",
    "ResetKind",
]
