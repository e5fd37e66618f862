"""Billing countdown and reminder planning."""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from .calculator import days_until, format_local_date, next_anniversary

if TYPE_CHECKING:
    from ..core.config import ChannelConfig
    from ..core.state import BillingState


class ReminderKind(str, Enum):
    """Kinds of reminders a channel can send."""

    BILLING = "billing"
    CHANGE = "change"


class ReminderPlanner:
    """Decides which reminders are due for a channel."""

    @staticmethod
    def update_countdown(billing: BillingState, config: ChannelConfig, today: date) -> bool:
        """Refresh days remaining and the period end label.

        The period ends the day before the next contract anniversary.
        Returns False when the channel has no usable contract start.
        """
        if config.contract_start is None:
            billing.days_remaining = None
            billing.period_end = ""
            return False

        anniversary = next_anniversary(config.contract_start.date(), today)
        billing.days_remaining = days_until(anniversary, today)
        billing.period_end = format_local_date(anniversary - timedelta(days=1))
        return True

    @staticmethod
    def pending(config: ChannelConfig, billing: BillingState) -> list[ReminderKind]:
        """Reminders that are due and were not sent this period."""
        if not config.notify_service or billing.days_remaining is None:
            return []

        due = []
        if (
            config.notify_billing
            and not billing.notification_sent
            and billing.days_remaining <= config.notify_billing_days
        ):
            due.append(ReminderKind.BILLING)
        if (
            config.notify_change
            and not billing.notification_change_sent
            and billing.days_remaining <= config.notify_change_days
        ):
            due.append(ReminderKind.CHANGE)
        return due

    @staticmethod
    def mark_sent(billing: BillingState, kind: ReminderKind) -> None:
        """Remember a reminder was delivered."""
        if kind == ReminderKind.CHANGE:
            billing.notification_change_sent = True
        else:
            billing.notification_sent = True
