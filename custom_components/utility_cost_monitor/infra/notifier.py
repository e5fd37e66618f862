"""Reminder formatting and sending.

This module handles all notification logic:
- Message formatting
- Picking the reminders that are due
- Sending via the gateway, outside the channel lock
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.reminders import ReminderKind, ReminderPlanner
from ..monitor_logging import get_logger

if TYPE_CHECKING:
    from ..core.config import ChannelConfig
    from ..core.gateway import UtilityGateway
    from ..core.state import ChannelState


@dataclass(frozen=True)
class Reminder:
    """A reminder ready to be sent."""

    kind: ReminderKind
    title: str
    message: str


class Notifier:
    """Sends billing and contract reminders for one channel."""

    def __init__(self, gateway: UtilityGateway) -> None:
        """Initialize notifier.

        Args:
            gateway: Gateway used for sending
        """
        self.gateway = gateway
        self._logger = get_logger()

    @staticmethod
    def format_message(kind: ReminderKind, config: ChannelConfig, state: ChannelState) -> tuple[str, str]:
        """Build (title, message) for a reminder."""
        billing = state.billing
        days = billing.days_remaining
        period_end = billing.period_end or "--.--.----"

        if kind == ReminderKind.BILLING:
            title = f"{config.name}: read your meter"
            message = (
                f"🔔 The billing period for {config.name} ends in {days} days.\n\n"
                f"📅 Period end: {period_end}\n\n"
                "Please record the meter reading in time:\n"
                "1️⃣ Set the end reading (service set_end_reading)\n"
                "2️⃣ Close the period (service close_billing_period)"
            )
        else:
            title = f"{config.name}: tariff check"
            message = (
                f"💡 Your contract for {config.name} ends on {period_end}.\n\n"
                f"⏰ {days} days left in this period.\n\n"
                "Now is a good time to compare prices or check the notice period."
            )
        return title, message

    def due_reminders(self, config: ChannelConfig, state: ChannelState) -> list[Reminder]:
        """Format every reminder that is due. Does not send anything."""
        reminders = []
        for kind in ReminderPlanner.pending(config, state.billing):
            title, message = self.format_message(kind, config, state)
            self._logger.info(
                "REMINDER_DUE",
                kind=kind.value,
                days_remaining=state.billing.days_remaining,
            )
            reminders.append(Reminder(kind, title, message))
        return reminders

    async def async_send(self, config: ChannelConfig, reminder: Reminder) -> bool:
        """Send one reminder. Returns True when the notify call succeeded."""
        if await self.gateway.send_notification(config.notify_service, reminder.message, reminder.title):
            return True
        self._logger.error("REMINDER_NOT_SENT", kind=reminder.kind.value, service=config.notify_service)
        return False
