"""Event bus for component communication.

Every state change of a channel goes out as an event. This makes the system:
- Traceable (all events are logged)
- Decoupled (entities only listen to the per-channel update signal)
- Testable (handlers can be registered in tests)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.util import dt as dt_util

from ..const import SIGNAL_UPDATE
from ..monitor_logging import get_logger

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class UtilityEvent(str, Enum):
    """Event types of a utility channel."""

    # Readings
    READING_PROCESSED = "utility.reading_processed"
    READING_REJECTED = "utility.reading_rejected"
    METER_RESET_DETECTED = "utility.meter_reset_detected"

    # Costs
    COSTS_UPDATED = "utility.costs_updated"

    # Window resets
    DAILY_RESET = "utility.daily_reset"
    MONTHLY_RESET = "utility.monthly_reset"
    YEARLY_RESET = "utility.yearly_reset"

    # Billing period
    CLOSE_REQUESTED = "utility.close_requested"
    CLOSE_REJECTED = "utility.close_rejected"
    PERIOD_CLOSED = "utility.period_closed"
    END_READING_SET = "utility.end_reading_set"
    ADJUSTMENT_CHANGED = "utility.adjustment_changed"

    # Notifications
    REMINDER_SENT = "utility.reminder_sent"
    NOTIFY_FAILED = "utility.notify_failed"

    # UI update trigger
    UI_UPDATE = "utility.ui_update"


# Events after which entities must refresh
_UI_EVENTS = {
    UtilityEvent.UI_UPDATE,
    UtilityEvent.READING_PROCESSED,
    UtilityEvent.METER_RESET_DETECTED,
    UtilityEvent.COSTS_UPDATED,
    UtilityEvent.DAILY_RESET,
    UtilityEvent.MONTHLY_RESET,
    UtilityEvent.YEARLY_RESET,
    UtilityEvent.CLOSE_REQUESTED,
    UtilityEvent.CLOSE_REJECTED,
    UtilityEvent.PERIOD_CLOSED,
    UtilityEvent.END_READING_SET,
    UtilityEvent.ADJUSTMENT_CHANGED,
    UtilityEvent.REMINDER_SENT,
}


@dataclass
class EventData:
    """Container for event data."""

    event: UtilityEvent
    timestamp: datetime
    data: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "event": self.event.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


# Type alias for event handlers
EventHandler = Callable[[EventData], Awaitable[None]]


class UtilityEventBus:
    """Event bus of one channel.

    Events are logged automatically; UI-relevant events are forwarded to the
    channel's dispatcher signal so its entities refresh.
    """

    def __init__(self, hass: HomeAssistant, entry_id: str, channel: str = "") -> None:
        """Initialize the event bus.

        Args:
            hass: Home Assistant instance
            entry_id: Config entry the channel belongs to
            channel: Channel name for log context
        """
        self.hass = hass
        self.entry_id = entry_id
        self.channel = channel
        self._logger = get_logger()
        self._handlers: dict[UtilityEvent, list[EventHandler]] = {}

    @property
    def signal(self) -> str:
        """Dispatcher signal the channel's entities listen to."""
        return SIGNAL_UPDATE.format(self.entry_id)

    async def emit(self, event: UtilityEvent, **data: Any) -> None:
        """Emit an event.

        Args:
            event: Event type to emit
            **data: Event data
        """
        event_data = EventData(event=event, timestamp=dt_util.now(), data=data)

        self._logger.debug(f"EVENT_{event.name}", channel=self.channel, **data)

        for handler in list(self._handlers.get(event, [])):
            try:
                await handler(event_data)
            except Exception as ex:
                self._logger.error(
                    "EVENT_HANDLER_ERROR",
                    event=event.name,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(ex),
                )

        if event in _UI_EVENTS:
            async_dispatcher_send(self.hass, self.signal)

    def on(self, event: UtilityEvent, handler: EventHandler) -> Callable[[], None]:
        """Register an event handler.

        Returns:
            Unsubscribe function
        """
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            self.off(event, handler)

        return unsubscribe

    def off(self, event: UtilityEvent, handler: EventHandler) -> None:
        """Unregister an event handler."""
        if event in self._handlers and handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    async def emit_state_update(self) -> None:
        """Convenience method to refresh all entities."""
        await self.emit(UtilityEvent.UI_UPDATE)
