"""Infrastructure module - HA integration utilities.

Contains:
- Notifier: Reminder formatting and sending
"""

from .notifier import Notifier

__all__ = ["Notifier"]
