"""Core module for Utility Cost Monitor.

Contains the fundamental building blocks:
- State: Single source of truth for a channel
- Config: Typed channel configuration
- Events: Event bus for component communication
- Gateway: Abstraction layer for HA access
"""

from .state import ChannelState, PeriodPhase
from .config import ChannelConfig
from .events import UtilityEvent, UtilityEventBus
from .gateway import UtilityGateway

__all__ = [
    "ChannelConfig",
    "ChannelState",
    "PeriodPhase",
    "UtilityEvent",
    "UtilityEventBus",
    "UtilityGateway",
]
