"""Structured logging for Utility Cost Monitor."""

from .event_logger import MonitorLogger, get_logger

__all__ = ["MonitorLogger", "get_logger"]
