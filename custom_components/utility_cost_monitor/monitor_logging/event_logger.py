"""Event logger shared by every Utility Cost Monitor component.

Every message is an upper-case event name plus key/value context:

    METER_RESET_DETECTED | channel=gas | last=1234.5 | value=12.0

Messages always go to the Home Assistant log. When file logging is switched
on, each event is additionally written as one JSON line to a rotating file.
File I/O happens on a QueueListener thread, never on the event loop.
"""

from __future__ import annotations

import json
import logging
import queue
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from typing import Any

_LOGGER = logging.getLogger(__name__)

LOGGER_NAME = "custom_components.utility_cost_monitor"


class _JsonLineFormatter(logging.Formatter):
    """Render a record carrying event data as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "event": getattr(record, "event", record.getMessage()),
            "data": getattr(record, "event_data", {}),
        }
        return json.dumps(entry, default=str)


class MonitorLogger:
    """Structured event logger.

    Features:
    - Events always reach the HA log at the requested level
    - Optional JSON-lines file (rotating, 2 MB x 3 backups)
    - File writes are queued and flushed by a background listener
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"

    _LEVELS = {
        ERROR: logging.ERROR,
        WARNING: logging.WARNING,
        INFO: logging.INFO,
        DEBUG: logging.DEBUG,
    }

    def __init__(
        self,
        name: str = "monitor",
        log_dir: Path | None = None,
        file_logging_enabled: bool = False,
        max_file_size_mb: int = 2,
        backup_count: int = 3,
    ) -> None:
        """Initialize the logger.

        Args:
            name: Child logger name
            log_dir: Directory for the JSON log file (default: component dir/log)
            file_logging_enabled: Start with file logging switched on
            max_file_size_mb: Rotation size
            backup_count: Rotated files to keep
        """
        self.name = name
        self.log_dir = log_dir or Path(__file__).parent.parent / "log"
        self._log_file = self.log_dir / "events.jsonl"
        self._max_bytes = max_file_size_mb * 1024 * 1024
        self._backup_count = backup_count

        self._ha_logger = logging.getLogger(f"{LOGGER_NAME}.{name}")
        self._file_logger = logging.getLogger(f"{LOGGER_NAME}.{name}.file")
        self._file_logger.propagate = False
        self._file_logger.setLevel(logging.DEBUG)

        self._queue: queue.Queue = queue.Queue(-1)
        self._listener: QueueListener | None = None
        self._file_logging_enabled = False

        if file_logging_enabled:
            self.set_file_logging(True)

    def _start_listener(self) -> None:
        """Attach the queue handler and start the writer thread."""
        if self._listener is not None:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            self._log_file,
            maxBytes=self._max_bytes,
            backupCount=self._backup_count,
            encoding="utf-8",
            delay=True,
        )
        file_handler.setFormatter(_JsonLineFormatter())

        self._listener = QueueListener(self._queue, file_handler)
        self._listener.start()
        self._file_logger.addHandler(QueueHandler(self._queue))

    def _stop_listener(self) -> None:
        """Detach handlers and flush the queue."""
        if self._listener is None:
            return

        for handler in list(self._file_logger.handlers):
            self._file_logger.removeHandler(handler)
        self._listener.stop()
        for handler in self._listener.handlers:
            handler.close()
        self._listener = None

    def log(self, level: str, event: str, **data: Any) -> None:
        """Log an event.

        Args:
            level: One of error, warning, info, debug
            event: Event name, e.g. "READING_PROCESSED"
            **data: Context values
        """
        numeric_level = self._LEVELS.get(level, logging.DEBUG)
        if data:
            message = event + " | " + " | ".join(f"{k}={v}" for k, v in data.items())
        else:
            message = event

        self._ha_logger.log(numeric_level, message)

        if self._file_logging_enabled:
            self._file_logger.log(
                numeric_level,
                message,
                extra={"event": event, "event_data": data},
            )

    def error(self, event: str, **data: Any) -> None:
        """Log error event."""
        self.log(self.ERROR, event, **data)

    def warning(self, event: str, **data: Any) -> None:
        """Log warning event."""
        self.log(self.WARNING, event, **data)

    def info(self, event: str, **data: Any) -> None:
        """Log info event."""
        self.log(self.INFO, event, **data)

    def debug(self, event: str, **data: Any) -> None:
        """Log debug event."""
        self.log(self.DEBUG, event, **data)

    def set_file_logging(self, enabled: bool) -> None:
        """Switch the JSON file log on or off."""
        if enabled == self._file_logging_enabled:
            return

        if enabled:
            try:
                self._start_listener()
            except OSError as ex:
                _LOGGER.error("Cannot open event log in %s: %s", self.log_dir, ex)
                return
        else:
            self._stop_listener()

        self._file_logging_enabled = enabled
        self.info("FILE_LOGGING_CHANGED", enabled=enabled)

    @property
    def file_logging_enabled(self) -> bool:
        """Return True when events are written to file."""
        return self._file_logging_enabled

    @property
    def log_file(self) -> Path:
        """Path of the active JSON log file."""
        return self._log_file

    def get_total_size_kb(self) -> float:
        """Size of all event log files in KB.

        Note: blocking I/O - call from an executor inside the event loop.
        """
        if not self.log_dir.exists():
            return 0.0
        total = sum(p.stat().st_size for p in self.log_dir.glob("events.jsonl*"))
        return round(total / 1024, 2)


_logger_instance: MonitorLogger | None = None


def get_logger() -> MonitorLogger:
    """Get or create the shared logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = MonitorLogger()
    return _logger_instance
