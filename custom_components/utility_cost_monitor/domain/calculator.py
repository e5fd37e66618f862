"""Unit conversion, rounding and calendar helpers.

Pure functions only - no Home Assistant imports. Everything that turns a
raw number or a date string into something the accrual and billing code
can rely on lives here.
"""

from __future__ import annotations

import calendar
import math
import re
from datetime import date, datetime

MINUTES_PER_DAY = 24 * 60

_LOCAL_DATE = re.compile(r"^\s*(\d{1,2})\.(\d{1,2})\.(\d{2}|\d{4})\s*$")
_ISO_DATE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
_TIME_OF_DAY = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")


class ConversionError(ValueError):
    """Raised when a conversion input is not a usable number."""


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def gas_volume_to_energy(m3: float, calorific_value: float, state_number: float) -> float:
    """Convert a gas volume to energy.

    kWh = m³ × calorific value × state number (Z-Zahl)

    Raises:
        ConversionError: if an input is not finite or out of range
    """
    if not (_is_number(m3) and _is_number(calorific_value) and _is_number(state_number)):
        raise ConversionError(
            f"Gas conversion needs finite numbers: m3={m3!r}, "
            f"calorific_value={calorific_value!r}, state_number={state_number!r}"
        )
    if m3 < 0:
        raise ConversionError(f"Gas volume must not be negative: {m3}")
    if calorific_value <= 0:
        raise ConversionError(f"Calorific value must be positive: {calorific_value}")
    if state_number <= 0 or state_number > 1:
        raise ConversionError(f"State number must be in (0, 1]: {state_number}")
    return m3 * calorific_value * state_number


def round_to(value: float, decimals: int = 2) -> float:
    """Round half-up to the given number of decimals."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def is_peak_tariff_now(
    window_start: int | None,
    window_end: int | None,
    now: int,
) -> bool:
    """Return True if ``now`` lies in the peak (HT) window.

    All arguments are minutes since midnight. The window is ``[start, end)``
    and wraps past midnight when start > end. Without a window every minute
    is peak (single tariff).
    """
    if window_start is None or window_end is None:
        return True
    if window_start <= window_end:
        return window_start <= now < window_end
    return now >= window_start or now < window_end


def minutes_since_midnight(moment: datetime) -> int:
    """Minutes elapsed since local midnight."""
    return moment.hour * 60 + moment.minute


def parse_time_of_day(value: str | None) -> int | None:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into minutes since midnight."""
    if not value:
        return None
    match = _TIME_OF_DAY.match(str(value))
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def parse_local_date(value: str | None) -> datetime | None:
    """Parse a ``DD.MM.YYYY`` date (``DD.MM.YY`` means 20YY).

    ISO ``YYYY-MM-DD`` is accepted as well. The result is pinned to 12:00 so
    later date arithmetic cannot slip a day across a timezone shift.
    Returns None for anything malformed.
    """
    if not value or not isinstance(value, str):
        return None

    match = _LOCAL_DATE.match(value)
    if match:
        day, month, year = (int(g) for g in match.groups())
        if len(match.group(3)) == 2:
            year += 2000
    else:
        match = _ISO_DATE.match(value)
        if not match:
            return None
        year, month, day = (int(g) for g in match.groups())

    try:
        return datetime(year, month, day, 12, 0, 0)
    except ValueError:
        return None


def format_local_date(value: date) -> str:
    """Format a date as ``DD.MM.YYYY``."""
    return value.strftime("%d.%m.%Y")


def months_elapsed(anchor: date, now: date) -> int:
    """Months from anchor to now, counting the anchor month itself (min 1)."""
    return max(1, (now.year - anchor.year) * 12 + (now.month - anchor.month) + 1)


def anniversary_in_year(start: date, year: int) -> date:
    """The start date's month/day in ``year`` (29.02 falls back to 28.02)."""
    last_day = calendar.monthrange(year, start.month)[1]
    return date(year, start.month, min(start.day, last_day))


def is_anniversary_reached(start: date, today: date) -> bool:
    """True once the month/day of ``start`` has been reached this year."""
    return today >= anniversary_in_year(start, today.year)


def most_recent_anniversary(start: date, today: date) -> date:
    """Start of the contract year ``today`` belongs to.

    Before the contract has started this is the start date itself.
    """
    if today <= start:
        return start
    this_year = anniversary_in_year(start, today.year)
    if this_year <= today:
        return this_year
    return max(start, anniversary_in_year(start, today.year - 1))


def next_anniversary(start: date, today: date) -> date:
    """Next occurrence of the contract anniversary on or after today."""
    this_year = anniversary_in_year(start, today.year)
    if this_year >= today:
        return this_year
    return anniversary_in_year(start, today.year + 1)


def nearest_anniversary(start: date, today: date) -> date:
    """Contract anniversary closest to today, ties going to the past one.

    Never earlier than the start date itself.
    """
    previous = most_recent_anniversary(start, today)
    upcoming = next_anniversary(start, today)
    if (upcoming - today) < (today - previous):
        return upcoming
    return max(previous, start)


def days_until(target: date, today: date) -> int:
    """Whole days from today until target."""
    return (target - today).days


def parse_number(value, default: float = 0.0) -> float:
    """Parse a config value to float, accepting a decimal comma."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.replace(",", ".").strip())
        except ValueError:
            return default
    else:
        return default
    return parsed if math.isfinite(parsed) else default
