"""Test conversion, rounding and calendar helpers."""
from datetime import date, datetime

import pytest

from custom_components.utility_cost_monitor.domain.calculator import (
    ConversionError,
    anniversary_in_year,
    days_until,
    format_local_date,
    gas_volume_to_energy,
    is_anniversary_reached,
    is_peak_tariff_now,
    months_elapsed,
    most_recent_anniversary,
    nearest_anniversary,
    next_anniversary,
    parse_local_date,
    parse_number,
    parse_time_of_day,
    round_to,
)


def test_gas_conversion():
    """66.82 m³ at 11.5 kWh/m³ and Z 0.95 is about 730.01 kWh."""
    energy = gas_volume_to_energy(66.82, 11.5, 0.95)
    assert round_to(energy, 2) == pytest.approx(730.01)


@pytest.mark.parametrize(
    "m3, calorific_value, state_number",
    [
        (-1.0, 11.5, 0.95),
        (10.0, 0.0, 0.95),
        (10.0, 11.5, 0.0),
        (10.0, 11.5, 1.2),
        (float("nan"), 11.5, 0.95),
        (float("inf"), 11.5, 0.95),
    ],
)
def test_gas_conversion_rejects_bad_input(m3, calorific_value, state_number):
    """Invalid inputs raise instead of producing a number."""
    with pytest.raises(ConversionError):
        gas_volume_to_energy(m3, calorific_value, state_number)


@pytest.mark.parametrize(
    ("m3", "calorific_value", "state_number"),
    [(0.0, 11.5, 0.95), (66.82, 11.5, 0.95), (1234.567, 10.2, 0.9632), (0.001, 12.0, 1.0)],
)
def test_gas_conversion_is_reversible(m3, calorific_value, state_number):
    """Dividing by the gas factor gives the volume back."""
    energy = gas_volume_to_energy(m3, calorific_value, state_number)
    assert energy / (calorific_value * state_number) == pytest.approx(m3)


def test_conversion_error_is_value_error():
    """Callers catching ValueError also see conversion errors."""
    assert issubclass(ConversionError, ValueError)


def test_round_half_up():
    """Halves round up."""
    assert round_to(0.125, 2) == 0.13
    assert round_to(3.244, 2) == 3.24
    assert round_to(12.5, 0) == 13


def test_peak_window_same_day():
    """06:00-22:00 window, end exclusive."""
    assert is_peak_tariff_now(360, 1320, 360)
    assert is_peak_tariff_now(360, 1320, 720)
    assert not is_peak_tariff_now(360, 1320, 1320)
    assert not is_peak_tariff_now(360, 1320, 300)


def test_peak_window_wraps_midnight():
    """22:00-06:00 window covers the night."""
    assert is_peak_tariff_now(1320, 360, 23 * 60 + 30)
    assert is_peak_tariff_now(1320, 360, 5 * 60)
    assert not is_peak_tariff_now(1320, 360, 12 * 60)


def test_peak_without_window():
    """Without a window every minute is peak."""
    assert is_peak_tariff_now(None, None, 0)
    assert is_peak_tariff_now(360, None, 0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("06:00:00", 360),
        ("6:30", 390),
        ("23:59", 1439),
        ("24:00", None),
        ("12:60", None),
        ("noon", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_time_of_day(raw, expected):
    """HH:MM and HH:MM:SS become minutes since midnight."""
    assert parse_time_of_day(raw) == expected


def test_parse_local_date():
    """DD.MM.YYYY is parsed and pinned to noon."""
    assert parse_local_date("12.05.2025") == datetime(2025, 5, 12, 12, 0, 0)
    assert parse_local_date("1.2.2024") == datetime(2024, 2, 1, 12, 0, 0)
    assert parse_local_date("12.05.25") == datetime(2025, 5, 12, 12, 0, 0)
    assert parse_local_date("2025-05-12") == datetime(2025, 5, 12, 12, 0, 0)


@pytest.mark.parametrize("raw", ["31.02.2025", "12/05/2025", "abc", "", None, 20250512])
def test_parse_local_date_invalid(raw):
    """Malformed dates yield None."""
    assert parse_local_date(raw) is None


def test_format_local_date():
    """Dates are shown as DD.MM.YYYY."""
    assert format_local_date(date(2026, 5, 11)) == "11.05.2026"


def test_months_elapsed():
    """Months count the anchor month itself."""
    assert months_elapsed(date(2025, 5, 12), date(2026, 1, 6)) == 9
    assert months_elapsed(date(2025, 5, 12), date(2025, 5, 30)) == 1
    assert months_elapsed(date(2025, 1, 1), date(2025, 12, 31)) == 12


def test_months_elapsed_never_below_one():
    """An anchor in the future still counts one month."""
    assert months_elapsed(date(2026, 3, 1), date(2026, 1, 1)) == 1


def test_anniversary_leap_day():
    """29 February falls back to 28 February."""
    assert anniversary_in_year(date(2024, 2, 29), 2025) == date(2025, 2, 28)
    assert anniversary_in_year(date(2024, 2, 29), 2028) == date(2028, 2, 29)


def test_anniversary_reached():
    """Reached on and after the month/day."""
    start = date(2025, 5, 12)
    assert not is_anniversary_reached(start, date(2026, 5, 11))
    assert is_anniversary_reached(start, date(2026, 5, 12))
    assert is_anniversary_reached(start, date(2026, 12, 1))


def test_most_recent_anniversary():
    """Start of the contract year a date belongs to."""
    start = date(2025, 5, 12)
    assert most_recent_anniversary(start, date(2026, 1, 6)) == date(2025, 5, 12)
    assert most_recent_anniversary(start, date(2026, 6, 1)) == date(2026, 5, 12)
    assert most_recent_anniversary(start, date(2025, 1, 1)) == start


def test_next_anniversary():
    """Next anniversary on or after today."""
    start = date(2025, 5, 12)
    assert next_anniversary(start, date(2026, 1, 6)) == date(2026, 5, 12)
    assert next_anniversary(start, date(2026, 5, 12)) == date(2026, 5, 12)
    assert next_anniversary(start, date(2026, 5, 13)) == date(2027, 5, 12)


def test_nearest_anniversary():
    """The closest anniversary, never before the contract start."""
    start = date(2025, 5, 12)
    assert nearest_anniversary(start, date(2026, 5, 14)) == date(2026, 5, 12)
    assert nearest_anniversary(start, date(2026, 5, 10)) == date(2026, 5, 12)
    assert nearest_anniversary(start, date(2026, 11, 1)) == date(2026, 5, 12)
    assert nearest_anniversary(start, date(2026, 12, 1)) == date(2027, 5, 12)
    assert nearest_anniversary(start, date(2025, 1, 1)) == start


def test_days_until():
    """Whole days between dates."""
    assert days_until(date(2026, 5, 12), date(2026, 5, 5)) == 7
    assert days_until(date(2026, 5, 5), date(2026, 5, 5)) == 0


@pytest.mark.parametrize(
    "raw, expected",
    [
        (0.25, 0.25),
        (3, 3.0),
        ("0,25", 0.25),
        (" 1.5 ", 1.5),
        ("", 7.0),
        (None, 7.0),
        ("abc", 7.0),
        (True, 7.0),
        (float("nan"), 7.0),
    ],
)
def test_parse_number(raw, expected):
    """Config numbers accept a decimal comma and fall back to the default."""
    assert parse_number(raw, 7.0) == expected
