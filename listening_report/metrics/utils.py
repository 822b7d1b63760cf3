import math
import sys

MS_PER_MINUTE = 60_000
MS_PER_HOUR = 3_600_000

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

NOT_AVAILABLE = "N/A"


def ms_to_minutes(ms: int) -> float:
    return ms / MS_PER_MINUTE


def ms_to_hours(ms: int) -> float:
    return ms / MS_PER_HOUR


def safe_rate(numerator: int, denominator: int) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


def format_month_label(month: str) -> str:
    """Turn a 'YYYY-MM' key into a label such as 'May 2023'.

    Keys that do not look like a month are returned unchanged.
    """
    parts = month.split("-")
    if len(parts) != 2:
        return month
    try:
        year = int(parts[0])
        month_number = int(parts[1])
    except ValueError:
        return month
    if not 1 <= month_number <= 12:
        return month
    return f"{MONTH_NAMES[month_number - 1]} {year}"


def round_half_up(value: float, digits: int) -> float:
    """Round for display, nudging exact halves upward (0.125 -> 0.13)."""
    factor = 10**digits
    return math.floor((value + sys.float_info.epsilon) * factor + 0.5) / factor


def round2(value: float) -> float:
    return round_half_up(value, 2)


def round4(value: float) -> float:
    return round_half_up(value, 4)
