"""
Text and color formatters for badge messages.

All functions are pure apart from the date helpers, which compare against
the current UTC time.
"""

import math
from datetime import date, datetime, timezone
from typing import Union

from .constants import (
    COLOR_BLUE,
    COLOR_BRIGHTGREEN,
    COLOR_GREEN,
    COLOR_ORANGE,
    COLOR_RED,
    COLOR_YELLOW,
    COLOR_YELLOWGREEN,
)

METRIC_PREFIXES = ["k", "M", "G", "T", "P", "E", "Z", "Y"]

# Age thresholds in days -> color (first threshold the age is below wins)
AGE_COLOR_STEPS = [
    (7, COLOR_BRIGHTGREEN),
    (30, COLOR_GREEN),
    (180, COLOR_YELLOWGREEN),
    (365, COLOR_YELLOW),
    (730, COLOR_ORANGE),
]

DateLike = Union[datetime, date, int, float]


def metric(n: Union[int, float]) -> str:
    """
    Abbreviate a count with a metric prefix.

    Examples:
        999 -> "999"
        1234 -> "1.2k"
        30000 -> "30k"
        999999 -> "1M"
    """
    sign = "-" if n < 0 else ""
    abs_n = abs(n)
    for i in range(len(METRIC_PREFIXES) - 1, -1, -1):
        limit = 1000 ** (i + 1)
        if abs_n >= limit:
            scaled = abs_n / limit
            if scaled < 10:
                one_decimal = f"{scaled:.1f}"
                if not one_decimal.endswith("0"):
                    return f"{sign}{one_decimal}{METRIC_PREFIXES[i]}"
            rounded = math.floor(scaled + 0.5)
            if rounded < 1000:
                return f"{sign}{rounded}{METRIC_PREFIXES[i]}"
            return f"{sign}1{METRIC_PREFIXES[i + 1]}"
    return f"{n}"


def addv(version) -> str:
    """Prefix numeric versions with 'v' (1.2.3 -> v1.2.3)."""
    version = f"{version}"
    if version.startswith("v") or not version[:1].isdigit():
        return version
    return f"v{version}"


def to_datetime(value: DateLike) -> datetime:
    """Normalize datetimes, dates and epoch milliseconds to aware UTC datetimes."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_date(value: DateLike) -> str:
    """
    Human-friendly relative date.

    today / yesterday / last <weekday> for the past week, otherwise
    "<month> <year>" with the year dropped when it is the current one.
    """
    when = to_datetime(value)
    now = datetime.now(timezone.utc)
    days = (now.date() - when.date()).days

    if days == 0:
        return "today"
    if days == 1:
        return "yesterday"
    if 1 < days < 7:
        return f"last {when.strftime('%A').lower()}"
    if when.year == now.year:
        return when.strftime("%B").lower()
    return when.strftime("%B %Y").lower()


def age_color(value: DateLike) -> str:
    """Color by age: fresh is bright green, over two years is red."""
    days = (datetime.now(timezone.utc) - to_datetime(value)).days
    for threshold, color in AGE_COLOR_STEPS:
        if days < threshold:
            return color
    return COLOR_RED


def floor_count_color(value, yellow: int, yellowgreen: int, green: int) -> str:
    if value <= 0:
        return COLOR_RED
    if value < yellow:
        return COLOR_YELLOW
    if value < yellowgreen:
        return COLOR_YELLOWGREEN
    if value < green:
        return COLOR_GREEN
    return COLOR_BRIGHTGREEN


def download_count_color(downloads: int) -> str:
    return floor_count_color(downloads, 10, 100, 1000)


def version_color(version) -> str:
    """Prereleases are yellow, 0.x is orange, everything else blue."""
    version = f"{version}"
    if "-" in version:
        return COLOR_YELLOW
    if version.startswith("0"):
        return COLOR_ORANGE
    return COLOR_BLUE
