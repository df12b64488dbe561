"""
Display formatting helpers.

24-hour times are shown in 12-hour form with an AM/PM suffix and currency
amounts as whole units with thousands grouping.
"""

from datetime import datetime
from typing import Optional, Union

Number = Union[int, float]


def format_time_12h(time24: Optional[str]) -> str:
    """
    Convert ``"HH:MM"`` (or ``"HH:MM:SS"``) to ``"H:MM AM"``.

    Empty input gives an empty string.

    Example:
        >>> format_time_12h("21:00")
        '9:00 PM'
        >>> format_time_12h("00:30")
        '12:30 AM'
    """
    if not time24:
        return ""
    hours, minutes = time24.split(":")[:2]
    h = int(hours)
    suffix = "PM" if h >= 12 else "AM"
    h12 = h % 12 or 12
    return f"{h12}:{minutes} {suffix}"


def format_amount(value: Number) -> str:
    """Group thousands; drop the fraction for whole amounts."""
    value = round(float(value), 2)
    if value.is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def format_currency(value: Number, symbol: str) -> str:
    """
    Example:
        >>> format_currency(1249, "₱")
        '₱1,249'
    """
    return f"{symbol}{format_amount(value)}"


def format_clock(moment: datetime) -> str:
    """12-hour clock with zero-padded hour, e.g. ``'07:05 PM'``."""
    return moment.strftime("%I:%M %p")


def format_order_date(moment: Optional[datetime]) -> str:
    """Admin order list timestamp, e.g. ``'Mar 4, 2025 07:05 PM'``."""
    if moment is None:
        return ""
    return f"{moment.strftime('%b')} {moment.day}, {moment.year} {format_clock(moment)}"
