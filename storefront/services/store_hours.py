"""
Store open/closed status.

The manual override wins; in ``auto`` mode the store is open between the
configured opening and closing times. A closing time earlier than the
opening time means the window runs past midnight.
"""

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from storefront.core.formatting import format_time_12h
from storefront.models import StoreOverride


@dataclass(frozen=True)
class StoreStatus:
    is_open: bool
    reason: str


def parse_time_of_day(value: str) -> time:
    hours, minutes = value.split(":")[:2]
    return time(int(hours), int(minutes))


def store_status(
    open_time: str,
    close_time: str,
    manual_status: str = StoreOverride.AUTO.value,
    now: Optional[datetime] = None,
) -> StoreStatus:
    override = StoreOverride(manual_status or StoreOverride.AUTO.value)
    if override == StoreOverride.OPEN:
        return StoreStatus(True, "Open (manual override)")
    if override == StoreOverride.CLOSED:
        return StoreStatus(False, "Closed (manual override)")

    current = (now or datetime.now()).time()
    opens = parse_time_of_day(open_time)
    closes = parse_time_of_day(close_time)

    if opens <= closes:
        is_open = opens <= current < closes
    else:
        is_open = current >= opens or current < closes

    hours = f"{format_time_12h(open_time)} - {format_time_12h(close_time)}"
    return StoreStatus(is_open, f"{'Open' if is_open else 'Closed'} ({hours})")
