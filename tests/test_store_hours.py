"""Store open/closed resolution and display formatting."""

from datetime import datetime

import pytest

from storefront.core.formatting import (
    format_amount,
    format_clock,
    format_currency,
    format_order_date,
    format_time_12h,
)
from storefront.services.store_hours import store_status


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 4, hour, minute)


class TestStoreStatus:

    @pytest.mark.parametrize("hour,expected", [(9, False), (10, True), (15, True), (21, False)])
    def test_same_day_window(self, hour, expected):
        assert store_status("10:00", "21:00", "auto", now=at(hour)).is_open is expected

    @pytest.mark.parametrize("hour,expected", [(17, False), (18, True), (23, True), (1, True), (2, False)])
    def test_window_past_midnight(self, hour, expected):
        assert store_status("18:00", "02:00", "auto", now=at(hour)).is_open is expected

    def test_manual_open_wins(self):
        status = store_status("10:00", "21:00", "open", now=at(3))
        assert status.is_open
        assert status.reason == "Open (manual override)"

    def test_manual_closed_wins(self):
        assert not store_status("10:00", "21:00", "closed", now=at(12)).is_open

    def test_reason_shows_hours(self):
        status = store_status("10:00", "21:00", "auto", now=at(22))
        assert status.reason == "Closed (10:00 AM - 9:00 PM)"

    def test_blank_override_means_auto(self):
        assert store_status("10:00", "21:00", "", now=at(12)).is_open


class TestFormatting:

    @pytest.mark.parametrize("value,expected", [
        ("21:00", "9:00 PM"),
        ("00:30", "12:30 AM"),
        ("12:00", "12:00 PM"),
        ("09:15:00", "9:15 AM"),
        ("", ""),
    ])
    def test_time_12h(self, value, expected):
        assert format_time_12h(value) == expected

    def test_amounts(self):
        assert format_amount(1249) == "1,249"
        assert format_amount(99.5) == "99.50"
        assert format_currency(1249, "₱") == "₱1,249"

    def test_clock_and_order_date(self):
        assert format_clock(at(19, 5)) == "07:05 PM"
        assert format_order_date(at(9, 30)) == "Mar 4, 2025 09:30 AM"
        assert format_order_date(None) == ""
