"""
Unit tests for slot helpers and presentation formatting
"""
import pytest
from datetime import date
from app.utils.formatting import (
    dimensions_string, format_booking_date, format_booking_time, format_price, rating_stars
)
from app.utils.slot_manager import (
    get_availability, is_active_status, parse_booking_date, try_reserve, validate_booking_date,
    SLOT_CONFLICT_MESSAGE
)
from conftest import FUTURE_DATE, make_booking


@pytest.mark.unit
class TestSlotManager:
    """Tests for slot allocation helpers"""

    def test_parse_booking_date(self):
        assert parse_booking_date("2099-01-01") == date(2099, 1, 1)
        assert parse_booking_date("2099-13-01") is None
        assert parse_booking_date("2099-1-1") is None
        assert parse_booking_date(None) is None

    def test_validate_booking_date(self):
        today = date(2030, 6, 15)

        assert validate_booking_date("2030-06-15", today=today) == "2030-06-15"
        with pytest.raises(ValueError):
            validate_booking_date("2030-06-14", today=today)
        with pytest.raises(ValueError):
            validate_booking_date("15/06/2030", today=today)

    def test_active_statuses(self):
        assert is_active_status("pending")
        assert is_active_status("confirmed")
        assert not is_active_status("completed")
        assert not is_active_status("cancelled")

    def test_try_reserve(self, db):
        assert try_reserve(db, FUTURE_DATE, "09:00") == (True, None)

        booking = make_booking(db)

        assert try_reserve(db, FUTURE_DATE, "09:00") == (False, SLOT_CONFLICT_MESSAGE)
        assert try_reserve(db, FUTURE_DATE, "09:00", exclude_id=booking.id) == (True, None)
        assert try_reserve(db, FUTURE_DATE, "10:00") == (True, None)

    def test_availability_ignores_other_days(self, db):
        make_booking(db, date="2099-01-02", time="09:00")

        availability = get_availability(db, FUTURE_DATE)

        assert availability["booked_slots"] == []
        assert "09:00" in availability["available_slots"]


@pytest.mark.unit
class TestFormatting:
    """Tests for display helpers"""

    def test_booking_date(self):
        assert format_booking_date("2099-01-01") == "January 1, 2099"
        assert format_booking_date("garbage") == "garbage"

    @pytest.mark.parametrize("value,expected", [
        ("09:00", "9:00 AM"),
        ("12:00", "12:00 PM"),
        ("13:00", "1:00 PM"),
        ("00:30", "12:30 AM"),
    ])
    def test_booking_time(self, value, expected):
        assert format_booking_time(value) == expected

    def test_price(self):
        assert format_price(1200, "USD") == "$1,200.00"
        assert format_price(99.5, "EUR") == "€99.50"
        assert format_price(450000, "RWF") == "RWF 450,000"

    def test_dimensions(self):
        assert dimensions_string({"width": "1m", "depth": "2m", "height": "3m"}) == "1m × 2m × 3m"
        assert dimensions_string(None) is None

    def test_rating_stars(self):
        assert rating_stars(3) == "★★★☆☆"
        assert rating_stars(5) == "★★★★★"
