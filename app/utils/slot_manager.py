"""
Booking slot allocation.

A slot is a (date, time) pair where time comes from the configured
``booking.timeSlots`` enumeration. A pending or confirmed booking occupies
its slot; completed and cancelled bookings free it.

The lookup here only gives callers a friendly early answer. The partial
unique index ``uq_bookings_active_slot`` is what actually guarantees a
single active booking per slot when two requests race past the check.
"""
import re
from datetime import date as date_type, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import runtime_config
from app.models.models import Booking, ACTIVE_BOOKING_STATUSES

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SLOT_CONFLICT_MESSAGE = "This time slot is already booked. Please choose a different time."
SLOT_INDEX_NAME = "uq_bookings_active_slot"


def parse_booking_date(value: str) -> Optional[date_type]:
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def validate_booking_date(value: str, today: Optional[date_type] = None) -> str:
    """
    Ensure a booking date is a real YYYY-MM-DD calendar day that is not in the past.

    Raises:
        ValueError: with a user-facing message
    """
    parsed = parse_booking_date(value)
    if parsed is None:
        raise ValueError("Date must be a valid calendar day in YYYY-MM-DD format")
    if parsed < (today or date_type.today()):
        raise ValueError("Please select a valid future date")
    return value


def is_active_status(status: str) -> bool:
    return status in ACTIVE_BOOKING_STATUSES


def find_conflicting_booking(
    db: Session,
    date: str,
    time: str,
    exclude_id: Optional[int] = None
) -> Optional[Booking]:
    """Return an active booking holding (date, time), ignoring ``exclude_id``"""
    query = db.query(Booking).filter(
        Booking.date == date,
        Booking.time == time,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES)
    )
    if exclude_id is not None:
        query = query.filter(Booking.id != exclude_id)
    return query.first()


def try_reserve(
    db: Session,
    date: str,
    time: str,
    exclude_id: Optional[int] = None
) -> Tuple[bool, Optional[str]]:
    """
    Check whether a slot can be taken.

    Nothing is written. On success the caller creates or updates the
    booking itself. The date and time are expected to have passed
    ``validate_booking_date`` and the slot enumeration check already.

    Args:
        db: Database session
        date: Booking day, YYYY-MM-DD
        time: Slot time
        exclude_id: Booking being updated, so it does not conflict with itself

    Returns:
        Tuple of (is_available, error_message)
    """
    if find_conflicting_booking(db, date, time, exclude_id) is not None:
        return False, SLOT_CONFLICT_MESSAGE

    return True, None


def is_slot_conflict(error: IntegrityError) -> bool:
    """True when an IntegrityError came from the active-slot unique index"""
    message = str(getattr(error, "orig", error))
    # PostgreSQL names the index; SQLite reports the indexed columns
    return SLOT_INDEX_NAME in message or "bookings.date, bookings.time" in message


def get_availability(db: Session, date: str) -> Dict[str, List[str]]:
    """Split the configured slots for a day into available and booked"""
    booked_rows = db.query(Booking.time).filter(
        Booking.date == date,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES)
    ).all()
    booked = [row[0] for row in booked_rows]
    all_slots = runtime_config.time_slots()
    return {
        "available_slots": [slot for slot in all_slots if slot not in booked],
        "booked_slots": booked,
    }
