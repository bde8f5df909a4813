import logging
from datetime import datetime, timedelta
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core import runtime_config
from app.core.database import get_db
from app.core.security import get_current_admin
from app.models.models import AdminUser, Booking, BOOKING_STATUSES
from app.schemas.schemas import (
    BookingCreate, BookingUpdate, BookingResponse, BookingEnvelope, BookingListResponse,
    AvailabilityResponse, MessageResponse
)
from app.utils.formatting import format_booking_date, format_booking_time
from app.utils.slot_manager import (
    SLOT_CONFLICT_MESSAGE, get_availability, is_active_status, is_slot_conflict,
    parse_booking_date, try_reserve
)

logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_FIELDS = {
    "createdAt": Booking.created_at,
    "updatedAt": Booking.updated_at,
    "date": Booking.date,
    "name": Booking.name,
    "status": Booking.status,
}


def booking_to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        name=booking.name,
        email=booking.email,
        phone=booking.phone,
        date=booking.date,
        time=booking.time,
        service_type=booking.service_type,
        notes=booking.notes,
        status=booking.status,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        formatted_date=format_booking_date(booking.date),
        formatted_time=format_booking_time(booking.time)
    )


def slot_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=SLOT_CONFLICT_MESSAGE
    )


def commit_booking(db: Session, booking: Booking) -> None:
    """Commit, translating a lost slot race into a 409"""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_slot_conflict(e):
            logger.info(f"Slot {booking.date} {booking.time} taken by a concurrent request")
            raise slot_conflict()
        raise
    db.refresh(booking)


# ==================== PUBLIC ENDPOINTS ====================

@router.post("", response_model=BookingEnvelope, status_code=status.HTTP_201_CREATED)
def create_booking(booking_data: BookingCreate, db: Session = Depends(get_db)):
    """Create a new booking (public)"""
    is_available, error_msg = try_reserve(db, booking_data.date, booking_data.time)
    if not is_available:
        logger.info(f"Slot conflict for {booking_data.date} {booking_data.time}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=error_msg
        )

    now = datetime.utcnow()
    booking = Booking(
        name=booking_data.name,
        email=booking_data.email,
        phone=booking_data.phone,
        date=booking_data.date,
        time=booking_data.time,
        service_type=booking_data.service_type,
        notes=booking_data.notes or "",
        status="pending",
        created_at=now,
        updated_at=now
    )
    db.add(booking)
    commit_booking(db, booking)

    logger.info(f"Booking {booking.id} created for {booking.date} {booking.time}")
    return {
        "message": "Booking created successfully",
        "booking": booking_to_response(booking)
    }


@router.get("/availability", response_model=AvailabilityResponse)
def check_availability(
    date: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Available and booked slots for a day (public)"""
    if not date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Date parameter is required"
        )
    if parse_booking_date(date) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Date must be a valid calendar day in YYYY-MM-DD format"
        )

    availability = get_availability(db, date)
    return AvailabilityResponse(date=date, **availability)


@router.get("/options")
def get_booking_options():
    """Slot, service type and status enumerations for the booking form"""
    return {
        "success": True,
        "timeSlots": runtime_config.time_slots(),
        "serviceTypes": runtime_config.service_types(),
        "statuses": BOOKING_STATUSES
    }


# ==================== ADMIN ENDPOINTS ====================

@router.get("/admin", response_model=BookingListResponse)
def get_bookings(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    service_type: Optional[str] = Query(None, alias="serviceType"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    """Paginated, filterable booking list"""
    limit = limit or runtime_config.get_positive_int("system.pagination.adminLimit", 10)
    query = db.query(Booking)

    if status_filter and status_filter != "all":
        query = query.filter(Booking.status == status_filter)

    if service_type and service_type != "all":
        query = query.filter(Booking.service_type == service_type)

    if search:
        query = query.filter(
            or_(
                Booking.name.ilike(f"%{search}%"),
                Booking.email.ilike(f"%{search}%"),
                Booking.phone.ilike(f"%{search}%")
            )
        )

    total = query.count()

    sort_column = SORTABLE_FIELDS.get(sort_by, Booking.created_at)
    order = sort_column.asc() if sort_order == "asc" else sort_column.desc()
    bookings = query.order_by(order, Booking.id.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "bookings": [booking_to_response(b) for b in bookings],
        "pagination": {
            "current": page,
            "total": (total + limit - 1) // limit,
            "count": len(bookings),
            "total_count": total
        }
    }


@router.get("/admin/stats")
def get_booking_stats(
    period: int = Query(30, ge=1),
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    """Booking counts for the dashboard"""
    status_rows = db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    status_counts = {s: 0 for s in BOOKING_STATUSES}
    for booking_status, count in status_rows:
        status_counts[booking_status] = count

    since = datetime.utcnow() - timedelta(days=period)
    recent = db.query(func.count(Booking.id)).filter(Booking.created_at >= since).scalar() or 0

    service_rows = db.query(Booking.service_type, func.count(Booking.id)).group_by(Booking.service_type).all()

    # Daily counts for the last 7 days, grouped in Python to stay dialect neutral
    week_ago = datetime.utcnow() - timedelta(days=7)
    daily = {}
    for (created_at,) in db.query(Booking.created_at).filter(Booking.created_at >= week_ago).all():
        day = created_at.strftime("%Y-%m-%d")
        daily[day] = daily.get(day, 0) + 1

    return {
        "success": True,
        "stats": {
            "total": sum(status_counts.values()),
            "pending": status_counts.get("pending", 0),
            "confirmed": status_counts.get("confirmed", 0),
            "completed": status_counts.get("completed", 0),
            "cancelled": status_counts.get("cancelled", 0),
            "recent": recent,
            "serviceTypes": [{"id": s, "count": c} for s, c in service_rows],
            "status": [{"id": s, "count": c} for s, c in status_rows],
            "daily": [{"id": day, "count": daily[day]} for day in sorted(daily)]
        }
    }


@router.put("/admin/{booking_id}", response_model=BookingEnvelope)
def update_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    """Update booking status or details"""
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )

    new_date = booking_data.date or booking.date
    new_time = booking_data.time or booking.time
    new_status = booking_data.status or booking.status

    slot_changed = new_date != booking.date or new_time != booking.time
    reactivated = is_active_status(new_status) and not is_active_status(booking.status)
    if is_active_status(new_status) and (slot_changed or reactivated):
        is_available, error_msg = try_reserve(db, new_date, new_time, exclude_id=booking.id)
        if not is_available:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=error_msg
            )

    update_data = booking_data.model_dump(exclude_unset=True)
    for field in ("name", "email", "phone", "date", "time", "service_type", "status"):
        if update_data.get(field):
            setattr(booking, field, update_data[field])
    if "notes" in update_data:
        booking.notes = update_data["notes"]

    booking.updated_at = datetime.utcnow()
    commit_booking(db, booking)

    logger.info(f"Booking {booking.id} updated by '{current_user.username}'")
    return {
        "message": "Booking updated successfully",
        "booking": booking_to_response(booking)
    }


@router.delete("/admin/{booking_id}", response_model=MessageResponse)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: AdminUser = Depends(get_current_admin)
):
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )

    db.delete(booking)
    db.commit()
    return {"message": "Booking deleted successfully"}
