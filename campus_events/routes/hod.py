from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campus_events.core.auth import require_roles
from campus_events.database.db import get_db
from campus_events.models.bookings import BookingStatus
from campus_events.models.users import Role, User
from campus_events.schemas.auditoriums import BookingDecision, BookingOut
from campus_events.services import bookings as booking_service
from campus_events.services.errors import ServiceError

router = APIRouter(prefix="/api/hod", tags=["hod"])

hod_only = require_roles(Role.HOD)


@router.get("/bookings/pending", response_model=list[BookingOut])
def pending_bookings(user: User = Depends(hod_only), db: Session = Depends(get_db)):
    return booking_service.list_bookings(db, status=BookingStatus.PENDING)


@router.get("/bookings", response_model=list[BookingOut])
def all_bookings(status: str | None = None, user: User = Depends(hod_only), db: Session = Depends(get_db)):
    status_filter = None
    if status:
        try:
            status_filter = BookingStatus(status.upper())
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown booking status: {status}")
    return booking_service.list_bookings(db, status=status_filter)


@router.patch("/bookings/{booking_id}", response_model=BookingOut)
def decide_booking(
    booking_id: int,
    payload: BookingDecision,
    user: User = Depends(hod_only),
    db: Session = Depends(get_db),
):
    """Approve or reject a pending booking request."""
    try:
        return booking_service.decide_booking(
            db, booking_id=booking_id, decision=payload.status, actor_id=user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
