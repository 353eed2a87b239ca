import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from campus_events.core.auth import get_current_user, require_roles
from campus_events.database.db import get_db
from campus_events.models.users import Role, User
from campus_events.schemas.auditoriums import AuditoriumOut, AvailabilityOut, BookingCreate, BookingOut
from campus_events.services import bookings as booking_service
from campus_events.services.errors import ServiceError

router = APIRouter(prefix="/api/audi", tags=["auditoriums"])

coordinator_only = require_roles(Role.COORDINATOR)


@router.get("", response_model=list[AuditoriumOut])
def list_auditoriums(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return booking_service.list_auditoriums(db)


@router.get("/availability", response_model=AvailabilityOut)
def availability(
    date: dt.date = Query(...),
    start_time: dt.time = Query(...),
    end_time: dt.time = Query(...),
    user: User = Depends(coordinator_only),
    db: Session = Depends(get_db),
):
    try:
        available = booking_service.list_available_auditoriums(
            db, on_date=date, start_time=start_time, end_time=end_time
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"date": date, "start_time": start_time, "end_time": end_time, "available": available}


@router.post("/book", response_model=BookingOut, status_code=201)
def book_auditorium(payload: BookingCreate, user: User = Depends(coordinator_only), db: Session = Depends(get_db)):
    try:
        return booking_service.request_booking(
            db,
            requester_id=user.id,
            event_id=payload.event_id,
            auditorium_id=payload.auditorium_id,
            on_date=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/my-requests", response_model=list[BookingOut])
def my_requests(user: User = Depends(coordinator_only), db: Session = Depends(get_db)):
    return booking_service.list_bookings(db, requested_by=user.id)
