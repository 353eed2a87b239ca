import datetime as dt
import logging
from collections import defaultdict

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus_events.core.locks import redis_lock
from campus_events.database.db import utcnow
from campus_events.models.auditoriums import Auditorium
from campus_events.models.bookings import AudiBooking, BookingStatus
from campus_events.models.events import Event
from campus_events.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from campus_events.services.scheduling import find_conflicts, overlaps, validate_interval

logger = logging.getLogger(__name__)


def _booking_relations():
    return (
        selectinload(AudiBooking.event),
        selectinload(AudiBooking.auditorium),
        selectinload(AudiBooking.requester),
        selectinload(AudiBooking.approver),
    )


def slot_lock_key(auditorium_id: int, on_date: dt.date) -> str:
    return f"audi_lock:{auditorium_id}:{on_date.isoformat()}"


def list_auditoriums(db: Session) -> list[Auditorium]:
    return list(db.scalars(select(Auditorium).order_by(Auditorium.name)))


def list_available_auditoriums(
    db: Session, *, on_date: dt.date, start_time: dt.time, end_time: dt.time
) -> list[Auditorium]:
    """Auditoriums with no APPROVED booking on `on_date` overlapping [start_time, end_time)."""
    validate_interval(start_time, end_time)

    auditoriums = list_auditoriums(db)
    approved = db.scalars(
        select(AudiBooking).where(
            AudiBooking.date == on_date,
            AudiBooking.status == BookingStatus.APPROVED,
        )
    )
    by_auditorium: dict[int, list[AudiBooking]] = defaultdict(list)
    for booking in approved:
        by_auditorium[booking.auditorium_id].append(booking)

    return [
        audi
        for audi in auditoriums
        if not find_conflicts(start_time, end_time, by_auditorium.get(audi.id, ()))
    ]


def request_booking(
    db: Session,
    *,
    requester_id: int,
    event_id: int,
    auditorium_id: int,
    on_date: dt.date,
    start_time: dt.time,
    end_time: dt.time,
) -> AudiBooking:
    """
    Record a PENDING booking request for one of the requester's events.

    Overlap with other bookings is not checked here; it is enforced when a
    HOD approves the request.
    """
    validate_interval(start_time, end_time)

    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    if event.created_by != requester_id:
        raise ForbiddenError("You can only book auditoriums for your own events")

    if not db.get(Auditorium, auditorium_id):
        raise NotFoundError("Auditorium not found")

    existing = db.scalar(select(AudiBooking.id).where(AudiBooking.event_id == event_id))
    if existing is not None:
        raise ConflictError("A booking already exists for this event")

    booking = AudiBooking(
        event_id=event_id,
        auditorium_id=auditorium_id,
        date=on_date,
        start_time=start_time,
        end_time=end_time,
        requested_by=requester_id,
        status=BookingStatus.PENDING,
    )
    db.add(booking)
    try:
        db.commit()
    except IntegrityError:
        # event_id is unique: a concurrent request won the insert
        db.rollback()
        raise ConflictError("A booking already exists for this event")
    logger.info(
        "Booking %s requested by user %s for auditorium %s on %s %s-%s",
        booking.id, requester_id, auditorium_id, on_date, start_time, end_time,
    )
    return get_booking(db, booking.id)


def get_booking(db: Session, booking_id: int) -> AudiBooking:
    booking = db.scalar(
        select(AudiBooking).where(AudiBooking.id == booking_id).options(*_booking_relations())
    )
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def list_bookings(
    db: Session,
    *,
    status: BookingStatus | None = None,
    requested_by: int | None = None,
) -> list[AudiBooking]:
    """Bookings newest first, optionally filtered by status and requester."""
    stmt = select(AudiBooking).options(*_booking_relations())
    if status is not None:
        stmt = stmt.where(AudiBooking.status == status)
    if requested_by is not None:
        stmt = stmt.where(AudiBooking.requested_by == requested_by)
    stmt = stmt.order_by(AudiBooking.created_at.desc(), AudiBooking.id.desc())
    return list(db.scalars(stmt))


def decide_booking(
    db: Session, *, booking_id: int, decision: BookingStatus, actor_id: int | None
) -> AudiBooking:
    """
    Move a PENDING booking to APPROVED or REJECTED.

    The check for overlapping APPROVED bookings and the status write happen
    while holding a Redis lock for the booking's auditorium and date, so two
    overlapping requests can never both end up APPROVED.
    """
    if actor_id is None:
        raise UnauthorizedError("Not authorized, user missing")
    try:
        decision = BookingStatus(decision)
    except ValueError:
        raise InvalidStateError("Status must be either APPROVED or REJECTED")
    if decision not in (BookingStatus.APPROVED, BookingStatus.REJECTED):
        raise InvalidStateError("Status must be either APPROVED or REJECTED")

    booking = db.get(AudiBooking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    lock_key = slot_lock_key(booking.auditorium_id, booking.date)
    # End the open transaction so the locked section starts a fresh one
    db.rollback()

    with redis_lock(lock_key):
        try:
            _decide_in_transaction(db, booking_id, decision, actor_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info("Booking %s %s by user %s", booking_id, decision.value.lower(), actor_id)
    return get_booking(db, booking_id)


def _decide_in_transaction(
    db: Session, booking_id: int, decision: BookingStatus, actor_id: int
) -> None:
    """Internal function to apply a decision within a transaction."""
    booking = db.get(AudiBooking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    if not booking.status.can_become(decision):
        raise InvalidStateError("Only pending bookings can be updated")

    if decision is BookingStatus.APPROVED:
        conflict = find_approved_conflict(db, booking)
        if conflict is not None:
            logger.warning(
                "Booking %s overlaps approved booking %s on auditorium %s",
                booking.id, conflict.id, booking.auditorium_id,
            )
            raise ConflictError("This auditorium is already booked for the selected time slot")

    # Status and approver change together, and only from PENDING
    stmt = (
        update(AudiBooking)
        .where(AudiBooking.id == booking_id)
        .where(AudiBooking.status == BookingStatus.PENDING)
        .values(status=decision, approved_by=actor_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    res = db.execute(stmt)
    if res.rowcount != 1:  # type: ignore
        raise InvalidStateError("Only pending bookings can be updated")


def find_approved_conflict(db: Session, booking: AudiBooking) -> AudiBooking | None:
    """Another APPROVED booking on the same auditorium and date overlapping `booking`."""
    candidates = db.scalars(
        select(AudiBooking).where(
            AudiBooking.auditorium_id == booking.auditorium_id,
            AudiBooking.date == booking.date,
            AudiBooking.status == BookingStatus.APPROVED,
            AudiBooking.id != booking.id,
        )
    )
    for other in candidates:
        if overlaps(booking.start_time, booking.end_time, other.start_time, other.end_time):
            return other
    return None
