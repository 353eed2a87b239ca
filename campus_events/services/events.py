import csv
import datetime as dt
import io
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus_events.core.locks import redis_lock
from campus_events.models.events import Event
from campus_events.models.registrations import Registration
from campus_events.services.errors import (
    AlreadyRegisteredError,
    EventFullError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from campus_events.services.scheduling import validate_interval

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Name", "Email", "Department", "Registration Date", "Checked In", "Check-in Time"]


def utc_naive(value: dt.datetime) -> dt.datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return value


def create_event(db: Session, *, creator_id: int, **fields) -> Event:
    validate_interval(fields["start_time"], fields["end_time"])
    fields["registration_deadline"] = utc_naive(fields["registration_deadline"])

    event = Event(created_by=creator_id, **fields)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s (%s) created by user %s", event.id, event.title, creator_id)
    return event


def list_events(db: Session, *, created_by: int | None = None, today: dt.date | None = None) -> list[Event]:
    """A coordinator's own events when `created_by` is given, otherwise upcoming events."""
    stmt = select(Event).options(selectinload(Event.creator))
    if created_by is not None:
        stmt = stmt.where(Event.created_by == created_by)
    else:
        stmt = stmt.where(Event.date >= (today or dt.date.today()))
    return list(db.scalars(stmt.order_by(Event.date, Event.start_time)))


def get_event(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    return event


def get_owned_event(db: Session, event_id: int, user_id: int) -> Event:
    event = get_event(db, event_id)
    if event.created_by != user_id:
        raise ForbiddenError("Not authorized to access this event")
    return event


def register_for_event(
    db: Session, *, event_id: int, student_id: int, now: dt.datetime | None = None
) -> Registration:
    """
    Register a student for an event.
    The capacity check and the insert run under a per-event Redis lock so the
    last seat cannot be given out twice.
    """
    event = get_event(db, event_id)
    now = utc_naive(now or dt.datetime.now(dt.timezone.utc))
    if now > event.registration_deadline:
        raise InvalidStateError("Registration deadline has passed")

    db.rollback()
    with redis_lock(f"event_lock:{event_id}"):
        try:
            registration = _register_in_transaction(db, event, student_id, now)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AlreadyRegisteredError("You are already registered for this event")
        except Exception:
            db.rollback()
            raise

    db.refresh(registration)
    logger.info("User %s registered for event %s", student_id, event_id)
    return registration


def _register_in_transaction(db: Session, event: Event, student_id: int, now: dt.datetime) -> Registration:
    """Internal function to create a registration within a transaction."""
    taken = db.scalar(select(func.count(Registration.id)).where(Registration.event_id == event.id))
    if int(taken or 0) >= event.max_participants:
        raise EventFullError("Event is full")

    existing = db.scalar(
        select(Registration.id).where(
            Registration.event_id == event.id,
            Registration.student_id == student_id,
        )
    )
    if existing is not None:
        raise AlreadyRegisteredError("You are already registered for this event")

    registration = Registration(event_id=event.id, student_id=student_id, registered_at=now)
    db.add(registration)
    db.flush()  # gets registration.id
    return registration


def list_student_registrations(db: Session, student_id: int) -> list[Registration]:
    stmt = (
        select(Registration)
        .where(Registration.student_id == student_id)
        .options(selectinload(Registration.event))
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    return list(db.scalars(stmt))


def list_event_registrations(db: Session, *, event_id: int, owner_id: int) -> list[Registration]:
    get_owned_event(db, event_id, owner_id)
    stmt = (
        select(Registration)
        .where(Registration.event_id == event_id)
        .options(selectinload(Registration.student))
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    return list(db.scalars(stmt))


def export_registrations_csv(db: Session, *, event_id: int, owner_id: int) -> tuple[str, str]:
    """Return (filename, csv text) for an event's registrations."""
    event = get_owned_event(db, event_id, owner_id)
    registrations = list_event_registrations(db, event_id=event_id, owner_id=owner_id)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for reg in registrations:
        writer.writerow({
            "Name": reg.student.name,
            "Email": reg.student.email,
            "Department": reg.student.department,
            "Registration Date": reg.registered_at.strftime("%Y-%m-%d %H:%M:%S"),
            "Checked In": "Yes" if reg.checked_in else "No",
            "Check-in Time": reg.checkin_time.strftime("%Y-%m-%d %H:%M:%S") if reg.checkin_time else "N/A",
        })
    return f"{event.title}_registrations.csv", buffer.getvalue()


def check_in(db: Session, *, event_id: int, student_id: int, now: dt.datetime | None = None) -> Registration:
    registration = db.scalar(
        select(Registration).where(
            Registration.event_id == event_id,
            Registration.student_id == student_id,
        )
    )
    if not registration:
        raise NotFoundError("You are not registered for this event")

    stmt = (
        update(Registration)
        .where(Registration.id == registration.id)
        .where(Registration.checked_in.is_(False))
        .values(checked_in=True, checkin_time=utc_naive(now or dt.datetime.now(dt.timezone.utc)))
        .execution_options(synchronize_session=False)
    )
    res = db.execute(stmt)
    if res.rowcount != 1:  # type: ignore
        db.rollback()
        raise InvalidStateError("You have already checked in for this event")
    db.commit()
    db.refresh(registration)
    logger.info("User %s checked in to event %s", student_id, event_id)
    return registration
