"""
Seed demo data, or clear registrations.

    python -m campus_events.seed
    python -m campus_events.seed clear-registrations
"""
import logging
import sys

from sqlalchemy import delete
from sqlalchemy.orm import Session

from campus_events.database.db import SessionLocal, init_db
from campus_events.models.auditoriums import Auditorium
from campus_events.models.bookings import AudiBooking
from campus_events.models.events import Event
from campus_events.models.feedback import Feedback
from campus_events.models.registrations import Registration
from campus_events.models.users import Role, User

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {"name": "John Student", "email": "student@college.edu", "role": Role.STUDENT},
    {"name": "Sarah Coordinator", "email": "coordinator@college.edu", "role": Role.COORDINATOR},
    {"name": "Dr. Smith HOD", "email": "hod@college.edu", "role": Role.HOD},
]

DEMO_AUDITORIUMS = [
    {
        "name": "Main Auditorium",
        "capacity": 500,
        "location": "Building A, Ground Floor",
        "facilities": ["Projector", "Sound System", "AC", "Stage"],
    },
    {
        "name": "Seminar Hall 1",
        "capacity": 150,
        "location": "Building B, First Floor",
        "facilities": ["Projector", "Whiteboard", "AC"],
    },
    {
        "name": "Open Air Theatre",
        "capacity": 300,
        "location": "Campus Grounds",
        "facilities": ["Stage", "Sound System", "Lighting"],
    },
]


def seed_database(db: Session) -> None:
    """Replace users and auditoriums with the demo set."""
    # Dependent rows go first so foreign keys stay valid
    for model in (Feedback, Registration, AudiBooking, Event, Auditorium, User):
        db.execute(delete(model))

    for data in DEMO_USERS:
        user = User(department="Computer Science", **data)
        user.set_password(DEMO_PASSWORD)
        db.add(user)
    db.add_all(Auditorium(**data) for data in DEMO_AUDITORIUMS)
    db.commit()
    logger.info("Seeded %d users and %d auditoriums", len(DEMO_USERS), len(DEMO_AUDITORIUMS))


def clear_registrations(db: Session) -> int:
    res = db.execute(delete(Registration))
    db.commit()
    logger.info("Deleted %d registrations", res.rowcount)
    return res.rowcount  # type: ignore


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        if args[:1] == ["clear-registrations"]:
            clear_registrations(db)
        elif not args:
            seed_database(db)
            for data in DEMO_USERS:
                logger.info("%-12s %s / %s", data["role"].value, data["email"], DEMO_PASSWORD)
        else:
            logger.error("Unknown command: %s", " ".join(args))
            return 2
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
