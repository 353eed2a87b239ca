import datetime as dt
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus_events.models.feedback import Feedback
from campus_events.models.registrations import Registration
from campus_events.services.errors import ConflictError, ForbiddenError, InvalidStateError
from campus_events.services.events import get_event, get_owned_event

logger = logging.getLogger(__name__)


def submit_feedback(
    db: Session,
    *,
    event_id: int,
    student_id: int,
    rating: int,
    comment: str = "",
    today: dt.date | None = None,
) -> Feedback:
    """Create or update a registered student's feedback for a past event."""
    event = get_event(db, event_id)
    if event.date > (today or dt.date.today()):
        raise InvalidStateError("Cannot submit feedback for upcoming events")

    registered = db.scalar(
        select(Registration.id).where(
            Registration.event_id == event_id,
            Registration.student_id == student_id,
        )
    )
    if registered is None:
        raise ForbiddenError("You must be registered for the event to give feedback")

    feedback = db.scalar(
        select(Feedback).where(Feedback.event_id == event_id, Feedback.student_id == student_id)
    )
    if feedback is None:
        feedback = Feedback(event_id=event_id, student_id=student_id, rating=rating, comment=comment)
        db.add(feedback)
    else:
        feedback.rating = rating
        feedback.comment = comment
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Feedback was submitted concurrently, please retry")
    db.refresh(feedback)
    logger.info("Feedback from user %s for event %s: %s", student_id, event_id, rating)
    return feedback


def get_event_feedback(db: Session, *, event_id: int, owner_id: int) -> dict:
    get_owned_event(db, event_id, owner_id)
    feedbacks = list(
        db.scalars(
            select(Feedback)
            .where(Feedback.event_id == event_id)
            .options(selectinload(Feedback.student))
            .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        )
    )
    average = sum(f.rating for f in feedbacks) / len(feedbacks) if feedbacks else 0.0
    return {
        "count": len(feedbacks),
        "average_rating": round(average, 1),
        "feedbacks": feedbacks,
    }
