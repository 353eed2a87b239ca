from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from campus_events.core.auth import get_current_user, require_roles
from campus_events.database.db import get_db
from campus_events.models.users import Role, User
from campus_events.schemas.events import (
    EventCreate,
    EventDetailOut,
    EventOut,
    EventRegistrationOut,
    FeedbackCreate,
    FeedbackOut,
    FeedbackSummaryOut,
    MyRegistrationOut,
    RegistrationOut,
)
from campus_events.services import events as event_service
from campus_events.services.errors import ServiceError
from campus_events.services.feedback import get_event_feedback, submit_feedback

router = APIRouter(prefix="/api/events", tags=["events"])

coordinator_only = require_roles(Role.COORDINATOR)
student_only = require_roles(Role.STUDENT)


@router.get("", response_model=list[EventOut])
def list_events(
    mine: bool = False,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upcoming events, or a coordinator's own events with ?mine=true."""
    if mine and user.role is Role.COORDINATOR:
        return event_service.list_events(db, created_by=user.id)
    return event_service.list_events(db)


@router.post("", response_model=EventOut, status_code=201)
def create_event(payload: EventCreate, user: User = Depends(coordinator_only), db: Session = Depends(get_db)):
    try:
        return event_service.create_event(db, creator_id=user.id, **payload.model_dump())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/registrations/me", response_model=list[MyRegistrationOut])
def my_registrations(user: User = Depends(student_only), db: Session = Depends(get_db)):
    return event_service.list_student_registrations(db, user.id)


@router.get("/{event_id}", response_model=EventDetailOut)
def get_event(event_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return event_service.get_event(db, event_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{event_id}/register", response_model=RegistrationOut, status_code=201)
def register(event_id: int, user: User = Depends(student_only), db: Session = Depends(get_db)):
    try:
        return event_service.register_for_event(db, event_id=event_id, student_id=user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{event_id}/registrations", response_model=list[EventRegistrationOut])
def event_registrations(event_id: int, user: User = Depends(coordinator_only), db: Session = Depends(get_db)):
    try:
        return event_service.list_event_registrations(db, event_id=event_id, owner_id=user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{event_id}/registrations/export")
def export_registrations(event_id: int, user: User = Depends(coordinator_only), db: Session = Depends(get_db)):
    try:
        filename, content = event_service.export_registrations_csv(db, event_id=event_id, owner_id=user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{event_id}/checkin", response_model=RegistrationOut)
def check_in(event_id: int, user: User = Depends(student_only), db: Session = Depends(get_db)):
    """Target of the event's check-in QR code."""
    try:
        return event_service.check_in(db, event_id=event_id, student_id=user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{event_id}/feedback", response_model=FeedbackOut)
def post_feedback(
    event_id: int,
    payload: FeedbackCreate,
    user: User = Depends(student_only),
    db: Session = Depends(get_db),
):
    try:
        return submit_feedback(
            db, event_id=event_id, student_id=user.id, rating=payload.rating, comment=payload.comment
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{event_id}/feedback", response_model=FeedbackSummaryOut)
def event_feedback(event_id: int, user: User = Depends(coordinator_only), db: Session = Depends(get_db)):
    try:
        return get_event_feedback(db, event_id=event_id, owner_id=user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
