"""
Chat assistant backed by the Gemini generateContent API.

The prompt carries the caller's role plus a live snapshot of upcoming events
and, for students and coordinators, their own upcoming events.
"""
import datetime as dt
import logging

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from campus_events.core import config
from campus_events.models.events import Event
from campus_events.models.registrations import Registration
from campus_events.models.users import Role, User
from campus_events.services.errors import AssistantUnavailableError, AssistantUpstreamError

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
FALLBACK_REPLY = "Sorry, I couldn't understand that."
UPCOMING_LIMIT = 5


def build_system_prompt(user: User | None) -> str:
    role = user.role.value if user else "Guest"
    department = (user.department if user else "") or "None"
    return (
        "You are an AI assistant for a College Event Management System.\n"
        "You help students, coordinators, and HOD with:\n"
        "- Event information and registration flow\n"
        "- QR based check-in\n"
        "- Auditorium (audi) booking and HOD approval\n"
        "- Roles and responsibilities of Student / Coordinator / HOD\n"
        "\n"
        "IMPORTANT RULES:\n"
        '- If the user asks for "my events" or "my registrations", use the data given below in the context.\n'
        '- If the user asks for "upcoming events", use the events list from the context.\n'
        "- If something is not in the context (no matching event in database), say you don't see "
        "that event in the system instead of guessing.\n"
        "- Keep replies friendly, short, and simple.\n"
        "\n"
        "Current user:\n"
        f"- Role: {role}\n"
        f"- Department: {department}\n"
    )


def _describe(event: Event, *, with_department: bool = True, with_times: bool = False) -> str:
    line = f"• {event.title} on {event.date.strftime('%a %b %d %Y')} at {event.venue}"
    if with_department:
        line += f" ({event.department})"
    if with_times:
        line += f" from {event.start_time.strftime('%H:%M')} to {event.end_time.strftime('%H:%M')}"
    return line


def build_context(db: Session, user: User | None, today: dt.date | None = None) -> str:
    today = today or dt.date.today()
    parts: list[str] = []
    try:
        upcoming = list(
            db.scalars(
                select(Event).where(Event.date >= today).order_by(Event.date, Event.start_time).limit(UPCOMING_LIMIT)
            )
        )
        if upcoming:
            lines = "\n".join(_describe(e, with_times=True) for e in upcoming)
            parts.append(f"Upcoming events in the system (max {UPCOMING_LIMIT}):\n{lines}")
        else:
            parts.append("There are currently no upcoming events in the system.")

        if user is not None and user.role is Role.STUDENT:
            regs = db.scalars(
                select(Registration)
                .join(Registration.event)
                .where(Registration.student_id == user.id, Event.date >= today)
                .options(selectinload(Registration.event))
                .order_by(Registration.registered_at.desc())
            ).all()
            if regs:
                lines = "\n".join(_describe(r.event, with_department=False) for r in regs)
                parts.append(f"This student's upcoming registered events:\n{lines}")
            else:
                parts.append("This student has no upcoming registered events in the system.")

        if user is not None and user.role is Role.COORDINATOR:
            mine = db.scalars(
                select(Event)
                .where(Event.created_by == user.id, Event.date >= today)
                .order_by(Event.date)
                .limit(UPCOMING_LIMIT)
            ).all()
            if mine:
                lines = "\n".join(_describe(e) for e in mine)
                parts.append(f"Upcoming events created by this coordinator:\n{lines}")
            else:
                parts.append("This coordinator has no upcoming events created in the system.")
    except SQLAlchemyError:
        logger.exception("Assistant context lookup failed")
        parts.append(
            "Note: There was an error fetching some live data from the database, "
            "so event list might be incomplete."
        )
    return "\n\n".join(parts)


def build_payload(system_prompt: str, context: str, message: str) -> dict:
    text = (
        f"{system_prompt}\n"
        "Here is live data from the system (events, registrations, etc.):\n"
        f"{context}\n\n"
        f"User question: {message}\n"
    )
    return {"contents": [{"role": "user", "parts": [{"text": text}]}]}


def extract_reply(data: dict) -> str:
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"] or FALLBACK_REPLY
    except (KeyError, IndexError, TypeError):
        return FALLBACK_REPLY


def ask_assistant(db: Session, user: User | None, message: str) -> str:
    api_key = config.get_gemini_api_key()
    if not api_key:
        raise AssistantUnavailableError("Gemini API key missing in backend.")

    payload = build_payload(build_system_prompt(user), build_context(db, user), message)
    url = GEMINI_URL.format(model=config.GEMINI_MODEL)
    try:
        response = httpx.post(
            url,
            params={"key": api_key},
            json=payload,
            timeout=config.GEMINI_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError:
        logger.exception("Assistant request failed")
        raise AssistantUpstreamError("Something went wrong talking to AI.")
    return extract_reply(response.json())
