import datetime as dt

from pydantic import BaseModel, Field

from campus_events.models.bookings import BookingStatus
from campus_events.schemas.users import UserBrief


class AuditoriumOut(BaseModel):
    id: int
    name: str
    capacity: int
    location: str
    facilities: list[str]

    class Config:
        from_attributes = True


class AvailabilityOut(BaseModel):
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    available: list[AuditoriumOut]


class BookingCreate(BaseModel):
    event_id: int = Field(ge=1)
    auditorium_id: int = Field(ge=1)
    date: dt.date
    start_time: dt.time
    end_time: dt.time


class BookingDecision(BaseModel):
    status: BookingStatus


class BookingEventOut(BaseModel):
    id: int
    title: str
    description: str

    class Config:
        from_attributes = True


class BookingOut(BaseModel):
    id: int
    event_id: int
    auditorium_id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: BookingStatus
    requested_by: int
    approved_by: int | None
    created_at: dt.datetime
    updated_at: dt.datetime
    event: BookingEventOut
    auditorium: AuditoriumOut
    requester: UserBrief
    approver: UserBrief | None

    class Config:
        from_attributes = True
