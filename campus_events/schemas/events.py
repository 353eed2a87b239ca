import datetime as dt

from pydantic import BaseModel, Field

from campus_events.schemas.users import StudentBrief, UserBrief


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    venue: str = Field(default="", max_length=200)
    department: str = Field(default="", max_length=100)
    max_participants: int = Field(ge=1)
    registration_deadline: dt.datetime


class EventOut(BaseModel):
    id: int
    title: str
    description: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    venue: str
    department: str
    max_participants: int
    registration_deadline: dt.datetime
    created_by: int
    registration_count: int

    class Config:
        from_attributes = True


class EventDetailOut(EventOut):
    creator: StudentBrief


# ---------- Registration ----------
class RegistrationOut(BaseModel):
    id: int
    event_id: int
    student_id: int
    checked_in: bool
    checkin_time: dt.datetime | None
    registered_at: dt.datetime

    class Config:
        from_attributes = True


class MyRegistrationOut(RegistrationOut):
    event: EventOut


class EventRegistrationOut(RegistrationOut):
    student: StudentBrief


# ---------- Feedback ----------
class FeedbackCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=2000)


class FeedbackOut(BaseModel):
    id: int
    event_id: int
    student_id: int
    rating: int
    comment: str
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class EventFeedbackOut(FeedbackOut):
    student: UserBrief


class FeedbackSummaryOut(BaseModel):
    count: int
    average_rating: float
    feedbacks: list[EventFeedbackOut]
