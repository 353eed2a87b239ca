import datetime as dt
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, Time, func, select
from sqlalchemy.orm import Mapped, column_property, mapped_column, relationship

from campus_events.database.db import Base
from campus_events.models.bookings import AudiBooking
from campus_events.models.feedback import Feedback
from campus_events.models.registrations import Registration


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    venue: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    department: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    registration_deadline: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    registration_count: Mapped[int] = column_property(
        select(func.count(Registration.id))
        .where(Registration.event_id == id)
        .correlate_except(Registration)
        .scalar_subquery()
    )

    creator: Mapped["User"] = relationship(back_populates="events")
    registrations: Mapped[list["Registration"]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )
    feedbacks: Mapped[list["Feedback"]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )
    booking: Mapped[Optional["AudiBooking"]] = relationship(back_populates="event")
