from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_events.database.db import Base, utcnow


class Registration(Base):
    __tablename__ = "registrations"
    # One registration per student per event
    __table_args__ = (UniqueConstraint("event_id", "student_id", name="uq_registration_event_student"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    checked_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    checkin_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    registered_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    event: Mapped["Event"] = relationship(back_populates="registrations")
    student: Mapped["User"] = relationship(back_populates="registrations")
