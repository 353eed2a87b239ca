import datetime as dt
import enum
from typing import Optional

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_events.database.db import Base, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    def can_become(self, target: "BookingStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


# APPROVED and REJECTED are terminal
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.REJECTED}),
    BookingStatus.APPROVED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}


class AudiBooking(Base):
    __tablename__ = "audi_bookings"
    __table_args__ = (Index("ix_audi_bookings_slot", "auditorium_id", "date", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # At most one booking per event
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), unique=True, nullable=False)
    auditorium_id: Mapped[int] = mapped_column(ForeignKey("auditoriums.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    requested_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    approved_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, native_enum=False, length=16),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    event: Mapped["Event"] = relationship(back_populates="booking")
    auditorium: Mapped["Auditorium"] = relationship(back_populates="bookings")
    requester: Mapped["User"] = relationship(foreign_keys=[requested_by])
    approver: Mapped[Optional["User"]] = relationship(foreign_keys=[approved_by])
