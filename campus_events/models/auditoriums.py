from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_events.database.db import Base
from campus_events.models.bookings import AudiBooking


class Auditorium(Base):
    __tablename__ = "auditoriums"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    facilities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    bookings: Mapped[list["AudiBooking"]] = relationship(back_populates="auditorium")
