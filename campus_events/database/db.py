import datetime as dt

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from campus_events.core.config import get_database_url


class Base(DeclarativeBase):
    pass


def utcnow() -> dt.datetime:
    """Current time as naive UTC, the form every timestamp column stores."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def _connect_args(url: str) -> dict:
    # SQLite connections are shared with the threadpool FastAPI runs sync routes in
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    get_database_url(),
    connect_args=_connect_args(get_database_url()),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Yield one session per request and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=engine) -> None:
    # Import models so that they register with Base.metadata
    from campus_events.models import auditoriums, bookings, events, feedback, registrations, users  # noqa: F401

    Base.metadata.create_all(bind=bind)


def close_db(bind=engine) -> None:
    bind.dispose()
