import datetime as dt

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from campus_events.database.db import Base, get_db, utcnow
from campus_events.main import app
from campus_events.models.auditoriums import Auditorium
from campus_events.models.events import Event
from campus_events.models.users import Role, User
from campus_events.services.users import issue_token

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Give every test a fresh set of tables."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# Override the database dependency
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    # Not used as a context manager: the lifespan would create tables on the real engine
    return TestClient(app)


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def redis_client(fake_redis, monkeypatch: pytest.MonkeyPatch):
    """Route every lock through fakeredis."""
    monkeypatch.setattr("campus_events.core.locks.get_redis_client", lambda: fake_redis)
    return fake_redis


@pytest.fixture
def make_user(db_session: Session):
    counter = {"n": 0}

    def _make_user(role: Role = Role.STUDENT, *, name: str | None = None, email: str | None = None,
                   department: str = "Computer Science", password: str = "password123") -> User:
        counter["n"] += 1
        user = User(
            name=name or f"{role.value.title()} {counter['n']}",
            email=email or f"{role.value.lower()}{counter['n']}@college.edu",
            role=role,
            department=department,
        )
        user.set_password(password)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def student(make_user) -> User:
    return make_user(Role.STUDENT)


@pytest.fixture
def coordinator(make_user) -> User:
    return make_user(Role.COORDINATOR)


@pytest.fixture
def hod(make_user) -> User:
    return make_user(Role.HOD)


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return _auth_headers


@pytest.fixture
def make_event(db_session: Session):
    def _make_event(creator: User, **overrides) -> Event:
        fields = {
            "title": "Tech Talk",
            "description": "An evening talk",
            "date": dt.date.today() + dt.timedelta(days=7),
            "start_time": dt.time(14, 0),
            "end_time": dt.time(16, 0),
            "venue": "Main Auditorium",
            "department": "Computer Science",
            "max_participants": 50,
            "registration_deadline": utcnow() + dt.timedelta(days=5),
        }
        fields.update(overrides)
        event = Event(created_by=creator.id, **fields)
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def auditoriums(db_session: Session) -> list[Auditorium]:
    halls = [
        Auditorium(name="Main Auditorium", capacity=500, location="Building A", facilities=["Stage"]),
        Auditorium(name="Seminar Hall 1", capacity=150, location="Building B", facilities=["Projector"]),
        Auditorium(name="Open Air Theatre", capacity=300, location="Campus Grounds", facilities=[]),
    ]
    db_session.add_all(halls)
    db_session.commit()
    for hall in halls:
        db_session.refresh(hall)
    return halls
