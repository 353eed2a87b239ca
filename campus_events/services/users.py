import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_events.core.security import create_access_token
from campus_events.models.users import Role, User
from campus_events.services.errors import ConflictError, UnauthorizedError

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.strip().lower()))


def register_user(
    db: Session, *, name: str, email: str, password: str, role: Role, department: str = ""
) -> User:
    email = email.strip().lower()
    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    user = User(name=name.strip(), email=email, role=role, department=department or "")
    user.set_password(password)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email already exists")
    db.refresh(user)
    logger.info("Registered %s user %s", user.role.value, user.email)
    return user


def authenticate_user(db: Session, *, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if not user or not user.check_password(password):
        raise UnauthorizedError("Invalid email or password")
    return user


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id)})
