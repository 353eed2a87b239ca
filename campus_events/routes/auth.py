from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campus_events.core.auth import get_current_user
from campus_events.database.db import get_db
from campus_events.models.users import User
from campus_events.schemas.users import LoginRequest, RegisterRequest, TokenOut, UserOut
from campus_events.services.errors import ServiceError
from campus_events.services.users import authenticate_user, issue_token, register_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=TokenOut, status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    try:
        user = register_user(
            db,
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            department=payload.department,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"token": issue_token(user), "user": user}


@router.post("/login", response_model=TokenOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = authenticate_user(db, email=payload.email, password=payload.password)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"token": issue_token(user), "user": user}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user
