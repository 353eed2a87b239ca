from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campus_events.core.auth import get_current_user
from campus_events.database.db import get_db
from campus_events.models.users import User
from campus_events.schemas.assistant import ChatReply, ChatRequest
from campus_events.services.assistant import ask_assistant
from campus_events.services.errors import ServiceError

router = APIRouter(prefix="/api/ai", tags=["assistant"])


@router.post("/chat", response_model=ChatReply)
def chat(payload: ChatRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        reply = ask_assistant(db, user, payload.message)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"reply": reply}
