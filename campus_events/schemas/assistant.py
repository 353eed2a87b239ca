from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(default="", max_length=4000)


class ChatReply(BaseModel):
    reply: str
