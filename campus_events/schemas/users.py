from pydantic import BaseModel, Field

from campus_events.models.users import Role


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=120)
    password: str = Field(min_length=6)
    role: Role = Role.STUDENT
    department: str = Field(default="", max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    department: str

    class Config:
        from_attributes = True


class UserBrief(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class StudentBrief(UserBrief):
    department: str


class TokenOut(BaseModel):
    token: str
    user: UserOut
