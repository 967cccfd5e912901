from pydantic import BaseModel, Field

from datetime import datetime


class UserLogin(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8)


class SessionResult(BaseModel):
    """Public outcome of a successful login. Never carries the password hash."""
    id: int
    username: str
    token: str


class RegistrationResponse(BaseModel):
    id: int
    username: str


class ClaimsResponse(BaseModel):
    id: int
    username: str
    issued_at: datetime
    expires_at: datetime


class ErrorResponse(BaseModel):
    detail: str
