"""Pydantic schemas for admin login and session introspection."""

from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=1, max_length=1024)


class LoginResponse(BaseModel):
    success: bool = True


class SessionResponse(BaseModel):
    """The admin identity behind the current session cookie."""

    username: str
    issued_at: datetime
    expires_at: datetime
