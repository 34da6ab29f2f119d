"""
Authentication schema models using Pydantic.
"""

from pydantic import BaseModel
from typing import Literal, Optional


class Credentials(BaseModel):
    """Email and password as entered on the sign-in form."""

    email: str
    password: str


class SignUpRequest(Credentials):
    name: Optional[str] = None


class AuthSession(BaseModel):
    """Session issued by the auth provider."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int = 3600
    user_id: str
    email: Optional[str] = None


class SignUpResponse(BaseModel):
    status: Literal["signed_in", "pending_confirmation"]
    message: str
    session: Optional[AuthSession] = None


class SessionStatus(BaseModel):
    authenticated: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
