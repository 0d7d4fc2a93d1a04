from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from typing import Any, Optional

from app.modules.users.schemas import UserResponse


class AuthState(str, Enum):
    INITIALIZING = "initializing"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class SessionIdentity(BaseModel):
    """Who is signed in at the Supabase Auth level."""
    id: str
    email: Optional[str] = None
    email_verified: bool = False

    @classmethod
    def from_auth_user(cls, user: Any) -> "SessionIdentity":
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            email_verified=bool(getattr(user, "email_confirmed_at", None)),
        )


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(min_length=1, max_length=255)


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class RedirectRequest(BaseModel):
    url: str


class AuthStateResponse(BaseModel):
    state: AuthState
    user: Optional[UserResponse] = None
    session_user: Optional[SessionIdentity] = None
    is_authenticated: bool
    is_loading: bool


class SignedInResponse(AuthStateResponse):
    """State after a sign-in; ``session_key`` goes in ``Authorization: Bearer`` on later calls."""
    session_key: Optional[str] = None
