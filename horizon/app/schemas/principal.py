"""
app/schemas/principal.py
Principal, raw session and session-event models.
"""
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["member", "admin"]
ADMIN_ROLE = "admin"


class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID")
    email: Optional[str] = Field(None, description="E-mail or phone-derived pseudo e-mail")
    display_name: Optional[str] = Field(None, description="Display name (if any)")
    phone_number: Optional[str] = Field(None, description="Digits only (if registered by phone)")


class Session(BaseModel):
    """Raw session as issued by the authentication subsystem."""
    principal: Principal
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600


class SessionEventKind(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    OTHER = "OTHER"


class SessionState(str, Enum):
    INITIALIZING = "INITIALIZING"
    RESOLVED_ANONYMOUS = "RESOLVED_ANONYMOUS"
    RESOLVED_MEMBER = "RESOLVED_MEMBER"
    RESOLVED_ADMIN = "RESOLVED_ADMIN"


class ResolvedSession(BaseModel):
    principal: Optional[Principal] = None
    is_admin: bool = False

    @property
    def role(self) -> Optional[Role]:
        if self.principal is None:
            return None
        return "admin" if self.is_admin else "member"

    @property
    def state(self) -> SessionState:
        if self.principal is None:
            return SessionState.RESOLVED_ANONYMOUS
        return SessionState.RESOLVED_ADMIN if self.is_admin else SessionState.RESOLVED_MEMBER


ANONYMOUS = ResolvedSession()
