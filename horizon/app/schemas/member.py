"""
# `app/schemas/member.py` - Member profile and authentication schemas

## Profile
| Field                     | Type            | Notes |
|---------------------------|-----------------|-------|
| user_id                   | `str`           | Firebase UID |
| full_name                 | `str`           | Display name |
| phone_number              | `str` / `null`  | Digits only |
| balance_visible           | `bool`          | Member may see their balance |
| daily_contribution_amount | `float`         | Default 100 |
| balance_adjustment        | `float`         | Cumulative signed admin adjustments |
| is_online / last_seen_at  | presence fields | Touched on every session resolution |

## Auth
- Registration and login arrive as form fields and are checked by `core.validation`.
- `LoginResponse`: Firebase token bundle plus the resolved role and landing path.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from horizon.app.schemas.principal import SessionState


class _Base(BaseModel):
    # Keep extra Firestore fields in responses
    model_config = ConfigDict(extra="allow")


class MemberProfile(_Base):
    id: Optional[str] = Field(None, description="Firestore document ID")
    user_id: str = Field(..., description="Firebase UID")
    full_name: str = ""
    phone_number: Optional[str] = None
    balance_visible: bool = True
    daily_contribution_amount: float = 100.0
    balance_adjustment: float = 0.0
    missed_contributions: int = 0
    is_online: bool = False
    last_seen_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class MemberSummary(MemberProfile):
    """Profile plus derived contribution stats for admin listings."""
    total_contributions: float = 0.0
    contribution_count: int = 0
    effective_balance: float = 0.0


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    profile: MemberProfile


class LoginResponse(BaseModel):
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: int  # seconds
    user_id: str
    is_admin: bool = False
    redirect_to: str


class RefreshRequest(BaseModel):
    refresh_token: str


class SessionOut(BaseModel):
    state: SessionState
    user_id: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False
    redirect_to: str


class PasswordReset(BaseModel):
    new_password: str = Field(..., description="New password (min 6 characters)")


class DailyAmountUpdate(BaseModel):
    amount: Any = Field(..., description="New daily contribution amount")


class VisibilityUpdate(BaseModel):
    visible: bool
