# app/schemas/ledger.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from horizon.app.schemas.member import MemberProfile

AdjustmentType = Literal["add", "deduct"]
MessageType = Literal["info", "warning", "announcement"]


class _Base(BaseModel):
    model_config = ConfigDict(extra="allow")


# ---- contributions ---------------------------------------------------------

class Contribution(_Base):
    id: str
    user_id: str
    amount: float
    contribution_date: str = Field(..., description="YYYY-MM-DD")
    status: str = "completed"
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class AdminContributionCreate(BaseModel):
    amount: Any = Field(..., description="Amount to record")
    contribution_date: date
    notes: Optional[str] = None


class RecentContribution(Contribution):
    full_name: Optional[str] = None


# ---- balance adjustments ---------------------------------------------------

class BalanceAdjustment(_Base):
    id: str
    user_id: str
    admin_id: str
    amount: float = Field(..., description="Signed amount")
    adjustment_type: AdjustmentType
    reason: Optional[str] = None
    created_at: Optional[datetime] = None


class AdjustmentCreate(BaseModel):
    adjustment_type: AdjustmentType
    amount: Any = Field(..., description="Positive amount; the sign comes from adjustment_type")
    reason: Optional[str] = None


# ---- admin messages --------------------------------------------------------

class AdminMessage(_Base):
    id: str
    user_id: str
    admin_id: str
    message: str
    message_type: MessageType = "info"
    is_read: bool = False
    created_at: Optional[datetime] = None
    recipient_name: Optional[str] = None


class MessageCreate(BaseModel):
    user_id: str
    message: str
    message_type: MessageType = "info"


class MessageUpdate(BaseModel):
    message: str
    message_type: MessageType = "info"


class BroadcastCreate(BaseModel):
    message: str
    message_type: MessageType = "announcement"


# ---- payments --------------------------------------------------------------

class PaymentRequest(BaseModel):
    amount: Optional[Any] = Field(None, description="Defaults to the daily contribution amount")


class PaymentResponse(BaseModel):
    success: bool
    reference: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None


# ---- dashboards ------------------------------------------------------------

class MemberDashboard(BaseModel):
    profile: MemberProfile
    contributions: List[Contribution]
    messages: List[AdminMessage]
    unread_messages: int
    effective_balance: Optional[float] = Field(None, description="Hidden unless balance_visible")
    missed_days: int
    this_month_count: int
    daily_amount: float
    contributed_today: bool


class MemberDetail(BaseModel):
    profile: MemberProfile
    contributions: List[Contribution]
    adjustments: List[BalanceAdjustment]
    total_contributions: float
    effective_balance: float
    missed_days: int


class DashboardStats(BaseModel):
    members_count: int
    total_group_savings: float
    this_month_total: float
    this_month_count: int
    recent_contributions: List[RecentContribution]
