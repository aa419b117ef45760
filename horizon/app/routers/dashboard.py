"""
# `app/routers/dashboard.py` - Member self-service

All endpoints require a resolved member session (`require_member`); admins get
403 with `redirect_to: /admin/dashboard`.

- `GET  /dashboard`: profile, contributions, inbox, balance (only when visible), missed days.
- `POST /dashboard/contributions`: today's contribution at the member's daily amount.
- `POST /dashboard/contributions/{day}`: back-fill a past day (`YYYY-MM-DD`).
- `POST /dashboard/messages/{message_id}/read`
- `POST /dashboard/payments`: Pesapal mobile payment.
"""
import asyncio
from datetime import date

from fastapi import APIRouter, Depends, status

from horizon.app.core.security import get_data_service, require_member
from horizon.app.integrations.remote import BALANCE_ADJUSTMENTS, RemoteDataService
from horizon.app.schemas.ledger import Contribution, MemberDashboard, PaymentRequest, PaymentResponse
from horizon.app.schemas.principal import Principal
from horizon.app.services import balance, contributions, messages, payments
from horizon.app.services.members import get_profile

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=MemberDashboard)
async def get_dashboard(
    principal: Principal = Depends(require_member),
    service: RemoteDataService = Depends(get_data_service),
):
    profile, rows, inbox, adjustments = await asyncio.gather(
        get_profile(service, principal.uid),
        contributions.list_for_member(service, principal.uid),
        messages.list_for_member(service, principal.uid),
        service.query_rows(BALANCE_ADJUSTMENTS, {"user_id": principal.uid}),
    )
    today = date.today()
    visible = profile.get("balance_visible", True)
    return MemberDashboard(
        profile=profile,
        contributions=rows,
        messages=inbox,
        unread_messages=sum(1 for m in inbox if not m.get("is_read")),
        effective_balance=balance.effective_balance(rows, adjustments) if visible else None,
        daily_amount=contributions.daily_amount(profile),
        contributed_today=contributions.has_contribution_on(rows, today),
        **contributions.summarize(rows, today),
    )


@router.post("/contributions", response_model=Contribution, status_code=status.HTTP_201_CREATED)
async def contribute_today(
    principal: Principal = Depends(require_member),
    service: RemoteDataService = Depends(get_data_service),
):
    return await contributions.add_today(service, principal.uid)


@router.post("/contributions/{day}", response_model=Contribution, status_code=status.HTTP_201_CREATED)
async def contribute_for_day(
    day: date,
    principal: Principal = Depends(require_member),
    service: RemoteDataService = Depends(get_data_service),
):
    return await contributions.add_for_date(service, principal.uid, day)


@router.post("/messages/{message_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_message_read(
    message_id: str,
    principal: Principal = Depends(require_member),
    service: RemoteDataService = Depends(get_data_service),
):
    await messages.mark_read(service, principal.uid, message_id)


@router.post("/payments", response_model=PaymentResponse)
async def start_payment(
    body: PaymentRequest,
    principal: Principal = Depends(require_member),
    service: RemoteDataService = Depends(get_data_service),
):
    result = await payments.initiate(service, principal.uid, body.amount)
    return PaymentResponse(success=True, reference=result.get("reference"), message=result.get("message"))
