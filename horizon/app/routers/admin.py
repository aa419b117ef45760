"""
# `app/routers/admin.py` - Member administration

Every endpoint depends on `require_admin`; members get 403 with
`redirect_to: /dashboard`, anonymous callers 401 with `redirect_to: /login`.

| Method | Path                                        | Action |
|--------|---------------------------------------------|--------|
| GET    | `/admin/dashboard/stats`                    | member count, group savings, this month, 20 recent |
| GET    | `/admin/members`                            | members with totals |
| GET    | `/admin/members/{user_id}`                  | profile, contributions, adjustments, balance |
| POST   | `/admin/members/visibility`                 | show/hide every member balance |
| POST   | `/admin/members/{user_id}/visibility`       | toggle one member |
| POST   | `/admin/members/{user_id}/adjustments`      | add/deduct with optional reason (+ SMS) |
| PUT    | `/admin/members/{user_id}/daily-amount`     | set daily contribution amount |
| POST   | `/admin/members/{user_id}/contributions`    | record a contribution for any date |
| POST   | `/admin/members/{user_id}/password`         | reset the member's password |
| DELETE | `/admin/contributions/{contribution_id}`    | remove a contribution |
"""
from typing import List

from fastapi import APIRouter, Depends, status

from horizon.app.core.security import get_data_service, require_admin
from horizon.app.integrations.remote import RemoteDataService
from horizon.app.schemas.ledger import (
    AdjustmentCreate,
    AdminContributionCreate,
    BalanceAdjustment,
    Contribution,
    DashboardStats,
    MemberDetail,
)
from horizon.app.schemas.member import DailyAmountUpdate, MemberSummary, PasswordReset, VisibilityUpdate
from horizon.app.schemas.principal import Principal
from horizon.app.services import contributions, members

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard/stats", response_model=DashboardStats)
async def dashboard_stats(service: RemoteDataService = Depends(get_data_service)):
    return await members.dashboard_stats(service)


@router.get("/members", response_model=List[MemberSummary])
async def list_members(service: RemoteDataService = Depends(get_data_service)):
    return await members.list_members(service)


@router.post("/members/visibility")
async def set_all_visibility(body: VisibilityUpdate, service: RemoteDataService = Depends(get_data_service)):
    updated = await members.set_all_visibility(service, body.visible)
    return {"updated": updated, "balance_visible": body.visible}


@router.get("/members/{user_id}", response_model=MemberDetail)
async def member_detail(user_id: str, service: RemoteDataService = Depends(get_data_service)):
    return await members.member_detail(service, user_id)


@router.post("/members/{user_id}/visibility")
async def toggle_visibility(user_id: str, service: RemoteDataService = Depends(get_data_service)):
    visible = await members.toggle_visibility(service, user_id)
    return {"user_id": user_id, "balance_visible": visible}


@router.post(
    "/members/{user_id}/adjustments",
    response_model=BalanceAdjustment,
    status_code=status.HTTP_201_CREATED,
)
async def adjust_balance(
    user_id: str,
    body: AdjustmentCreate,
    admin: Principal = Depends(require_admin),
    service: RemoteDataService = Depends(get_data_service),
):
    return await members.adjust_balance(
        service, admin.uid, user_id, body.adjustment_type, body.amount, body.reason
    )


@router.put("/members/{user_id}/daily-amount")
async def set_daily_amount(
    user_id: str,
    body: DailyAmountUpdate,
    service: RemoteDataService = Depends(get_data_service),
):
    amount = await members.set_daily_amount(service, user_id, body.amount)
    return {"user_id": user_id, "daily_contribution_amount": amount}


@router.post(
    "/members/{user_id}/contributions",
    response_model=Contribution,
    status_code=status.HTTP_201_CREATED,
)
async def add_contribution(
    user_id: str,
    body: AdminContributionCreate,
    service: RemoteDataService = Depends(get_data_service),
):
    await members.get_profile(service, user_id)
    return await contributions.admin_add(service, user_id, body.amount, body.contribution_date, body.notes)


@router.post("/members/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    user_id: str,
    body: PasswordReset,
    service: RemoteDataService = Depends(get_data_service),
):
    await members.reset_password(service, user_id, body.new_password)


@router.delete("/contributions/{contribution_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contribution(contribution_id: str, service: RemoteDataService = Depends(get_data_service)):
    await contributions.delete(service, contribution_id)
