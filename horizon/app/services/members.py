"""
Member administration: listings with derived stats, balance visibility,
balance adjustments, daily amounts, password resets and the dashboard totals.

Admin principals have profiles too; they are excluded from every member
listing and from the group totals.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Set

from horizon.app.core.errors import NOT_FOUND, QueryError
from horizon.app.core.validation import (
    require_valid,
    validate_amount,
    validate_password,
)
from horizon.app.integrations.remote import (
    BALANCE_ADJUSTMENTS,
    CONTRIBUTIONS,
    PROFILES,
    USER_ROLES,
    Increment,
    RemoteDataService,
    Row,
)
from horizon.app.schemas.principal import ADMIN_ROLE
from horizon.app.services import balance, notifications
from horizon.app.services.contributions import missed_days, this_month

logger = logging.getLogger("horizon.members")

RECENT_LIMIT = 20


async def admin_ids(service: RemoteDataService) -> Set[str]:
    rows = await service.query_rows(USER_ROLES, {"role": ADMIN_ROLE})
    return {r["user_id"] for r in rows}


async def get_profile(service: RemoteDataService, user_id: str) -> Row:
    profile = await service.maybe_single(PROFILES, {"user_id": user_id})
    if profile is None:
        raise QueryError(f"Member {user_id} not found", NOT_FOUND)
    return profile


def _by_user(rows: List[Row]) -> Dict[str, List[Row]]:
    grouped: Dict[str, List[Row]] = {}
    for row in rows:
        grouped.setdefault(row.get("user_id"), []).append(row)
    return grouped


async def list_members(service: RemoteDataService) -> List[Dict[str, Any]]:
    """Non-admin profiles with contribution totals and effective balance."""
    profiles, contributions, adjustments, admins = await asyncio.gather(
        service.query_rows(PROFILES, order_by="full_name"),
        service.query_rows(CONTRIBUTIONS),
        service.query_rows(BALANCE_ADJUSTMENTS),
        admin_ids(service),
    )
    contribs_by_user = _by_user(contributions)
    adjustments_by_user = _by_user(adjustments)

    members = []
    for profile in profiles:
        if profile["user_id"] in admins:
            continue
        mine = contribs_by_user.get(profile["user_id"], [])
        members.append({
            **profile,
            "total_contributions": balance.total_contributions(mine),
            "contribution_count": len(mine),
            "effective_balance": balance.effective_balance(
                mine, adjustments_by_user.get(profile["user_id"], [])
            ),
        })
    return members


async def member_detail(service: RemoteDataService, user_id: str, *, today: Optional[date] = None) -> Dict[str, Any]:
    profile = await get_profile(service, user_id)
    contributions, adjustments = await asyncio.gather(
        service.query_rows(CONTRIBUTIONS, {"user_id": user_id}, order_by="contribution_date", descending=True),
        service.query_rows(BALANCE_ADJUSTMENTS, {"user_id": user_id}, order_by="created_at", descending=True),
    )
    return {
        "profile": profile,
        "contributions": contributions,
        "adjustments": adjustments,
        "total_contributions": balance.total_contributions(contributions),
        "effective_balance": balance.effective_balance(contributions, adjustments),
        "missed_days": missed_days(contributions, today),
    }


async def toggle_visibility(service: RemoteDataService, user_id: str) -> bool:
    profile = await get_profile(service, user_id)
    visible = not profile.get("balance_visible", True)
    await service.update_rows(PROFILES, {"user_id": user_id}, {"balance_visible": visible})
    return visible


async def set_all_visibility(service: RemoteDataService, visible: bool) -> int:
    """Apply `visible` to every non-admin profile; returns the number updated."""
    profiles, admins = await asyncio.gather(service.query_rows(PROFILES), admin_ids(service))
    updated = 0
    for profile in profiles:
        if profile["user_id"] in admins:
            continue
        updated += await service.update_rows(PROFILES, {"user_id": profile["user_id"]}, {"balance_visible": visible})
    logger.info("Balance visibility set to %s for %d members", visible, updated)
    return updated


async def adjust_balance(
    service: RemoteDataService,
    admin_id: str,
    user_id: str,
    adjustment_type: str,
    amount: Any,
    reason: Optional[str] = None,
) -> Row:
    """Record a signed adjustment and keep the profile's cumulative mirror in step."""
    values = require_valid({"amount": validate_amount(amount)})
    magnitude = values["amount"]
    signed = magnitude if adjustment_type == balance.ADD else -magnitude

    profile = await get_profile(service, user_id)
    [row] = await service.insert_rows(BALANCE_ADJUSTMENTS, [{
        "user_id": user_id,
        "admin_id": admin_id,
        "amount": signed,
        "adjustment_type": adjustment_type,
        "reason": reason or None,
        "created_at": datetime.now(timezone.utc),
    }])
    await service.update_rows(PROFILES, {"user_id": user_id}, {"balance_adjustment": Increment(signed)})
    logger.info("Balance of %s adjusted by %s (%s)", user_id, signed, adjustment_type)

    await notifications.send_balance_adjustment(
        service, user_id, profile.get("phone_number"), magnitude, adjustment_type,
        profile.get("full_name") or "Member",
    )
    return row


async def set_daily_amount(service: RemoteDataService, user_id: str, amount: Any) -> float:
    values = require_valid({"amount": validate_amount(amount)})
    await get_profile(service, user_id)
    await service.update_rows(PROFILES, {"user_id": user_id}, {"daily_contribution_amount": values["amount"]})
    return values["amount"]


async def reset_password(service: RemoteDataService, user_id: str, new_password: str) -> None:
    values = require_valid({"new_password": validate_password(new_password)})
    await service.update_password(user_id, values["new_password"])
    logger.info("Password reset for %s", user_id)


async def dashboard_stats(service: RemoteDataService, *, today: Optional[date] = None) -> Dict[str, Any]:
    members = await list_members(service)
    contributions = await service.query_rows(CONTRIBUTIONS, order_by="contribution_date", descending=True)
    names = {m["user_id"]: m.get("full_name") for m in members}
    member_contributions = [c for c in contributions if c.get("user_id") in names]

    month = this_month(member_contributions, today)
    recent = [
        {**c, "full_name": names.get(c["user_id"]) or "Unknown"}
        for c in member_contributions[:RECENT_LIMIT]
    ]
    return {
        "members_count": len(members),
        "total_group_savings": sum((m["effective_balance"] for m in members), 0.0),
        "this_month_total": balance.total_contributions(month),
        "this_month_count": len(month),
        "recent_contributions": recent,
    }
