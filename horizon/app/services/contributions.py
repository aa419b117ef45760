"""
Contribution recording.

Members record one contribution per calendar day, either for today or for a
past day they missed. The duplicate check runs against the member's fetched
rows first; the `(user_id, contribution_date)` storage key then rejects a
concurrent second insert for the same day.
Admins may record a contribution for any date without that constraint.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from horizon.app.config import settings
from horizon.app.core.errors import NOT_FOUND, QueryError, ValidationError
from horizon.app.core.validation import require_valid, validate_amount, validate_past_or_today
from horizon.app.integrations.remote import CONTRIBUTIONS, PROFILES, RemoteDataService, Row
from horizon.app.services import notifications

logger = logging.getLogger("horizon.contributions")

COMPLETED = "completed"
SELF_SERVICE_KEY = ("user_id", "contribution_date")


def parse_day(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def daily_amount(profile: Optional[Mapping[str, Any]]) -> float:
    amount = (profile or {}).get("daily_contribution_amount")
    return float(amount) if amount else settings.default_daily_contribution


def has_contribution_on(contributions: Iterable[Mapping[str, Any]], day: date) -> bool:
    return any(parse_day(c["contribution_date"]) == day for c in contributions)


def missed_days(contributions: List[Mapping[str, Any]], today: Optional[date] = None) -> int:
    """Days between the first contribution and yesterday that have no contribution."""
    if not contributions:
        return 0
    today = today or date.today()
    yesterday = today - timedelta(days=1)
    earliest = min(parse_day(c["contribution_date"]) for c in contributions)
    total_days = max(0, (yesterday - earliest).days + 1)
    return max(0, total_days - len(contributions))


def this_month(contributions: Iterable[Mapping[str, Any]], today: Optional[date] = None) -> List[Mapping[str, Any]]:
    today = today or date.today()
    return [
        c for c in contributions
        if (d := parse_day(c["contribution_date"])).year == today.year and d.month == today.month
    ]


async def list_for_member(service: RemoteDataService, user_id: str) -> List[Row]:
    return await service.query_rows(
        CONTRIBUTIONS, {"user_id": user_id}, order_by="contribution_date", descending=True
    )


def _new_row(user_id: str, amount: float, day: date, notes: Optional[str] = None) -> Row:
    return {
        "user_id": user_id,
        "amount": amount,
        "contribution_date": day.isoformat(),
        "status": COMPLETED,
        "notes": notes,
        "created_at": datetime.now(timezone.utc),
    }


def _already_contributed(day: date) -> ValidationError:
    return ValidationError(
        f"You have already made a contribution for {day:%b %d, %Y}.",
        fields={"contribution_date": "Already contributed"},
    )


async def add_for_date(
    service: RemoteDataService,
    user_id: str,
    day: date,
    *,
    today: Optional[date] = None,
) -> Row:
    """Record the member's daily amount for `day` (today or earlier)."""
    today = today or date.today()
    require_valid({"contribution_date": validate_past_or_today(day, today)}, "Invalid date")

    existing = await list_for_member(service, user_id)
    if has_contribution_on(existing, day):
        raise _already_contributed(day)

    profile = await service.maybe_single(PROFILES, {"user_id": user_id})
    amount = daily_amount(profile)
    try:
        [row] = await service.insert_rows(
            CONTRIBUTIONS, [_new_row(user_id, amount, day)], unique_on=SELF_SERVICE_KEY
        )
    except QueryError as exc:
        if exc.is_unique_violation:
            raise _already_contributed(day) from exc
        raise
    logger.info("Contribution of %s recorded for %s on %s", amount, user_id, day)

    if profile:
        await notifications.send_contribution_success(
            service, user_id, profile.get("phone_number"), amount, profile.get("full_name") or "Member"
        )
    return row


async def add_today(service: RemoteDataService, user_id: str, *, today: Optional[date] = None) -> Row:
    today = today or date.today()
    return await add_for_date(service, user_id, today, today=today)


async def admin_add(
    service: RemoteDataService,
    user_id: str,
    amount: Any,
    day: date,
    notes: Optional[str] = None,
) -> Row:
    values = require_valid({"amount": validate_amount(amount)})
    [row] = await service.insert_rows(CONTRIBUTIONS, [_new_row(user_id, values["amount"], day, notes)])
    logger.info("Admin recorded %s for %s on %s", values["amount"], user_id, day)
    return row


async def delete(service: RemoteDataService, contribution_id: str) -> None:
    removed = await service.delete_rows(CONTRIBUTIONS, {"id": contribution_id})
    if not removed:
        raise QueryError("Contribution not found", NOT_FOUND)


def summarize(contributions: List[Mapping[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    return {
        "missed_days": missed_days(contributions, today),
        "this_month_count": len(this_month(contributions, today)),
    }
