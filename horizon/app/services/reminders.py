# app/services/reminders.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from horizon.app.integrations.remote import CONTRIBUTIONS, PROFILES, RemoteDataService
from horizon.app.services import notifications
from horizon.app.services.contributions import missed_days
from horizon.app.services.members import list_members

logger = logging.getLogger("horizon.reminders")

JOB_ID = "missed-day-reminders"


async def send_missed_day_reminders_once(service: RemoteDataService, *, today: Optional[date] = None) -> int:
    """
    Members with a phone number and at least one missed day get one SMS.
    Returns the number of reminders that went out.
    """
    members = await list_members(service)
    contributions = await service.query_rows(CONTRIBUTIONS)
    sent = 0
    for member in members:
        phone = member.get("phone_number")
        if not phone:
            continue
        mine = [c for c in contributions if c.get("user_id") == member["user_id"]]
        missed = missed_days(mine, today)
        if missed <= 0:
            continue
        await service.update_rows(
            PROFILES, {"user_id": member["user_id"]}, {"missed_contributions": missed}
        )
        if await notifications.send_missed_day_reminder(
            service, member["user_id"], phone, missed, member.get("full_name") or "Member"
        ):
            sent += 1
    logger.info("Missed-day reminders sent: %d", sent)
    return sent
