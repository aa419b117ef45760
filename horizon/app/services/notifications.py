"""
SMS notifications.

Every sender is best effort: it returns True/False, logs failures, and never
raises, so the action that triggered it (a contribution, a message, an
adjustment) is never rolled back because an SMS could not go out.
"""
import logging
from typing import Optional

from horizon.app.config import settings
from horizon.app.core.errors import InvokeError
from horizon.app.integrations.remote import SEND_SMS, RemoteDataService

logger = logging.getLogger("horizon.notifications")

MISSED_CONTRIBUTION = "missed_contribution"
SUCCESSFUL_CONTRIBUTION = "successful_contribution"
ADMIN_NOTIFICATION = "admin_notification"
BALANCE_ADJUSTMENT = "balance_adjustment"


def format_amount(amount: float) -> str:
    """1500.0 -> '1,500'; 1500.5 -> '1,500.5'."""
    text = f"{amount:,.2f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def _days(n: int) -> str:
    return f"{n} day{'s' if n > 1 else ''}"


def missed_day_text(user_name: str, missed_days: int) -> str:
    return (
        f"Hi {user_name}! You have {_days(missed_days)} to catch up on. "
        f"Click on any past date in your calendar on the {settings.project_name} app to add a contribution. "
        "No penalties - contribute at your own pace!"
    )


def contribution_success_text(user_name: str, amount: float) -> str:
    return (
        f"Great job {user_name}! Your {settings.currency} {format_amount(amount)} contribution has been recorded. "
        f"Keep saving with {settings.project_name}!"
    )


def admin_notification_text(user_name: str, message_text: str) -> str:
    return f"Hello {user_name}, you have a message from {settings.project_name} Admin: {message_text}"


def balance_adjustment_text(user_name: str, amount: float, adjustment_type: str) -> str:
    action = "added to" if adjustment_type == "add" else "deducted from"
    return (
        f"Hello {user_name}, {settings.currency} {format_amount(abs(amount))} has been {action} "
        f"your {settings.project_name} balance. Check your dashboard for details."
    )


async def send_sms(
    service: RemoteDataService,
    phone_number: Optional[str],
    message: str,
    *,
    user_id: Optional[str] = None,
    message_type: str = ADMIN_NOTIFICATION,
) -> bool:
    if not phone_number:
        logger.info("No phone number provided, skipping SMS")
        return False

    body = {"to": phone_number, "message": message}
    if user_id:
        body.update({"userId": user_id, "messageType": message_type})
    try:
        data = await service.invoke_function(SEND_SMS, body)
    except InvokeError as exc:
        logger.error("SMS function error: %s", exc.message)
        return False
    except Exception:
        logger.exception("Error sending SMS")
        return False

    if data and data.get("success"):
        return True
    logger.error("SMS sending failed: %s", (data or {}).get("error"))
    return False


async def send_missed_day_reminder(service, user_id: str, phone_number: str, missed_days: int, user_name: str) -> bool:
    return await send_sms(
        service, phone_number, missed_day_text(user_name, missed_days),
        user_id=user_id, message_type=MISSED_CONTRIBUTION,
    )


async def send_contribution_success(service, user_id: str, phone_number: str, amount: float, user_name: str) -> bool:
    return await send_sms(
        service, phone_number, contribution_success_text(user_name, amount),
        user_id=user_id, message_type=SUCCESSFUL_CONTRIBUTION,
    )


async def send_admin_notification(service, user_id: str, phone_number: str, message_text: str, user_name: str) -> bool:
    return await send_sms(
        service, phone_number, admin_notification_text(user_name, message_text),
        user_id=user_id, message_type=ADMIN_NOTIFICATION,
    )


async def send_balance_adjustment(
    service, user_id: str, phone_number: str, amount: float, adjustment_type: str, user_name: str
) -> bool:
    return await send_sms(
        service, phone_number, balance_adjustment_text(user_name, amount, adjustment_type),
        user_id=user_id, message_type=BALANCE_ADJUSTMENT,
    )
