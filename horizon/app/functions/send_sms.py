# app/functions/send_sms.py
"""
Twilio SMS proxy.

Body: `{to, message}` or `{phoneNumber, message, userId, messageType}`.
Returns `{success, message_sid, status}` or `{success: False, error}`.
When a `userId` is given, a successful send is also recorded in `sms_logs`.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict

import httpx

from horizon.app.config import settings
from horizon.app.core.errors import QueryError
from horizon.app.integrations.remote import SMS_LOGS

logger = logging.getLogger("horizon.functions.sms")

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def format_phone_number(phone_number: str) -> str:
    """Normalizes to E.164, defaulting to Kenya (+254)."""
    cleaned = re.sub(r"\D", "", phone_number or "")
    if cleaned.startswith("254"):
        return "+" + cleaned
    if cleaned.startswith("0") and len(cleaned) == 10:
        return "+254" + cleaned[1:]
    if len(cleaned) == 9:
        return "+254" + cleaned
    return "+" + cleaned


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


async def _log_sms(service, body: Dict[str, Any], to: str, message: str) -> None:
    try:
        await service.insert_rows(SMS_LOGS, [{
            "user_id": body["userId"],
            "phone_number": to,
            "message": message,
            "message_type": body.get("messageType") or "admin_notification",
            "status": "sent",
        }])
    except QueryError as exc:
        logger.error("Failed to log SMS: %s", exc.message)


async def handle(body: Dict[str, Any], service) -> Dict[str, Any]:
    if not settings.twilio_configured:
        return {"success": False, "error": "Twilio credentials not configured"}

    to = body.get("to") or body.get("phoneNumber")
    message = body.get("message")
    if not to or not message:
        return {"success": False, "error": "Missing required fields: to and message"}

    form = {
        "To": format_phone_number(to),
        "From": settings.twilio_phone_number,
        "Body": message,
    }
    async with _client() as client:
        resp = await client.post(
            TWILIO_MESSAGES_URL.format(sid=settings.twilio_account_sid),
            data=form,
            auth=(settings.twilio_account_sid, settings.twilio_auth_token),
        )

    try:
        result = resp.json()
    except ValueError:
        result = {}
    if not isinstance(result, dict):
        result = {}
    if resp.status_code >= 400:
        logger.error("Twilio API error: %s %s", resp.status_code, result or resp.text[:200])
        return {"success": False, "error": result.get("message") or "Failed to send SMS"}

    logger.info("SMS sent successfully: %s", result.get("sid"))
    if body.get("userId"):
        await _log_sms(service, body, to, message)
    return {"success": True, "message_sid": result.get("sid"), "status": result.get("status")}
