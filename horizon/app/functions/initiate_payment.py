# app/functions/initiate_payment.py
"""
Pesapal payment initiation proxy.

Body: `{userId, amount, phoneNumber, userName}`.
Stores a `pending` row in `payment_transactions`, then posts a form-encoded
InitiatePayment request to Pesapal. Returns `{success, reference, message}` or
`{success: False, error}`.
"""
from __future__ import annotations

import json
import logging
import re
import secrets
import time
from typing import Any, Dict

import httpx

from horizon.app.config import settings
from horizon.app.core.errors import QueryError
from horizon.app.integrations.remote import PAYMENT_TRANSACTIONS

logger = logging.getLogger("horizon.functions.payment")

INITIATE_PATH = "/api/merchants/InitiatePayment"


def format_phone_for_pesapal(phone: str) -> str:
    """Returns `254XXXXXXXXX`, or "" when the number is not Kenyan."""
    cleaned = re.sub(r"\D", "", phone or "")
    if cleaned.startswith("254"):
        return cleaned
    if cleaned.startswith("07") or cleaned.startswith("01"):
        return "254" + cleaned[1:]
    if cleaned.startswith("7") or cleaned.startswith("1"):
        return "254" + cleaned
    return ""


def generate_merchant_reference(user_id: str) -> str:
    timestamp = int(time.time() * 1000)
    return f"HUG-{user_id[:8]}-{timestamp}-{secrets.token_hex(3)}".upper()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


def _failure(message: str) -> Dict[str, Any]:
    logger.error("Error in initiate-pesapal-payment: %s", message)
    return {"success": False, "error": message}


async def handle(body: Dict[str, Any], service) -> Dict[str, Any]:
    if not settings.pesapal_configured:
        return _failure("Pesapal credentials not configured")

    user_id = body.get("userId")
    amount = body.get("amount")
    phone_number = body.get("phoneNumber")
    user_name = body.get("userName")
    if not user_id or not amount or not phone_number or not user_name:
        return _failure("Missing required fields")

    formatted_phone = format_phone_for_pesapal(phone_number)
    if len(formatted_phone) != 12:
        return _failure("Invalid phone number format")

    reference = generate_merchant_reference(user_id)
    try:
        await service.insert_rows(PAYMENT_TRANSACTIONS, [{
            "user_id": user_id,
            "merchant_reference": reference,
            "amount": amount,
            "phone_number": formatted_phone,
            "status": "pending",
        }])
    except QueryError as exc:
        return _failure(f"Failed to create payment record: {exc.message}")

    form = {
        "consumer_key": settings.pesapal_consumer_key,
        "consumer_secret": settings.pesapal_consumer_secret,
        "amount": str(amount),
        "currency": settings.currency,
        "description": f"Daily contribution from {user_name}",
        "reference": reference,
        "first_name": user_name,
        "phone_number": formatted_phone,
        "email": f"user-{user_id}@{settings.phone_email_domain}",
        "pesapal_notification_url": f"{settings.public_base_url}/payments/pesapal-callback",
        "transaction_type": "PAYMENT",
    }
    async with _client() as client:
        resp = await client.post(settings.pesapal_base_url + INITIATE_PATH, data=form)

    logger.info("Pesapal response status: %s", resp.status_code)
    if resp.status_code >= 400:
        return _failure(f"Pesapal API error: {resp.status_code} - {resp.text}")

    try:
        result = json.loads(resp.text)
    except ValueError:
        # Non-JSON body on a 2xx response counts as accepted
        result = {"status": "200", "message": resp.text}
    if not isinstance(result, dict):
        result = {"status": "200", "message": resp.text}

    if str(result.get("status")) != "200":
        return _failure(f"Pesapal error: {result.get('error') or 'Unknown error'}")

    return {"success": True, "reference": reference, "message": "Payment initiated successfully"}
