# app/services/payments.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from horizon.app.core.errors import InvokeError, ValidationError
from horizon.app.core.validation import require_valid, validate_amount
from horizon.app.integrations.remote import INITIATE_PAYMENT, RemoteDataService
from horizon.app.services.contributions import daily_amount
from horizon.app.services.members import get_profile

logger = logging.getLogger("horizon.payments")


async def initiate(service: RemoteDataService, user_id: str, amount: Optional[Any] = None) -> Dict[str, Any]:
    """Start a mobile payment for the member; defaults to their daily amount."""
    profile = await get_profile(service, user_id)
    if amount is None:
        amount = daily_amount(profile)
    values = require_valid({"amount": validate_amount(amount)})
    phone = profile.get("phone_number")
    if not phone:
        raise ValidationError("Add a phone number before paying", fields={"phone_number": "Missing"})

    result = await service.invoke_function(INITIATE_PAYMENT, {
        "userId": user_id,
        "amount": values["amount"],
        "phoneNumber": phone,
        "userName": profile.get("full_name") or "Member",
    })
    if not result.get("success"):
        raise InvokeError(result.get("error") or "Payment initiation failed")
    logger.info("Payment %s initiated for %s", result.get("reference"), user_id)
    return result
