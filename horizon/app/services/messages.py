"""
Admin message center and the member inbox.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from horizon.app.core.errors import NOT_FOUND, QueryError, ValidationError
from horizon.app.core.validation import require_valid, validate_required
from horizon.app.integrations.remote import ADMIN_MESSAGES, PROFILES, RemoteDataService, Row
from horizon.app.services import notifications
from horizon.app.services.members import list_members

logger = logging.getLogger("horizon.messages")


def _message_text(raw: Optional[str]) -> str:
    return require_valid({"message": validate_required(raw, "message")})["message"]


def _new_row(admin_id: str, user_id: str, message: str, message_type: str) -> Row:
    return {
        "user_id": user_id,
        "admin_id": admin_id,
        "message": message,
        "message_type": message_type,
        "is_read": False,
        "created_at": datetime.now(timezone.utc),
    }


async def list_all(service: RemoteDataService) -> List[Dict[str, Any]]:
    messages = await service.query_rows(ADMIN_MESSAGES, order_by="created_at", descending=True)
    profiles = await service.query_rows(PROFILES)
    names = {p["user_id"]: p.get("full_name") for p in profiles}
    return [{**m, "recipient_name": names.get(m["user_id"]) or "Unknown"} for m in messages]


async def list_for_member(service: RemoteDataService, user_id: str) -> List[Row]:
    return await service.query_rows(
        ADMIN_MESSAGES, {"user_id": user_id}, order_by="created_at", descending=True
    )


async def send(service: RemoteDataService, admin_id: str, user_id: str, message: str, message_type: str) -> Row:
    text = _message_text(message)
    profile = await service.maybe_single(PROFILES, {"user_id": user_id})
    if profile is None:
        raise QueryError(f"Member {user_id} not found", NOT_FOUND)

    [row] = await service.insert_rows(ADMIN_MESSAGES, [_new_row(admin_id, user_id, text, message_type)])
    if profile.get("phone_number"):
        await notifications.send_admin_notification(
            service, user_id, profile["phone_number"], text, profile.get("full_name") or "Member"
        )
    return row


async def update(service: RemoteDataService, message_id: str, message: str, message_type: str) -> None:
    text = _message_text(message)
    touched = await service.update_rows(
        ADMIN_MESSAGES, {"id": message_id}, {"message": text, "message_type": message_type}
    )
    if not touched:
        raise QueryError("Message not found", NOT_FOUND)


async def delete(service: RemoteDataService, message_id: str) -> None:
    if not await service.delete_rows(ADMIN_MESSAGES, {"id": message_id}):
        raise QueryError("Message not found", NOT_FOUND)


async def broadcast(service: RemoteDataService, admin_id: str, message: str, message_type: str) -> int:
    """One message row per member; no SMS is sent for broadcasts."""
    text = _message_text(message)
    members = await list_members(service)
    if not members:
        raise ValidationError("There are no members to message")
    rows = [_new_row(admin_id, m["user_id"], text, message_type) for m in members]
    inserted = await service.insert_rows(ADMIN_MESSAGES, rows)
    logger.info("Broadcast sent to %d members", len(inserted))
    return len(inserted)


async def mark_read(service: RemoteDataService, user_id: str, message_id: str) -> None:
    """Members can only mark their own messages."""
    touched = await service.update_rows(
        ADMIN_MESSAGES, {"id": message_id, "user_id": user_id}, {"is_read": True}
    )
    if not touched:
        raise QueryError("Message not found", NOT_FOUND)
