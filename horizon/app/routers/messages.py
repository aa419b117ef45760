# app/routers/messages.py
from typing import List

from fastapi import APIRouter, Depends, status

from horizon.app.core.security import get_data_service, require_admin
from horizon.app.integrations.remote import RemoteDataService
from horizon.app.schemas.ledger import AdminMessage, BroadcastCreate, MessageCreate, MessageUpdate
from horizon.app.schemas.principal import Principal
from horizon.app.services import messages

router = APIRouter(prefix="/admin/messages", tags=["Messages"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[AdminMessage])
async def list_messages(service: RemoteDataService = Depends(get_data_service)):
    return await messages.list_all(service)


@router.post("", response_model=AdminMessage, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: MessageCreate,
    admin: Principal = Depends(require_admin),
    service: RemoteDataService = Depends(get_data_service),
):
    """Stores the message and texts the member when they have a phone number."""
    return await messages.send(service, admin.uid, body.user_id, body.message, body.message_type)


@router.post("/broadcast", status_code=status.HTTP_201_CREATED)
async def broadcast(
    body: BroadcastCreate,
    admin: Principal = Depends(require_admin),
    service: RemoteDataService = Depends(get_data_service),
):
    sent = await messages.broadcast(service, admin.uid, body.message, body.message_type)
    return {"sent": sent}


@router.put("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_message(
    message_id: str,
    body: MessageUpdate,
    service: RemoteDataService = Depends(get_data_service),
):
    await messages.update(service, message_id, body.message, body.message_type)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(message_id: str, service: RemoteDataService = Depends(get_data_service)):
    await messages.delete(service, message_id)
