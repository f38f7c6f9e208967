from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app import schemas, services
from app.db.session import get_db
from app.security import get_current_user_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{partner_id}", response_model=schemas.MessagesResponse)
async def get_conversation(
    partner_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Messages exchanged with partner, oldest first."""
    messages = await services.message_service.get_messages(
        db, user_id=user_id, partner_id=partner_id, skip=skip, limit=limit
    )
    return {"success": True, "messages": messages}


@router.post("/{partner_id}", response_model=schemas.MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    partner_id: str,
    message_in: schemas.MessageCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    message = await services.message_service.send_message(
        db, sender_id=user_id, recipient_id=partner_id, text=message_in.text
    )
    return {"success": True, "message": message}


@router.put("/item/{message_id}", response_model=schemas.MessageResponse)
async def edit_message(
    message_id: int,
    message_in: schemas.MessageUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    message = await services.message_service.edit_message(
        db, message_id=message_id, current_user_id=user_id, new_text=message_in.text
    )
    return {"success": True, "message": message}


@router.delete("/item/{message_id}", response_model=schemas.MessageResponse)
async def delete_message(
    message_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    message = await services.message_service.delete_message(
        db, message_id=message_id, current_user_id=user_id
    )
    return {"success": True, "message": message}
