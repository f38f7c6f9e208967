import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models, schemas
from app.core.errors import InvalidOperation, NotFound
from app.socket_instance import emit_to_users

logger = logging.getLogger(__name__)


async def get_messages(
    db: AsyncSession, *, user_id: str, partner_id: str, skip: int = 0, limit: int = 100
) -> List[models.Message]:
    return await crud.crud_message.get_messages_between(
        db, user1_id=user_id, user2_id=partner_id, skip=skip, limit=limit
    )


async def send_message(
    db: AsyncSession, *, sender_id: str, recipient_id: str, text: str
) -> models.Message:
    """Store a message between matched users and push it to the recipient."""
    text = text.strip()
    if not text:
        raise InvalidOperation("text is required")
    if sender_id == recipient_id:
        raise InvalidOperation("Cannot message yourself.")
    if not await crud.crud_user.get_user_by_id(db, user_id=recipient_id):
        raise NotFound("Recipient not found.")
    if not await crud.crud_discovery.get_match_between(db, user1_id=sender_id, user2_id=recipient_id):
        logger.warning(f"User {sender_id} tried to message unmatched user {recipient_id}")
        raise InvalidOperation("You can only message users you are matched with.")

    message = await crud.crud_message.create_message(
        db, sender_id=sender_id, recipient_id=recipient_id, text=text
    )
    payload = schemas.MessageSchema.model_validate(message).model_dump(mode="json")
    await emit_to_users("new_message", payload, [recipient_id])
    return message


async def edit_message(
    db: AsyncSession, *, message_id: int, current_user_id: str, new_text: str
) -> models.Message:
    new_text = new_text.strip()
    if not new_text:
        raise InvalidOperation("text is required")
    updated = await crud.crud_message.update_message(
        db, message_id=message_id, current_user_id=current_user_id, new_text=new_text
    )
    if not updated:
        raise InvalidOperation("Message cannot be edited.")
    payload = schemas.MessageSchema.model_validate(updated).model_dump(mode="json")
    await emit_to_users("message_updated", payload, [updated.sender_id, updated.recipient_id])
    return updated


async def delete_message(db: AsyncSession, *, message_id: int, current_user_id: str) -> models.Message:
    deleted = await crud.crud_message.soft_delete_message(
        db, message_id=message_id, current_user_id=current_user_id
    )
    if not deleted:
        raise InvalidOperation("Message cannot be deleted.")
    payload = schemas.MessageSchema.model_validate(deleted).model_dump(mode="json")
    await emit_to_users("message_deleted", payload, [deleted.sender_id, deleted.recipient_id])
    return deleted
