from sqlalchemy import select, or_, and_, delete
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import timedelta
from typing import List, Optional
import logging

from app.models.message import Message
from app.core.config import settings
from app.utils.time import utcnow, as_utc

logger = logging.getLogger(__name__)


def _between(user1_id: str, user2_id: str):
    return or_(
        and_(Message.sender_id == user1_id, Message.recipient_id == user2_id),
        and_(Message.sender_id == user2_id, Message.recipient_id == user1_id),
    )


async def create_message(db: AsyncSession, *, sender_id: str, recipient_id: str, text: str) -> Message:
    db_obj = Message(sender_id=sender_id, recipient_id=recipient_id, text=text)
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def get_message_by_id(db: AsyncSession, *, message_id: int) -> Optional[Message]:
    result = await db.execute(select(Message).where(Message.id == message_id))
    return result.scalars().first()


async def get_messages_between(
    db: AsyncSession, *, user1_id: str, user2_id: str, skip: int = 0, limit: int = 100
) -> List[Message]:
    """Non-deleted messages exchanged by two users, oldest first."""
    statement = (
        select(Message)
        .where(_between(user1_id, user2_id), Message.is_deleted.is_(False))
        .order_by(Message.created_at.asc(), Message.id.asc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(statement)
    return list(result.scalars().all())


async def delete_messages_between(db: AsyncSession, *, user1_id: str, user2_id: str) -> int:
    """Hard-delete every message between two users, both directions. Does not commit."""
    result = await db.execute(delete(Message).where(_between(user1_id, user2_id)))
    return result.rowcount or 0


def _within_edit_window(message: Message) -> bool:
    deadline = as_utc(message.created_at) + timedelta(seconds=settings.MESSAGE_EDIT_DELETE_WINDOW_SECONDS)
    return utcnow() <= deadline


async def update_message(
    db: AsyncSession, *, message_id: int, current_user_id: str, new_text: str
) -> Optional[Message]:
    """Edits a message if the user is the sender and it's within the edit window."""
    message = await get_message_by_id(db, message_id=message_id)
    if not message or message.sender_id != current_user_id or message.is_deleted:
        return None
    if not _within_edit_window(message):
        return None  # Past editable window

    message.text = new_text
    message.edited_at = utcnow()
    db.add(message)
    await db.commit()
    await db.refresh(message)
    return message


async def soft_delete_message(db: AsyncSession, *, message_id: int, current_user_id: str) -> Optional[Message]:
    """Soft deletes a message if the user is the sender and it's within the delete window."""
    message = await get_message_by_id(db, message_id=message_id)
    if not message or message.sender_id != current_user_id:
        return None
    if message.is_deleted:
        return message  # Already deleted, return current state
    if not _within_edit_window(message):
        return None  # Past deletable window

    message.is_deleted = True
    db.add(message)
    await db.commit()
    await db.refresh(message)
    return message
