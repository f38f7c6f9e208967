import logging
from typing import Any, Iterable

import socketio
from app.core.config import settings

logger = logging.getLogger(__name__)

# Configure allowed origins for Socket.IO to match FastAPI CORS settings
# This ensures that only trusted frontends can connect.
sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins=settings.ALLOWED_ORIGINS
)


async def emit_to_users(event: str, data: Any, user_ids: Iterable[str]) -> None:
    """Push an event to each user's personal room.

    Called after the triggering write has committed, so a delivery failure is
    logged and does not change the caller's result.
    """
    for user_id in dict.fromkeys(user_ids):
        try:
            await sio.emit(event, data=data, room=str(user_id))
        except Exception as e:
            logger.error(f"Failed to emit '{event}' to user {user_id}: {e}", exc_info=True)
