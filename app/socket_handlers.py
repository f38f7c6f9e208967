import socketio
import logging
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, security
from app.db.session import AsyncSessionLocal
from app.schemas.token import TokenPayload

logger = logging.getLogger(__name__)

# In-memory mapping: {sid: user_id}. Only valid within a single process.
sid_user_map: dict[str, str] = {}


async def _get_user_from_token(token: str, db: AsyncSession) -> str | None:
    """Helper to validate a login token and get the user id."""
    if not token:
        return None
    try:
        token_data = TokenPayload(**security.decode_access_token(token))
    except JWTError:
        return None
    if token_data.user_id is None or token_data.type == security.MAGIC_TOKEN_TYPE:
        logger.warning("Token payload missing user_id or not a login token")
        return None

    user = await crud.crud_user.get_user_by_id(db, user_id=token_data.user_id)
    if user is None:
        logger.warning(f"User not found for ID: {token_data.user_id}")
        return None
    return user.id


def register_socketio_handlers(sio: socketio.AsyncServer):
    @sio.event
    async def connect(sid, environ, auth):
        """Authenticates the client and joins it to its user room."""
        token = auth.get('token') if isinstance(auth, dict) else None
        if not token:
            logger.warning(f"Connection refused for {sid}: No token provided.")
            return False

        async with AsyncSessionLocal() as db:
            user_id = await _get_user_from_token(token, db)

        if not user_id:
            logger.warning(f"Connection refused for {sid}: Token is invalid or user not found.")
            return False

        sid_user_map[sid] = user_id
        await sio.enter_room(sid, str(user_id))
        logger.info(f"Sid {sid} authenticated as user {user_id} and joined its room")

    @sio.event
    async def disconnect(sid):
        user_id = sid_user_map.pop(sid, None)
        if user_id:
            logger.info(f"Sid {sid} (user {user_id}) disconnected")
        else:
            logger.warning(f"Sid {sid} disconnected but had no user mapping.")
