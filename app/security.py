from datetime import datetime, timedelta, timezone
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db
from app.schemas.token import TokenPayload as TokenPayloadSchema
from app import crud, models

logger = logging.getLogger(__name__)

MAGIC_TOKEN_TYPE = "magic"

# --- Password Hashing Setup ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Define the OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


# --- Password Verification ---
def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False  # passwordless (magic-link) account
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# --- Token Creation ---
def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM)


def create_login_token(user: models.User) -> str:
    return create_access_token({"sub": user.email, "user_id": user.id})


def create_magic_link_token(email: str) -> str:
    return create_access_token(
        {"sub": email, "type": MAGIC_TOKEN_TYPE},
        expires_delta=timedelta(minutes=settings.MAGIC_LINK_EXPIRE_MINUTES),
    )


def decode_access_token(token: str) -> dict:
    """Decodes the access token and returns the payload."""
    try:
        return jwt.decode(
            token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM]
        )
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        raise


# --- Current User Dependencies ---
async def get_current_user(
    token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)
) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = TokenPayloadSchema(**decode_access_token(token))
    except JWTError:
        raise credentials_exception
    # Magic-link tokens only buy a login token, never API access
    if token_data.user_id is None or token_data.type == MAGIC_TOKEN_TYPE:
        raise credentials_exception

    user = await crud.crud_user.get_user_by_id(db, user_id=token_data.user_id)
    if user is None:
        logger.warning(f"Token for unknown user {token_data.user_id}")
        raise credentials_exception
    return user


async def get_current_user_id(current_user: models.User = Depends(get_current_user)) -> str:
    """The authenticated caller's id, trusted as-is by the services."""
    return current_user.id
