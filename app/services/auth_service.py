import asyncio
import logging
from typing import Any, Dict, Tuple

import httpx
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models, schemas, security
from app.core.config import settings
from app.core.errors import Conflict, DiscoveryError, InvalidOperation
from app.utils.email import send_magic_link_email

logger = logging.getLogger(__name__)

FACEBOOK_TIMEOUT = httpx.Timeout(10.0, connect=5.0)


class InvalidCredentials(InvalidOperation):
    status_code = 401


class ProviderNotConfigured(DiscoveryError):
    status_code = 503


class ProviderUnavailable(DiscoveryError):
    """The identity provider could not be reached to check a token."""

    status_code = 502


async def register_user(db: AsyncSession, *, user_in: schemas.UserRegister) -> models.User:
    if await crud.crud_user.get_user_by_email(db, email=user_in.email):
        raise Conflict("Email is already registered.")
    return await crud.crud_user.create_user(
        db,
        email=user_in.email,
        name=user_in.name,
        hashed_password=security.get_password_hash(user_in.password),
    )


async def authenticate(db: AsyncSession, *, email: str, password: str) -> Tuple[models.User, str]:
    user = await crud.crud_user.get_user_by_email(db, email=email)
    if not user or not security.verify_password(password, user.hashed_password):
        logger.info(f"Failed login for {email}")
        raise InvalidCredentials("Incorrect email or password")
    return user, security.create_login_token(user)


async def _get_or_create_user(db: AsyncSession, *, email: str, name: str = "", source: str) -> models.User:
    email = crud.crud_user.normalize_email(email)
    user = await crud.crud_user.get_user_by_email(db, email=email)
    if user is None:
        try:
            user = await crud.crud_user.create_user(db, email=email, name=name)
            logger.info(f"Created passwordless account {user.id} from {source}")
        except Conflict:
            # Same address signed in twice concurrently
            user = await crud.crud_user.get_user_by_email(db, email=email)
    return user


def request_magic_link(email: str) -> None:
    """Email a sign-in link. Never reveals whether the address is registered."""
    normalized = crud.crud_user.normalize_email(email)
    token = security.create_magic_link_token(normalized)
    link = f"{settings.FRONTEND_URL}/auth/magic?token={token}"
    try:
        send_magic_link_email(to_email=normalized, link=link)
    except Exception as e:
        # Delivery problems must not tell the caller anything about the address
        logger.error(f"Magic link delivery to {normalized} failed: {e}")


async def verify_magic_link(db: AsyncSession, *, token: str) -> Tuple[models.User, str]:
    """Trade a sign-in link token for a login token, creating the account on first use."""
    try:
        payload = schemas.TokenPayload(**security.decode_access_token(token))
    except JWTError:
        raise InvalidOperation("Invalid or expired token")
    if payload.type != security.MAGIC_TOKEN_TYPE or not payload.sub:
        raise InvalidOperation("Invalid token payload")

    user = await _get_or_create_user(db, email=payload.sub, source="magic link")
    return user, security.create_login_token(user)


def _verify_google_id_token(token: str) -> Dict[str, Any]:
    """Check signature, expiry and audience of a Google ID token. Blocking."""
    return google_id_token.verify_oauth2_token(token, google_requests.Request(), settings.GOOGLE_CLIENT_ID)


async def login_with_google(db: AsyncSession, *, id_token: str) -> Tuple[models.User, str]:
    if not settings.GOOGLE_CLIENT_ID:
        raise ProviderNotConfigured("Google sign-in is not configured.")

    loop = asyncio.get_running_loop()
    try:
        claims = await loop.run_in_executor(None, _verify_google_id_token, id_token)
    except google_exceptions.TransportError as e:
        logger.error(f"Could not fetch Google signing keys: {e}")
        raise ProviderUnavailable("Google could not be reached; try again.")
    except (ValueError, google_exceptions.GoogleAuthError) as e:
        logger.info(f"Rejected Google ID token: {e}")
        raise InvalidCredentials("Invalid Google credential")

    email = claims.get("email")
    if not email:
        raise InvalidOperation("Google account has no email address.")
    if not claims.get("email_verified"):
        raise InvalidCredentials("Google email address is not verified.")

    user = await _get_or_create_user(db, email=email, name=claims.get("name") or "", source="Google")
    return user, security.create_login_token(user)


async def _fetch_facebook_profile(access_token: str) -> Dict[str, Any]:
    """Confirm the user token was issued for this app, then read the user's profile."""
    app_token = f"{settings.FACEBOOK_APP_ID}|{settings.FACEBOOK_APP_SECRET.get_secret_value()}"
    try:
        async with httpx.AsyncClient(base_url=settings.FACEBOOK_GRAPH_URL, timeout=FACEBOOK_TIMEOUT) as client:
            debug = await client.get(
                "/debug_token", params={"input_token": access_token, "access_token": app_token}
            )
            if debug.status_code >= 500:
                raise ProviderUnavailable("Facebook could not be reached; try again.")
            token_info = debug.json().get("data") or {}
            if not token_info.get("is_valid") or str(token_info.get("app_id")) != settings.FACEBOOK_APP_ID:
                raise InvalidCredentials("Invalid Facebook credential")

            me = await client.get("/me", params={"fields": "id,name,email", "access_token": access_token})
    except httpx.RequestError as e:
        logger.error(f"Facebook Graph API request failed: {e}")
        raise ProviderUnavailable("Facebook could not be reached; try again.")

    if me.status_code != 200:
        raise InvalidCredentials("Invalid Facebook credential")
    return me.json()


async def login_with_facebook(db: AsyncSession, *, access_token: str) -> Tuple[models.User, str]:
    if not settings.FACEBOOK_APP_ID or not settings.FACEBOOK_APP_SECRET:
        raise ProviderNotConfigured("Facebook sign-in is not configured.")

    profile = await _fetch_facebook_profile(access_token)
    email = profile.get("email")
    if not email:
        raise InvalidOperation("Facebook account has no email address.")

    user = await _get_or_create_user(db, email=email, name=profile.get("name") or "", source="Facebook")
    return user, security.create_login_token(user)
