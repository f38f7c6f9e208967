from fastapi import APIRouter, BackgroundTasks, Depends, Form, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from urllib.parse import urlencode
import logging

from app import schemas, services
from app.core.config import settings
from app.core.errors import InvalidOperation
from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def _app_redirect(token: str, status_code: int) -> RedirectResponse:
    return RedirectResponse(
        url=f"{settings.MOBILE_DEEP_LINK}?{urlencode({'token': token})}",
        status_code=status_code,
    )


@router.post("/register", response_model=schemas.ProfileResponse, status_code=status.HTTP_201_CREATED)
async def register(user_in: schemas.UserRegister, db: AsyncSession = Depends(get_db)):
    user = await services.auth_service.register_user(db, user_in=user_in)
    logger.info(f"Registered user {user.id}")
    return {"success": True, "user": user}


@router.post("/login", response_model=schemas.AuthResponse)
async def login(credentials: schemas.UserLogin, db: AsyncSession = Depends(get_db)):
    user, token = await services.auth_service.authenticate(
        db, email=credentials.email, password=credentials.password
    )
    return {"success": True, "token": token, "user": user}


@router.post("/magic-request", response_model=schemas.AckResponse)
async def request_magic_link(body: schemas.MagicLinkRequest, background_tasks: BackgroundTasks):
    """Always answers the same way so the endpoint cannot be used to probe for accounts."""
    if body.email.strip():
        background_tasks.add_task(services.auth_service.request_magic_link, body.email)
    return {"success": True, "message": "If the address is valid, a sign-in link is on its way."}


@router.post("/magic-verify", response_model=schemas.AuthResponse)
async def verify_magic_link(body: schemas.MagicLinkVerify, db: AsyncSession = Depends(get_db)):
    user, token = await services.auth_service.verify_magic_link(db, token=body.token)
    return {"success": True, "token": token, "user": user}


@router.get("/magic")
async def open_magic_link(token: str = Query(...)):
    # Email clients open links in a browser; hand the token over to the app
    return _app_redirect(token, status.HTTP_307_TEMPORARY_REDIRECT)


@router.post("/google", response_model=schemas.AuthResponse)
async def google_login(body: schemas.GoogleLogin, db: AsyncSession = Depends(get_db)):
    """Exchange a Google ID token from the client SDK for a login token."""
    user, token = await services.auth_service.login_with_google(db, id_token=body.id_token)
    return {"success": True, "token": token, "user": user}


@router.post("/google/callback")
async def google_callback(
    request: Request,
    credential: str = Form(...),
    g_csrf_token: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    """Google Identity Services redirect mode posts the ID token here."""
    if g_csrf_token is not None and g_csrf_token != request.cookies.get("g_csrf_token"):
        raise InvalidOperation("Failed to verify double submit cookie.")
    _, token = await services.auth_service.login_with_google(db, id_token=credential)
    return _app_redirect(token, status.HTTP_303_SEE_OTHER)


@router.post("/facebook", response_model=schemas.AuthResponse)
async def facebook_login(body: schemas.FacebookLogin, db: AsyncSession = Depends(get_db)):
    """Exchange a Facebook user access token for a login token."""
    user, token = await services.auth_service.login_with_facebook(db, access_token=body.access_token)
    return {"success": True, "token": token, "user": user}


@router.post("/facebook/callback")
async def facebook_callback(access_token: str = Form(...), db: AsyncSession = Depends(get_db)):
    _, token = await services.auth_service.login_with_facebook(db, access_token=access_token)
    return _app_redirect(token, status.HTTP_303_SEE_OTHER)
