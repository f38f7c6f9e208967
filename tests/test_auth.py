from datetime import timedelta
from functools import partial

import httpx
import pytest
from jose import JWTError
from pydantic import SecretStr

from app import schemas, security
from app.core.config import settings
from app.core.errors import Conflict, InvalidOperation
from app.services import auth_service
from app.socket_handlers import _get_user_from_token


def test_password_hash_round_trip():
    hashed = security.get_password_hash("correct horse")

    assert security.verify_password("correct horse", hashed)
    assert not security.verify_password("battery staple", hashed)
    assert not security.verify_password("anything", None)


def test_expired_token_is_rejected():
    token = security.create_access_token({"sub": "a@example.com"}, expires_delta=timedelta(seconds=-5))

    with pytest.raises(JWTError):
        security.decode_access_token(token)


async def test_register_and_authenticate(db):
    user = await auth_service.register_user(
        db, user_in=schemas.UserRegister(name="Ana", email="ana@example.com", password="s3cret-pass")
    )

    authed, token = await auth_service.authenticate(db, email="ANA@example.com", password="s3cret-pass")

    assert authed.id == user.id
    assert security.decode_access_token(token)["user_id"] == user.id
    with pytest.raises(auth_service.InvalidCredentials):
        await auth_service.authenticate(db, email="ana@example.com", password="nope")
    with pytest.raises(Conflict):
        await auth_service.register_user(
            db, user_in=schemas.UserRegister(name="Ana", email="ana@example.com", password="other-pass")
        )


async def test_passwordless_account_cannot_use_password_login(db):
    token = security.create_magic_link_token("magic@example.com")
    user, _ = await auth_service.verify_magic_link(db, token=token)

    assert user.hashed_password is None
    with pytest.raises(auth_service.InvalidCredentials):
        await auth_service.authenticate(db, email="magic@example.com", password="")


async def test_magic_link_reuses_existing_account(db, make_user):
    existing = await make_user("sam")

    user, _ = await auth_service.verify_magic_link(db, token=security.create_magic_link_token(existing.email))

    assert user.id == existing.id


async def test_magic_link_rejects_garbage(db):
    with pytest.raises(InvalidOperation):
        await auth_service.verify_magic_link(db, token="not-a-jwt")


def test_magic_link_delivery_failure_is_not_reported(monkeypatch):
    def _fail(**kwargs):
        raise RuntimeError("provider down")

    monkeypatch.setattr(auth_service, "send_magic_link_email", _fail)

    auth_service.request_magic_link("someone@example.com")


async def test_socket_auth_accepts_login_tokens_only(db, make_user):
    user = await make_user("sam")

    assert await _get_user_from_token(security.create_login_token(user), db) == user.id
    assert await _get_user_from_token(security.create_magic_link_token(user.email), db) is None
    assert await _get_user_from_token("garbage", db) is None
    assert await _get_user_from_token("", db) is None


# --- Google / Facebook sign-in --- #

@pytest.fixture
def google_claims(monkeypatch):
    """Stand-in for Google's verifier: known tokens map to claims, others are rejected."""
    claims = {}

    def _verify(token):
        if token not in claims:
            raise ValueError("Token used too late")
        return claims[token]

    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "spark-web.apps.googleusercontent.com")
    monkeypatch.setattr(auth_service, "_verify_google_id_token", _verify)
    return claims


@pytest.fixture
def graph_api(monkeypatch):
    """Route the Facebook Graph client through a mock transport; returns the handler's state."""
    state = {"app_id": "4242", "profile": {"id": "fb-1", "name": "Fb User", "email": "FB.User@Example.com"}}
    real_client = httpx.AsyncClient

    def _handler(request):
        if state.get("down"):
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path.endswith("/debug_token"):
            return httpx.Response(200, json={"data": {"is_valid": True, "app_id": state["app_id"]}})
        if request.url.path.endswith("/me"):
            return httpx.Response(200, json=state["profile"])
        return httpx.Response(404, json={})

    monkeypatch.setattr(settings, "FACEBOOK_APP_ID", "4242")
    monkeypatch.setattr(settings, "FACEBOOK_APP_SECRET", SecretStr("app-secret"))
    monkeypatch.setattr(
        auth_service.httpx, "AsyncClient", partial(real_client, transport=httpx.MockTransport(_handler))
    )
    return state


async def test_google_login_creates_then_reuses_account(db, google_claims):
    google_claims["tok-1"] = {"email": "G.User@Gmail.com", "email_verified": True, "name": "G User"}
    google_claims["tok-2"] = dict(google_claims["tok-1"])

    user, token = await auth_service.login_with_google(db, id_token="tok-1")
    again, _ = await auth_service.login_with_google(db, id_token="tok-2")

    assert user.email == "g.user@gmail.com"
    assert user.name == "G User"
    assert user.hashed_password is None
    assert again.id == user.id
    assert security.decode_access_token(token)["user_id"] == user.id


async def test_google_login_signs_in_existing_password_account(db, make_user, google_claims):
    existing = await make_user("sam")
    google_claims["tok"] = {"email": existing.email.upper(), "email_verified": True, "name": "Other Name"}

    user, _ = await auth_service.login_with_google(db, id_token="tok")

    assert user.id == existing.id
    assert user.name == "sam"


async def test_google_login_rejects_bad_or_unverified_tokens(db, google_claims):
    google_claims["unverified"] = {"email": "x@example.com", "email_verified": False}

    with pytest.raises(auth_service.InvalidCredentials):
        await auth_service.login_with_google(db, id_token="forged")
    with pytest.raises(auth_service.InvalidCredentials):
        await auth_service.login_with_google(db, id_token="unverified")


async def test_google_login_requires_client_id(db, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", None)

    with pytest.raises(auth_service.ProviderNotConfigured):
        await auth_service.login_with_google(db, id_token="anything")


async def test_facebook_login_creates_account_from_graph_profile(db, graph_api):
    user, token = await auth_service.login_with_facebook(db, access_token="user-token")

    assert user.email == "fb.user@example.com"
    assert user.name == "Fb User"
    assert security.decode_access_token(token)["user_id"] == user.id


async def test_facebook_login_rejects_token_for_another_app(db, graph_api):
    graph_api["app_id"] = "9999"

    with pytest.raises(auth_service.InvalidCredentials):
        await auth_service.login_with_facebook(db, access_token="user-token")


async def test_facebook_login_without_email_is_rejected(db, graph_api):
    graph_api["profile"] = {"id": "fb-2", "name": "Phone Only"}

    with pytest.raises(InvalidOperation):
        await auth_service.login_with_facebook(db, access_token="user-token")


async def test_facebook_unreachable_is_reported(db, graph_api):
    graph_api["down"] = True

    with pytest.raises(auth_service.ProviderUnavailable):
        await auth_service.login_with_facebook(db, access_token="user-token")
