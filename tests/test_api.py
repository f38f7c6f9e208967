import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from app import security
from app.core.config import settings
from app.db.session import create_engine_for_url, create_session_factory, get_db
from app.main import fastapi_app

from .conftest import MANILA, QUEZON_CITY

API = settings.API_V1_STR


@pytest.fixture
def client(db_path):
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    factory = create_session_factory(engine)

    async def override_get_db():
        async with factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


def _signup(client, name, age=28, position=MANILA):
    email = f"{name}-{uuid.uuid4().hex[:6]}@example.com"
    response = client.post(f"{API}/auth/register", json={"name": name, "email": email, "password": "s3cret-pass"})
    assert response.status_code == 201, response.text
    login = client.post(f"{API}/auth/login", json={"email": email, "password": "s3cret-pass"})
    assert login.status_code == 200, login.text
    headers = {"Authorization": f"Bearer {login.json()['token']}"}
    profile = client.put(
        f"{API}/profile",
        json={"age": age, "latitude": position[0], "longitude": position[1]},
        headers=headers,
    )
    assert profile.status_code == 200, profile.text
    return login.json()["user"]["id"], headers


def _feed(client, headers, **params):
    query = {"lat": MANILA[0], "lon": MANILA[1]}
    query.update(params)
    return client.get(f"{API}/discovery/profiles", params=query, headers=headers)


# --- Auth --- #

def test_register_and_login(client):
    response = client.post(
        f"{API}/auth/register",
        json={"name": "Ana", "email": "Ana@Example.com", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ana@example.com"
    assert "hashed_password" not in body["user"]

    duplicate = client.post(
        f"{API}/auth/register",
        json={"name": "Ana", "email": "ana@example.com", "password": "another-pass"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["success"] is False

    bad_login = client.post(f"{API}/auth/login", json={"email": "ana@example.com", "password": "wrong"})
    assert bad_login.status_code == 401
    assert bad_login.json() == {"success": False, "error": "Incorrect email or password"}


def test_invalid_registration_body_is_400(client):
    response = client.post(f"{API}/auth/register", json={"name": "Ana", "email": "not-an-email", "password": "x"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_magic_link_flow_creates_account(client):
    ack = client.post(f"{API}/auth/magic-request", json={"email": "new@example.com"})
    assert ack.status_code == 200
    assert ack.json()["success"] is True

    magic_token = security.create_magic_link_token("new@example.com")
    verified = client.post(f"{API}/auth/magic-verify", json={"token": magic_token})
    assert verified.status_code == 200
    assert verified.json()["user"]["email"] == "new@example.com"

    # The sign-in token itself cannot be used as an API credential
    rejected = client.get(f"{API}/profile", headers={"Authorization": f"Bearer {magic_token}"})
    assert rejected.status_code == 401

    me = client.get(f"{API}/profile", headers={"Authorization": f"Bearer {verified.json()['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "new@example.com"


def test_magic_verify_rejects_login_token(client):
    _, headers = _signup(client, "ana")
    login_token = headers["Authorization"].split()[1]

    response = client.post(f"{API}/auth/magic-verify", json={"token": login_token})

    assert response.status_code == 400


def test_magic_link_redirects_to_app(client):
    response = client.get(f"{API}/auth/magic", params={"token": "abc"}, follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == f"{settings.MOBILE_DEEP_LINK}?token=abc"


def test_google_sign_in_over_http(client, monkeypatch):
    from app.services import auth_service

    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "spark-web.apps.googleusercontent.com")
    monkeypatch.setattr(
        auth_service,
        "_verify_google_id_token",
        lambda token: {"email": "g@example.com", "email_verified": True, "name": "G"},
    )

    response = client.post(f"{API}/auth/google", json={"id_token": "google-id-token"})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "g@example.com"

    redirect = client.post(
        f"{API}/auth/google/callback", data={"credential": "google-id-token"}, follow_redirects=False
    )
    assert redirect.status_code == 303
    token = redirect.headers["location"].split("?token=")[1]
    assert redirect.headers["location"].startswith(f"{settings.MOBILE_DEEP_LINK}?token=")
    assert security.decode_access_token(token)["user_id"] == response.json()["user"]["id"]

    client.cookies.set("g_csrf_token", "xyz")
    forged = client.post(
        f"{API}/auth/google/callback",
        data={"credential": "google-id-token", "g_csrf_token": "abc"},
        follow_redirects=False,
    )
    assert forged.status_code == 400


def test_unconfigured_provider_is_503(client, monkeypatch):
    monkeypatch.setattr(settings, "FACEBOOK_APP_ID", None)

    response = client.post(f"{API}/auth/facebook", json={"access_token": "t"})

    assert response.status_code == 503
    assert response.json() == {"success": False, "error": "Facebook sign-in is not configured."}


# --- Profile --- #

def test_profile_update_only_writes_given_fields(client):
    _, headers = _signup(client, "ana", age=30)

    response = client.put(
        f"{API}/profile",
        json={"bio": "Coffee first", "tags": ["hiking", "Hiking", " books "]},
        headers=headers,
    )

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["bio"] == "Coffee first"
    assert user["age"] == 30
    assert user["tags"] == ["hiking", "books"]


def test_profile_requires_authentication(client):
    response = client.get(f"{API}/profile")

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_profile_picture_rejects_non_images(client):
    _, headers = _signup(client, "ana")

    response = client.post(
        f"{API}/profile/picture",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_profile_picture_storage_unavailable_is_502(client, monkeypatch):
    from app.utils.storage import StorageNotConfigured, gcs_storage

    async def _unconfigured(*args, **kwargs):
        raise StorageNotConfigured("GCS not initialized")

    monkeypatch.setattr(gcs_storage, "upload_bytes_async", _unconfigured)
    _, headers = _signup(client, "ana")

    response = client.post(
        f"{API}/profile/picture",
        files={"file": ("me.png", b"\x89PNG fake", "image/png")},
        headers=headers,
    )

    assert response.status_code == 502


def test_profile_picture_upload_stores_url(client, monkeypatch):
    from app.utils.storage import gcs_storage

    uploaded = []

    async def _upload(data, blob_name, content_type):
        uploaded.append((blob_name, content_type))
        return f"https://storage.googleapis.com/bucket/{blob_name}"

    monkeypatch.setattr(gcs_storage, "upload_bytes_async", _upload)
    user_id, headers = _signup(client, "ana")

    response = client.post(
        f"{API}/profile/picture",
        files={"file": ("me.jpg", b"\xff\xd8 fake jpeg", "image/jpeg")},
        headers=headers,
    )

    assert response.status_code == 200
    user = response.json()["user"]
    blob_name, content_type = uploaded[0]
    assert blob_name.startswith(f"profile_pictures/{user_id}/")
    assert content_type == "image/jpeg"
    assert user["profile_picture_url"].endswith(blob_name)
    assert user["profile_picture_public_id"] == blob_name


# --- Discovery --- #

def test_feed_requires_position(client):
    _, headers = _signup(client, "ana")

    response = client.get(f"{API}/discovery/profiles", headers=headers)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "lat" in response.json()["error"]


def test_feed_rejects_malformed_query(client):
    _, headers = _signup(client, "ana")

    response = _feed(client, headers, lat="north")

    assert response.status_code == 400


def test_like_match_and_unmatch_over_http(client):
    ana_id, ana = _signup(client, "ana")
    ben_id, ben = _signup(client, "ben", position=QUEZON_CITY)

    feed = _feed(client, ana)
    assert feed.status_code == 200
    assert [p["id"] for p in feed.json()["profiles"]] == [ben_id]
    assert feed.json()["profiles"][0]["distance_km"] > 0

    first = client.post(f"{API}/discovery/{ben_id}/like", headers=ana)
    assert first.json() == {"success": True, "matched": False, "match": None}

    received = client.get(f"{API}/discovery/likes/received", headers=ben)
    assert [u["id"] for u in received.json()["likes"]] == [ana_id]

    second = client.post(f"{API}/discovery/{ana_id}/like", headers=ben)
    body = second.json()
    assert body["matched"] is True
    assert body["match"]["user_a"] == min(ana_id, ben_id)
    assert body["match"]["user_b"] == max(ana_id, ben_id)

    assert _feed(client, ana).json()["profiles"] == []
    assert client.get(f"{API}/discovery/isMatched/{ben_id}", headers=ana).json()["matched"] is True
    matches = client.get(f"{API}/discovery/matches", headers=ana).json()["matches"]
    assert matches[0]["partner"]["id"] == ben_id
    assert client.get(f"{API}/discovery/sent", headers=ana).json()["items"][0]["id"] == ben_id

    sent = client.post(f"{API}/messages/{ben_id}", json={"text": "hi Ben"}, headers=ana)
    assert sent.status_code == 201
    conversation = client.get(f"{API}/messages/{ana_id}", headers=ben).json()["messages"]
    assert [m["text"] for m in conversation] == ["hi Ben"]

    unmatched = client.post(f"{API}/discovery/unmatch/{ana_id}", headers=ben)
    assert unmatched.json() == {"success": True, "removed_match": True, "deleted_messages": 1}
    assert client.get(f"{API}/discovery/isMatched/{ben_id}", headers=ana).json()["matched"] is False
    assert client.get(f"{API}/messages/{ben_id}", headers=ana).json()["messages"] == []

    refused = client.post(f"{API}/messages/{ben_id}", json={"text": "still there?"}, headers=ana)
    assert refused.status_code == 400


def test_skip_and_decline_over_http(client):
    ana_id, ana = _signup(client, "ana")
    ben_id, ben = _signup(client, "ben")
    cat_id, cat = _signup(client, "cat")

    client.post(f"{API}/discovery/{ana_id}/like", headers=ben)
    client.post(f"{API}/discovery/{ana_id}/like", headers=cat)

    declined = client.post(f"{API}/discovery/likes/decline/{ben_id}", headers=ana)
    assert declined.json() == {"success": True, "deleted_count": 1}

    skipped = client.post(f"{API}/discovery/{cat_id}/skip", headers=ana)
    assert skipped.status_code == 200
    assert skipped.json()["success"] is True

    assert client.get(f"{API}/discovery/likes/received", headers=ana).json()["likes"] == []
    feed_ids = [p["id"] for p in _feed(client, ana).json()["profiles"]]
    assert cat_id not in feed_ids
    assert ben_id in feed_ids


def test_like_yourself_is_400_and_unknown_user_is_404(client):
    ana_id, ana = _signup(client, "ana")

    own = client.post(f"{API}/discovery/{ana_id}/like", headers=ana)
    assert own.status_code == 400
    assert own.json() == {"success": False, "error": "Cannot like yourself."}

    missing = client.post(f"{API}/discovery/{uuid.uuid4()}/like", headers=ana)
    assert missing.status_code == 404
    assert missing.json()["success"] is False


def test_view_hides_profile_from_feed(client):
    ana_id, ana = _signup(client, "ana")
    ben_id, _ = _signup(client, "ben")

    viewed = client.post(f"{API}/discovery/{ben_id}/view", headers=ana)

    assert viewed.status_code == 200
    assert _feed(client, ana).json()["profiles"] == []


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
