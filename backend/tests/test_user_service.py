import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from constants import LINE_PROFILE_URL, LINE_TOKEN_URL
from errors import IdentityProviderError
from main import app
from schemas import LineProfile
from security import decrypt_token
from services import user_service

PROFILE = {"userId": "U123", "displayName": "alice", "pictureUrl": "https://img/alice"}


@pytest.fixture
def line_api(monkeypatch):
    """Routes httpx calls to a fake LINE endpoint; returns the recorded requests."""
    calls = []
    state = {"token_response": httpx.Response(200, json={"access_token": "tok-1"})}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if str(request.url) == LINE_TOKEN_URL:
            return state["token_response"]
        if str(request.url) == LINE_PROFILE_URL:
            if request.headers.get("Authorization") in ("Bearer tok-1", "Bearer tok-2"):
                return httpx.Response(200, json=PROFILE)
            return httpx.Response(401, json={"message": "invalid token"})
        return httpx.Response(404)

    monkeypatch.setattr(
        user_service,
        "_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return calls, state


def test_exchange_token_posts_authorization_code(line_api):
    calls, _ = line_api

    token = asyncio.run(user_service.exchange_token("code-1"))

    assert token == "tok-1"
    form = parse_qs(calls[0].content.decode())
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["code-1"]
    assert form["client_id"] == ["test-channel"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"error": "invalid_grant"}),
        httpx.Response(200, json={"token_type": "Bearer"}),
        httpx.Response(200, content=b"not json"),
    ],
)
def test_exchange_token_failures(line_api, response):
    _, state = line_api
    state["token_response"] = response

    with pytest.raises(IdentityProviderError):
        asyncio.run(user_service.exchange_token("code-1"))


def test_profile_lookup(line_api):
    profile = asyncio.run(user_service.get_line_profile("tok-1"))
    assert profile.user_id == "U123"
    assert profile.display_name == "alice"

    with pytest.raises(IdentityProviderError):
        asyncio.run(user_service.get_line_profile("expired"))


def test_save_or_update_user_upserts_by_line_id(session):
    profile = LineProfile(user_id="U123", display_name="alice")
    created = user_service.save_or_update_user(session, profile, "tok-1")

    renamed = LineProfile(user_id="U123", display_name="alice b", email="a@example.com")
    updated = user_service.save_or_update_user(session, renamed, "tok-2")

    assert updated.id == created.id
    assert updated.display_name == "alice b"
    assert updated.email == "a@example.com"
    assert updated.line_token_encrypted != "tok-2"
    assert decrypt_token(updated.line_token_encrypted) == "tok-2"


def test_login_callback_then_authenticated_requests(engine, line_api):
    client = TestClient(app)

    response = client.get("/api/auth/line/callback", params={"code": "code-1"})
    assert response.status_code == 200
    user = response.json()
    assert user["line_id"] == "U123"

    headers = {"Authorization": "Bearer tok-1"}
    me = client.get("/api/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]

    synced = client.post("/api/users/me/sync", headers=headers)
    assert synced.status_code == 200
    assert synced.json()["display_name"] == "alice"

    assert len(client.get("/api/users", headers=headers).json()["items"]) == 1
    assert client.get("/api/users/me", headers={"Authorization": "Bearer bad"}).status_code == 401


def test_login_callback_reports_provider_failure(engine, line_api):
    _, state = line_api
    state["token_response"] = httpx.Response(500, text=json.dumps({"error": "down"}))

    response = TestClient(app).get("/api/auth/line/callback", params={"code": "code-1"})

    assert response.status_code == 502
