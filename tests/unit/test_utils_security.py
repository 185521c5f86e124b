import pytest
from fastapi import HTTPException
from starlette.requests import Request
from starlette.responses import Response

from storefront.utils.security import (
    AuthSession,
    GUEST_USER_ID,
    clear_auth_cookies,
    get_auth_session,
    read_claims,
    require_user,
)


def _request(headers=None, cookies=None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        raw.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "query_string": b""})


def test_read_claims_without_signature(token_factory):
    token = token_factory(id="user-42", email="jane@example.com")
    assert read_claims(token)["id"] == "user-42"


def test_read_claims_garbage_returns_empty():
    assert read_claims("not.a.jwt") == {}
    assert read_claims(None) == {}


def test_user_id_claim_order(token_factory):
    assert AuthSession(jwt_token=token_factory(userId="u1", sub="s1")).user_id == "u1"
    assert AuthSession(identity_token=token_factory(user_id="firebase-uid")).user_id == "firebase-uid"
    assert AuthSession().user_id == GUEST_USER_ID


def test_auth_session_from_cookie_and_header(token_factory):
    jwt_token = token_factory(id="backend-user")
    req = _request(headers={"Authorization": "Bearer firebase-token"}, cookies={"auth_token": jwt_token})
    auth = get_auth_session(req)
    assert auth.bearer() == jwt_token
    assert auth.identity_token == "firebase-token"


def test_identity_cookie_used_without_header():
    auth = get_auth_session(_request(cookies={"id_token": "idt"}))
    assert auth.bearer() == "idt"


def test_require_user_rejects_guest():
    with pytest.raises(HTTPException) as exc:
        require_user(AuthSession())
    assert exc.value.status_code == 401


def test_require_user_accepts_identified_user(token_factory):
    auth = AuthSession(jwt_token=token_factory(id="u1", name="Jane"))
    assert require_user(auth) is auth
    assert auth.name == "Jane"


def test_clear_auth_cookies():
    resp = Response()
    clear_auth_cookies(resp)
    cookies = resp.headers.getlist("set-cookie")
    assert any(c.startswith("auth_token=") for c in cookies)
    assert any(c.startswith("id_token=") for c in cookies)
