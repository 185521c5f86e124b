import pytest
from fastapi import HTTPException
from starlette.requests import Request

from storefront.utils.rate_limit import _local_hit, client_key


class _App:
    class state:
        pass


def _request(path="/api/v1/checkout/submit", cookie=None) -> Request:
    headers = [(b"cookie", cookie.encode())] if cookie else []
    return Request({
        "type": "http", "method": "POST", "path": path, "headers": headers,
        "query_string": b"", "client": ("10.0.0.1", 1234), "app": _App,
    })


def test_client_key_uses_ip_without_token():
    assert client_key(_request()) == "ip:10.0.0.1:/api/v1/checkout/submit"


def test_client_key_hashes_bearer_token():
    key = client_key(_request(cookie="auth_token=secret-jwt"))
    assert key.startswith("user:")
    assert "secret-jwt" not in key


def test_local_window_blocks_after_limit():
    _App.state._rl_store = {}
    req = _request()
    for _ in range(3):
        _local_hit(req, "k", times=3, seconds=60)
    with pytest.raises(HTTPException) as exc:
        _local_hit(req, "k", times=3, seconds=60)
    assert exc.value.status_code == 429
