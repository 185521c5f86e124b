import httpx

from storefront.health.service import health_backend_info


def test_health_root(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["rate_limit"]["enabled"] is False


def test_health_backend_route(client, monkeypatch):
    monkeypatch.setattr("storefront.health.router.health_backend_info", lambda: {"connect_ok": True})
    assert client.get("/health/backend").json() == {"connect_ok": True}


def test_health_backend_info_reports_reachability(monkeypatch):
    monkeypatch.setattr("storefront.health.service.socket.getaddrinfo", lambda host, port: [])
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
    info = health_backend_info(transport=transport)
    assert info["dns_ok"] is True
    assert info["connect_ok"] is True
    assert info["status_code"] == 200


def test_health_backend_info_network_error(monkeypatch):
    monkeypatch.setattr("storefront.health.service.socket.getaddrinfo", lambda host, port: [])

    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    info = health_backend_info(transport=httpx.MockTransport(handler))
    assert info["connect_ok"] is False
    assert "refused" in info["error"]


def test_security_headers_present(client):
    resp = client.get("/health")
    assert resp.headers["x-frame-options"] == "DENY"
    assert "https://js.stripe.com" in resp.headers["content-security-policy"]
    assert "csrf_token=" in resp.headers.get("set-cookie", "")
