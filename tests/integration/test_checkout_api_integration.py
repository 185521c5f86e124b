from storefront.checkout.stripe_client import ProviderResult, ERROR
from storefront.infra.api_client import ApiResult
from storefront.utils.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME

BODY = {"name": "Jane Doe", "email": "jane@example.com", "paymentMethod": "pm_card"}


def test_init_returns_amount_and_client_secret(client, backend):
    resp = client.get("/api/v1/checkout/init", params={"package": "starter-growth-package"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["itemType"] == "package"
    assert data["amount"] == 297
    assert data["clientSecret"] == "pi_abc_secret_xyz"


def test_init_errors(client, backend):
    resp = client.get("/api/v1/checkout/init")
    assert resp.status_code == 400
    assert resp.json()["detail"]["message"] == "No item selected"

    resp = client.get("/api/v1/checkout/init", params={"site": "missing"})
    assert resp.status_code == 404
    assert resp.json()["detail"]["message"] == "Item not found"


def test_submit_creates_order(client, backend, fake_stripe):
    client.get("/api/v1/checkout/init", params={"package": "starter-growth-package"})
    resp = client.post("/api/v1/checkout/submit", json=BODY)
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "succeeded",
        "orderId": "order-1",
        "redirectUrl": "/checkout/success?order=order-1",
    }
    assert backend.args_of("confirm_payment") == [("pi_abc",)]

    # Contexte consommé: une seconde soumission n'atteint plus Stripe
    again = client.post("/api/v1/checkout/submit", json=BODY)
    assert again.status_code == 400
    assert len(fake_stripe.confirm_calls) == 1


def test_submit_without_session_context(client, backend, fake_stripe):
    resp = client.post("/api/v1/checkout/submit", json=BODY)
    assert resp.status_code == 400
    assert resp.json()["detail"]["reason"] == "session_expired"


def test_submit_invalid_form_lists_field_errors(client, backend, fake_stripe):
    client.get("/api/v1/checkout/init", params={"site": "site-1"})
    resp = client.post("/api/v1/checkout/submit", json=BODY)
    assert resp.status_code == 400
    assert resp.json()["detail"]["fieldErrors"]["target_url"] == "This field is required"
    assert fake_stripe.confirm_calls == []


def test_submit_provider_failure_is_recoverable(client, backend, fake_stripe):
    fake_stripe.result = ProviderResult(ERROR, payment_intent_id="pi_abc", error="Your card was declined.")
    client.get("/api/v1/checkout/init", params={"package": "starter-growth-package"})
    resp = client.post("/api/v1/checkout/submit", json=BODY)
    assert resp.status_code == 402
    detail = resp.json()["detail"]
    assert detail["message"] == "Your card was declined."
    assert detail["recoverable"] is True

    # La session de paiement reste valide: nouvel essai possible
    fake_stripe.result = ProviderResult("succeeded", payment_intent_id="pi_abc")
    retry = client.post("/api/v1/checkout/submit", json=BODY)
    assert retry.status_code == 200


def _login_with_csrf(client, token_factory):
    client.get("/health")
    client.cookies.set("auth_token", token_factory(id="user-1", email="jane@example.com"))
    return {CSRF_HEADER_NAME: client.cookies.get(CSRF_COOKIE_NAME)}


def test_init_reports_balance_for_signed_in_user(client, backend, token_factory):
    assert client.get("/api/v1/checkout/init", params={"site": "site-1"}).json()["balance"] is None

    _login_with_csrf(client, token_factory)
    data = client.get("/api/v1/checkout/init", params={"site": "site-1"}).json()
    assert data["balance"] == 500
    assert backend.args_of("get_balance") == [("user-1",)]


def test_submit_with_balance(client, backend, fake_stripe, token_factory):
    headers = _login_with_csrf(client, token_factory)
    client.get("/api/v1/checkout/init", params={"package": "starter-growth-package"})
    resp = client.post("/api/v1/checkout/submit", json={**BODY, "paymentOption": "balance"}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["redirectUrl"] == "/checkout/success?order=order-1"
    assert backend.args_of("deduct_balance") == [("user-1", 297)]
    assert fake_stripe.confirm_calls == []


def test_submit_with_insufficient_balance_keeps_session(client, backend, fake_stripe, token_factory):
    backend.balance_result = ApiResult.success({"balance": 10})
    headers = _login_with_csrf(client, token_factory)
    client.get("/api/v1/checkout/init", params={"package": "starter-growth-package"})
    body = {**BODY, "paymentOption": "balance"}

    resp = client.post("/api/v1/checkout/submit", json=body, headers=headers)
    assert resp.status_code == 402
    detail = resp.json()["detail"]
    assert detail["reason"] == "insufficient_balance"
    assert detail["message"] == "Insufficient balance. You have $10.00, but need $297.00"
    assert "create_order" not in backend.names()

    # Contexte conservé: la carte reste utilisable
    again = client.post("/api/v1/checkout/submit", json=BODY, headers=headers)
    assert again.status_code == 200
    assert len(fake_stripe.confirm_calls) == 1
