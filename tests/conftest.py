import os

# Avant tout import de storefront: pas d'init Redis, clé Stripe factice
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")

import pytest
from typing import Any, Dict, Generator, List, Optional, Tuple
from fastapi.testclient import TestClient
import jwt

from storefront.app_setup.factory import create_app
from storefront.infra.api_client import ApiResult
from storefront.checkout.stripe_client import ProviderResult, SUCCEEDED


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


SITE = {
    "_id": "site-1",
    "name": "Tech Daily",
    "url": "https://techdaily.example",
    "category": "Technology",
    "price": 150,
    "domainAuthority": 62,
    "domainRating": 58,
    "monthlyTraffic": 120000,
    "isActive": True,
}

PACKAGE = {
    "_id": "starter-growth-package",
    "name": "Starter Growth",
    "description": "Five guest posts on niche blogs",
    "category": "SEO",
    "price": 350,
    "discounted_price": 297,
    "features": ["5 articles", "Do-follow links"],
    "isActive": True,
}


def make_token(**claims) -> str:
    return jwt.encode(claims, "test-secret", algorithm="HS256")


class FakeBackend:
    """Remplace storefront.checkout.repository: enregistre chaque appel et renvoie des ApiResult."""

    def __init__(self):
        self.sites: Dict[str, dict] = {SITE["_id"]: dict(SITE)}
        self.packages: Dict[str, dict] = {PACKAGE["_id"]: dict(PACKAGE)}
        self.calls: List[Tuple[str, tuple]] = []
        self.intent_result = ApiResult.success({"clientSecret": "pi_abc_secret_xyz"})
        self.order_result: Optional[ApiResult] = None
        self.confirm_result = ApiResult.success({"status": "succeeded"})
        self.orders: Dict[str, dict] = {}
        self.balance_result = ApiResult.success({"balance": 500})
        self.deduct_result = ApiResult.success({"balance": 203})

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def args_of(self, name: str) -> List[tuple]:
        return [args for n, args in self.calls if n == name]

    def get_site(self, api, site_id):
        self.calls.append(("get_site", (site_id,)))
        if site_id in self.sites:
            return ApiResult.success(self.sites[site_id])
        return ApiResult.failure("Site not found", 404)

    def get_package(self, api, package_id):
        self.calls.append(("get_package", (package_id,)))
        if package_id in self.packages:
            return ApiResult.success(self.packages[package_id])
        return ApiResult.failure("Package not found", 404)

    def create_payment_intent(self, api, item_id, amount):
        self.calls.append(("create_payment_intent", (item_id, amount)))
        return self.intent_result

    def create_order(self, api, payload):
        self.calls.append(("create_order", (payload,)))
        if self.order_result is not None:
            return self.order_result
        order_id = f"order-{len(self.orders) + 1}"
        order = {"_id": order_id, **payload}
        self.orders[order_id] = order
        return ApiResult.success(order)

    def confirm_payment(self, api, payment_intent_id):
        self.calls.append(("confirm_payment", (payment_intent_id,)))
        return self.confirm_result

    def get_order(self, api, order_id):
        self.calls.append(("get_order", (order_id,)))
        if order_id in self.orders:
            return ApiResult.success(self.orders[order_id])
        return ApiResult.failure("Order not found", 404)

    def get_balance(self, api, user_id):
        self.calls.append(("get_balance", (user_id,)))
        return self.balance_result

    def deduct_balance(self, api, user_id, amount):
        self.calls.append(("deduct_balance", (user_id, amount)))
        return self.deduct_result


class FakeStripe:
    """Remplace confirm_payment / retrieve_payment de storefront.checkout.stripe_client."""

    def __init__(self):
        self.result = ProviderResult(SUCCEEDED, payment_intent_id="pi_abc")
        self.retrieve_result = ProviderResult(SUCCEEDED, payment_intent_id="pi_abc")
        self.confirm_calls: List[Dict[str, Any]] = []
        self.retrieve_calls: List[str] = []

    def confirm_payment(self, *, client_secret, payment_method, return_url):
        self.confirm_calls.append(
            {"client_secret": client_secret, "payment_method": payment_method, "return_url": return_url}
        )
        return self.result

    def retrieve_payment(self, payment_intent_id):
        self.retrieve_calls.append(payment_intent_id)
        return self.retrieve_result


@pytest.fixture
def backend(monkeypatch) -> FakeBackend:
    fake = FakeBackend()
    for name in ("get_site", "get_package", "create_payment_intent", "create_order", "confirm_payment", "get_order",
                 "get_balance", "deduct_balance"):
        monkeypatch.setattr(f"storefront.checkout.repository.{name}", getattr(fake, name))
    return fake


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr("storefront.checkout.stripe_client.confirm_payment", fake.confirm_payment)
    monkeypatch.setattr("storefront.checkout.stripe_client.retrieve_payment", fake.retrieve_payment)
    return fake


@pytest.fixture(scope="session")
def app():
    return create_app()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def token_factory():
    return make_token
