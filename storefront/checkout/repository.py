"""
Accès au backend REST pour la feature 'checkout'.
Chaque fonction fait un seul appel (aucun retry) et renvoie un ApiResult.
Les identifiants venant du navigateur sont encodés comme un unique segment de chemin.
"""
from typing import Any, Dict, Union
from urllib.parse import quote

from storefront.infra.api_client import ApiClient, ApiResult, call


def _segment(value: str) -> str:
    return quote(str(value), safe="")


# module storefront.checkout.repository
def get_site(api: ApiClient, site_id: str) -> ApiResult:
    """GET /sites/:id"""
    return call("checkout.repository.get_site", api.get, f"/sites/{_segment(site_id)}")

def get_package(api: ApiClient, package_id: str) -> ApiResult:
    """GET /packages/:id"""
    return call("checkout.repository.get_package", api.get, f"/packages/{_segment(package_id)}")

def create_payment_intent(api: ApiClient, item_id: str, amount: Union[int, float]) -> ApiResult:
    """POST /payments/create-intent {orderId, amount} -> {clientSecret}"""
    return call(
        "checkout.repository.create_payment_intent",
        api.post,
        "/payments/create-intent",
        {"orderId": item_id, "amount": amount},
    )

def create_order(api: ApiClient, payload: Dict[str, Any]) -> ApiResult:
    """POST /orders avec le brouillon de commande (camelCase)."""
    return call("checkout.repository.create_order", api.post, "/orders", payload)

def confirm_payment(api: ApiClient, payment_intent_id: str) -> ApiResult:
    """POST /payments/confirm {paymentIntentId}: finalise le paiement et la facture côté backend."""
    return call(
        "checkout.repository.confirm_payment",
        api.post,
        "/payments/confirm",
        {"paymentIntentId": payment_intent_id},
    )

def get_order(api: ApiClient, order_id: str) -> ApiResult:
    """GET /orders/:id (page de confirmation)."""
    return call("checkout.repository.get_order", api.get, f"/orders/{_segment(order_id)}")

def get_balance(api: ApiClient, user_id: str) -> ApiResult:
    """GET /users/balance/:id -> {balance}"""
    return call("checkout.repository.get_balance", api.get, f"/users/balance/{_segment(user_id)}")

def deduct_balance(api: ApiClient, user_id: str, amount: Union[int, float]) -> ApiResult:
    """POST /users/deduct-balance {userId, amount}"""
    return call(
        "checkout.repository.deduct_balance",
        api.post,
        "/users/deduct-balance",
        {"userId": user_id, "amount": amount},
    )
