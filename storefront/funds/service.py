"""
Rechargement du solde (add funds).
Deux étapes déléguées au backend: création du PaymentIntent puis confirmation.
Les montants hors bornes sont refusés avant tout appel réseau.
"""
from typing import Any, Dict, Optional, Tuple, Union
import logging
import math

from storefront.config import FUNDS_MIN_AMOUNT, FUNDS_MAX_AMOUNT
from storefront.infra.api_client import ApiClient
from storefront.checkout.models import normalize_amount, payment_intent_id_from_secret
from . import repository

logger = logging.getLogger(__name__)

CREATE_FAILED_MESSAGE = "Failed to create payment intent"
CONFIRM_FAILED_MESSAGE = "Failed to confirm payment"


class FundsError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def validate_amount(raw: Any) -> Union[int, float]:
    try:
        amount = normalize_amount(raw)
    except (TypeError, ValueError):
        raise FundsError("Invalid amount", status_code=400)
    if not math.isfinite(amount):
        raise FundsError("Invalid amount", status_code=400)
    if amount < FUNDS_MIN_AMOUNT or amount > FUNDS_MAX_AMOUNT:
        raise FundsError(
            f"Amount must be between {normalize_amount(FUNDS_MIN_AMOUNT)} and {normalize_amount(FUNDS_MAX_AMOUNT)}",
            status_code=400,
        )
    return amount


def create_intent(api: ApiClient, user_id: str, raw_amount: Any) -> Dict[str, Optional[str]]:
    """Retourne {clientSecret, paymentIntentId}; FundsError(502) si le backend échoue."""
    amount = validate_amount(raw_amount)
    result = repository.create_intent(api, user_id, amount)
    data = result.data if result.ok and isinstance(result.data, dict) else {}
    client_secret = data.get("clientSecret")
    if not client_secret:
        logger.error("funds: création d'intent échouée user=%s amount=%s: %s", user_id, amount, result.error)
        raise FundsError(CREATE_FAILED_MESSAGE)
    intent_id = data.get("paymentIntentId") or payment_intent_id_from_secret(client_secret)
    return {"clientSecret": client_secret, "paymentIntentId": intent_id}


def confirm(api: ApiClient, payment_intent_id: Optional[str]) -> Tuple[bool, Any]:
    if not (payment_intent_id or "").strip():
        raise FundsError("paymentIntentId is required", status_code=400)
    result = repository.confirm(api, payment_intent_id.strip())
    if not result.ok:
        logger.error("funds: confirmation %s échouée: %s", payment_intent_id, result.error)
        raise FundsError(CONFIRM_FAILED_MESSAGE)
    return True, result.data
