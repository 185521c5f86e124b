"""
Adaptateur Stripe: centralise les appels PaymentIntent et la configuration Stripe.

Les données carte ne transitent jamais par le serveur: le navigateur produit un
PaymentMethod via Stripe.js, le serveur confirme le PaymentIntent avec son id.
"""
from typing import Any, Dict, Optional
import logging

import stripe
from storefront.checkout.models import payment_intent_id_from_secret

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
REQUIRES_ACTION = "requires_action"
ERROR = "error"

DEFAULT_DECLINE_MESSAGE = "Your payment was not successful, please try again."


# module storefront.checkout.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels échouent côté SDK (AuthenticationError), remontés comme erreur fournisseur.
    """
    from storefront.config import STRIPE_SECRET_KEY
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe


class ProviderResult:
    def __init__(
        self,
        status: str,
        payment_intent_id: Optional[str] = None,
        error: Optional[str] = None,
        redirect_url: Optional[str] = None,
    ):
        self.status = status
        self.payment_intent_id = payment_intent_id
        self.error = error
        self.redirect_url = redirect_url

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED

    @property
    def requires_redirect(self) -> bool:
        return self.status == REQUIRES_ACTION and bool(self.redirect_url)


def _as_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def result_from_intent(intent: Dict[str, Any]) -> ProviderResult:
    """
    Traduit un PaymentIntent en ProviderResult.
    - succeeded: paiement confirmé.
    - requires_action + redirect_to_url: authentification hors site (3-D Secure, wallets...).
    - requires_payment_method: refus, message last_payment_error repris tel quel.
    - autre statut (processing...): échec récupérable avec le statut en clair.
    """
    status = intent.get("status") or ""
    intent_id = intent.get("id")
    if status == SUCCEEDED:
        return ProviderResult(SUCCEEDED, payment_intent_id=intent_id)
    if status == REQUIRES_ACTION:
        next_action = intent.get("next_action") or {}
        redirect_url = (next_action.get("redirect_to_url") or {}).get("url")
        if redirect_url:
            return ProviderResult(REQUIRES_ACTION, payment_intent_id=intent_id, redirect_url=redirect_url)
        return ProviderResult(status, payment_intent_id=intent_id, error="Additional authentication is required to complete this payment.")
    if status == "requires_payment_method":
        last_error = intent.get("last_payment_error") or {}
        return ProviderResult(status, payment_intent_id=intent_id, error=last_error.get("message") or DEFAULT_DECLINE_MESSAGE)
    return ProviderResult(status or ERROR, payment_intent_id=intent_id, error=f"Payment status: {status or 'unknown'}")


def confirm_payment(*, client_secret: str, payment_method: Optional[str], return_url: str) -> ProviderResult:
    """
    Confirme le PaymentIntent lié au client secret.
    - payment_method: id pm_... produit par Stripe.js.
    - return_url: page de reprise si le moyen de paiement exige une redirection.
    Les erreurs Stripe (carte refusée, etc.) sont renvoyées comme ProviderResult(status="error").
    """
    require_stripe()
    intent_id = payment_intent_id_from_secret(client_secret)
    params: Dict[str, Any] = {"return_url": return_url}
    if payment_method:
        params["payment_method"] = payment_method
    try:
        intent = stripe.PaymentIntent.confirm(intent_id, **params)
    except stripe.StripeError as e:
        message = getattr(e, "user_message", None) or str(e) or DEFAULT_DECLINE_MESSAGE
        logger.warning("stripe confirm failed intent=%s: %s", intent_id, message)
        return ProviderResult(ERROR, payment_intent_id=intent_id, error=message)
    return result_from_intent(_as_dict(intent))


def retrieve_payment(payment_intent_id: str) -> ProviderResult:
    """Relit le PaymentIntent au retour d'une redirection hors site."""
    require_stripe()
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        message = getattr(e, "user_message", None) or str(e) or DEFAULT_DECLINE_MESSAGE
        logger.warning("stripe retrieve failed intent=%s: %s", payment_intent_id, message)
        return ProviderResult(ERROR, payment_intent_id=payment_intent_id, error=message)
    return result_from_intent(_as_dict(intent))
