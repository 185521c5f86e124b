"""
Couche service du checkout: orchestre backend REST et Stripe pour un achat unique.

Séquence (aucun appel concurrent, aucun retry):
1) init_checkout: résout le site/package, calcule le montant, ouvre une session de paiement.
2) submit_checkout: valide le formulaire, confirme le paiement chez Stripe.
3) finalize_order: crée la commande, confirme le paiement côté backend, renvoie l'URL de succès.
Variante solde: pay_with_balance lit le solde, crée la commande payée puis débite le compte.
Rien n'est idempotent: une double soumission peut créer deux commandes pour un même
payment intent (la déduplication relève du backend).
"""
from typing import Any, Dict, Optional, Union
import logging
import math

from pydantic import TypeAdapter, ValidationError

from storefront.config import CHECKOUT_SUCCESS_PATH
from storefront.infra.api_client import ApiClient
from storefront.utils.security import GUEST_USER_ID
from . import repository
from . import stripe_client
from .models import (
    CheckoutContext,
    CheckoutForm,
    CheckoutInit,
    CheckoutSubmission,
    OrderDraft,
    Package,
    PaymentSession,
    Site,
    normalize_amount,
    field_errors,
    form_model_for,
    NO_ITEM,
    NOT_FOUND,
    PAYMENT_INIT_FAILED,
    INVALID_FORM,
    PROVIDER_FAILED,
    REQUIRES_ACTION,
    ORDER_FAILED,
    INSUFFICIENT_BALANCE,
    BALANCE_UNAVAILABLE,
    BALANCE,
    CARD,
    PAID,
)

logger = logging.getLogger(__name__)

NO_ITEM_MESSAGE = "No item selected"
NOT_FOUND_MESSAGE = "Item not found"
PAYMENT_INIT_MESSAGE = "Failed to initialize checkout"
ORDER_FAILED_MESSAGE = (
    "Your payment was received but we could not record your order. "
    "Please contact support with your payment reference."
)
BALANCE_ORDER_FAILED_MESSAGE = "We could not create your order. Your balance was not charged."
BALANCE_UNAVAILABLE_MESSAGE = "Could not read your account balance. Please try again."
SIGN_IN_FOR_BALANCE_MESSAGE = "Please sign in to pay with your account balance"

_ORDER_DRAFT = TypeAdapter(OrderDraft)


def success_url(order_id: str) -> str:
    sep = "&" if "?" in CHECKOUT_SUCCESS_PATH else "?"
    return f"{CHECKOUT_SUCCESS_PATH}{sep}order={order_id}"


def is_chargeable(amount: Union[int, float]) -> bool:
    return math.isfinite(amount) and amount > 0


def _order_id(order: Any) -> Optional[str]:
    if not isinstance(order, dict):
        return None
    value = order.get("_id") or order.get("id") or order.get("orderId")
    return str(value) if value else None


def resolve_item(api: ApiClient, site_id: Optional[str], package_id: Optional[str]) -> CheckoutInit:
    """
    Étape 1: lit l'article référencé (un seul GET).
    - Le package l'emporte si les deux références sont fournies.
    - Not-found, payload vide ou illisible => échec terminal NOT_FOUND.
    """
    if package_id:
        if site_id:
            logger.warning("checkout: site=%s et package=%s fournis, le package est retenu", site_id, package_id)
        result = repository.get_package(api, package_id)
        model = Package
    else:
        result = repository.get_site(api, site_id)
        model = Site

    if not result.ok or not result.data:
        return CheckoutInit(False, error=NOT_FOUND_MESSAGE, reason=NOT_FOUND)
    try:
        item = model.model_validate(result.data)
    except ValidationError:
        logger.exception("checkout: payload article invalide")
        return CheckoutInit(False, error=NOT_FOUND_MESSAGE, reason=NOT_FOUND)
    if not is_chargeable(item.charge_amount):
        logger.warning("checkout: %s=%s sans prix facturable (%s)", item.item_type, item.id, item.charge_amount)
        return CheckoutInit(False, error=NOT_FOUND_MESSAGE, reason=NOT_FOUND)
    return CheckoutInit(True, item=item)


def init_checkout(api: ApiClient, site_id: Optional[str] = None, package_id: Optional[str] = None) -> CheckoutInit:
    """
    Prépare une session de checkout.
    - Sans référence: NO_ITEM, aucun appel réseau.
    - Article introuvable: NOT_FOUND, pas de session de paiement demandée.
    - Échec de création de la session de paiement: PAYMENT_INIT_FAILED (terminal, formulaire non affiché).
    """
    site_id = (site_id or "").strip() or None
    package_id = (package_id or "").strip() or None
    if not site_id and not package_id:
        return CheckoutInit(False, error=NO_ITEM_MESSAGE, reason=NO_ITEM)

    resolved = resolve_item(api, site_id, package_id)
    if not resolved.success:
        return resolved
    item = resolved.item

    result = repository.create_payment_intent(api, item.id, item.charge_amount)
    client_secret = (result.data or {}).get("clientSecret") if result.ok and isinstance(result.data, dict) else None
    if not client_secret:
        return CheckoutInit(False, item=item, error=result.error or PAYMENT_INIT_MESSAGE, reason=PAYMENT_INIT_FAILED)

    logger.info("checkout: session ouverte %s=%s amount=%s", item.item_type, item.id, item.charge_amount)
    return CheckoutInit(True, item=item, payment_session=PaymentSession(client_secret=client_secret))


def validate_checkout_form(item_type: str, data: Dict[str, Any]):
    """Retourne (form, {}) si valide, sinon (None, {champ: message})."""
    try:
        return form_model_for(item_type).model_validate(data or {}), {}
    except ValidationError as e:
        return None, field_errors(e)


def build_order_draft(
    context: CheckoutContext,
    form: CheckoutForm,
    user_id: str,
    payment_intent_id: Optional[str],
    payment_method: str = CARD,
):
    """
    Brouillon de commande discriminé par orderType (site ou package).
    Carte: paymentStatus 'pending' jusqu'à la confirmation backend. Solde: 'paid' d'emblée.
    """
    fields: Dict[str, Any] = {
        "orderType": context.item_type,
        "user_id": user_id,
        "customer_name": form.customer_name,
        "customer_email": str(form.customer_email),
        "total_amount": context.amount,
        "stripe_payment_intent_id": payment_intent_id,
        "payment_method": payment_method,
        "article_topic": form.article_topic,
        "article_title": form.article_title,
        "anchor_text": form.anchor_text,
        "keywords": form.keywords,
        "special_instructions": form.special_instructions,
        "target_url": form.target_url,
    }
    if payment_method == BALANCE:
        fields["payment_status"] = PAID
    fields["site_id" if context.item_type == "site" else "package_id"] = context.item_id
    return _ORDER_DRAFT.validate_python(fields)


def finalize_order(
    api: ApiClient,
    context: CheckoutContext,
    form: CheckoutForm,
    user_id: str,
    payment_intent_id: str,
) -> CheckoutSubmission:
    """
    Étapes post-paiement (uniquement après succès confirmé par Stripe):
    - POST /orders (tentative unique). Échec => alerte générique, paiement capturé sans commande.
    - POST /payments/confirm (tentative unique). Échec journalisé, ne bloque pas la navigation.
    """
    draft = build_order_draft(context, form, user_id, payment_intent_id)
    created = repository.create_order(api, draft.to_payload())
    order_id = _order_id(created.data) if created.ok else None
    if not order_id:
        logger.error(
            "checkout: paiement %s capturé mais commande non créée (%s)",
            payment_intent_id, created.error or "réponse sans identifiant",
        )
        return CheckoutSubmission(
            False,
            error=ORDER_FAILED_MESSAGE,
            reason=ORDER_FAILED,
            payment_intent_id=payment_intent_id,
        )

    confirmed = repository.confirm_payment(api, payment_intent_id)
    if not confirmed.ok:
        logger.error("checkout: confirmation serveur du paiement %s échouée: %s", payment_intent_id, confirmed.error)

    logger.info("checkout: commande %s créée pour %s", order_id, payment_intent_id)
    return CheckoutSubmission(
        True,
        order_id=order_id,
        redirect_url=success_url(order_id),
        payment_intent_id=payment_intent_id,
    )


def submit_checkout(
    api: ApiClient,
    context: CheckoutContext,
    form_data: Dict[str, Any],
    payment_method: Optional[str],
    user_id: str,
    return_url: str,
) -> CheckoutSubmission:
    """
    Soumission du formulaire.
    - Validation avant tout appel Stripe (INVALID_FORM).
    - Erreur Stripe: message verbatim, récupérable, la session de paiement reste valide.
    - Redirection requise: renvoie l'URL hors site, le formulaire validé est rendu à l'appelant.
    - Succès: finalize_order.
    - payment_option=balance: paiement par solde (pay_with_balance), Stripe n'est pas appelé.
    """
    form, errors = validate_checkout_form(context.item_type, form_data)
    if errors:
        return CheckoutSubmission(
            False,
            error="Please fill in all required fields",
            reason=INVALID_FORM,
            field_errors=errors,
            recoverable=True,
        )
    if payment_option(form_data) == BALANCE:
        return pay_with_balance(api, context, form, user_id)

    provider = stripe_client.confirm_payment(
        client_secret=context.client_secret,
        payment_method=payment_method,
        return_url=return_url,
    )
    if provider.requires_redirect:
        return CheckoutSubmission(
            False,
            redirect_url=provider.redirect_url,
            reason=REQUIRES_ACTION,
            recoverable=True,
            form=form,
            payment_intent_id=provider.payment_intent_id,
        )
    if not provider.succeeded:
        return CheckoutSubmission(
            False,
            error=provider.error,
            reason=PROVIDER_FAILED,
            recoverable=True,
            form=form,
            payment_intent_id=provider.payment_intent_id,
        )

    return finalize_order(api, context, form, user_id, provider.payment_intent_id or context.payment_intent_id)


def resume_checkout(
    api: ApiClient,
    context: CheckoutContext,
    form: CheckoutForm,
    user_id: str,
    payment_intent_id: str,
) -> CheckoutSubmission:
    """Reprise au retour d'une authentification hors site: relit le PaymentIntent puis finalise."""
    if payment_intent_id != context.payment_intent_id:
        return CheckoutSubmission(False, error="Payment does not match this checkout", reason=PROVIDER_FAILED)
    provider = stripe_client.retrieve_payment(payment_intent_id)
    if not provider.succeeded:
        return CheckoutSubmission(
            False,
            error=provider.error or stripe_client.DEFAULT_DECLINE_MESSAGE,
            reason=PROVIDER_FAILED,
            recoverable=True,
            form=form,
            payment_intent_id=payment_intent_id,
        )
    return finalize_order(api, context, form, user_id, payment_intent_id)


def payment_option(form_data: Optional[Dict[str, Any]]) -> str:
    """Moyen de paiement choisi: 'balance' ou 'card' (défaut)."""
    data = form_data or {}
    value = str(data.get("payment_option") or data.get("paymentOption") or CARD).strip().lower()
    return BALANCE if value == BALANCE else CARD


def read_balance(api: ApiClient, user_id: str) -> Optional[float]:
    """Solde du compte (GET /users/balance/:id), None si illisible."""
    result = repository.get_balance(api, user_id)
    data = result.data if result.ok else None
    raw = data.get("balance") if isinstance(data, dict) else data
    try:
        balance = float(raw if raw is not None else 0)
    except (TypeError, ValueError):
        logger.warning("checkout: solde illisible pour %s: %r", user_id, raw)
        return None
    if not result.ok or not math.isfinite(balance):
        return None
    return balance


def pay_with_balance(
    api: ApiClient,
    context: CheckoutContext,
    form: CheckoutForm,
    user_id: str,
) -> CheckoutSubmission:
    """
    Paiement par le solde du compte (utilisateur identifié uniquement).
    - Solde illisible ou insuffisant: erreur récupérable, aucune commande créée.
    - POST /orders avec paymentMethod 'balance' et paymentStatus 'paid'.
    - POST /users/deduct-balance ensuite. Échec journalisé, la commande existe déjà.
    """
    if not user_id or user_id == GUEST_USER_ID:
        return CheckoutSubmission(
            False, error=SIGN_IN_FOR_BALANCE_MESSAGE, reason=BALANCE_UNAVAILABLE, recoverable=True, form=form
        )
    balance = read_balance(api, user_id)
    if balance is None:
        return CheckoutSubmission(
            False, error=BALANCE_UNAVAILABLE_MESSAGE, reason=BALANCE_UNAVAILABLE, recoverable=True, form=form
        )
    amount = context.amount
    if balance < amount:
        return CheckoutSubmission(
            False,
            error=f"Insufficient balance. You have ${balance:.2f}, but need ${float(amount):.2f}",
            reason=INSUFFICIENT_BALANCE,
            recoverable=True,
            form=form,
        )

    draft = build_order_draft(context, form, user_id, None, payment_method=BALANCE)
    created = repository.create_order(api, draft.to_payload())
    order_id = _order_id(created.data) if created.ok else None
    if not order_id:
        logger.error("checkout: commande payée par solde non créée user=%s (%s)", user_id, created.error)
        return CheckoutSubmission(
            False, error=BALANCE_ORDER_FAILED_MESSAGE, reason=ORDER_FAILED, recoverable=True, form=form
        )

    deducted = repository.deduct_balance(api, user_id, normalize_amount(amount))
    if not deducted.ok:
        logger.error("checkout: débit du solde échoué user=%s commande=%s: %s", user_id, order_id, deducted.error)

    logger.info("checkout: commande %s payée par solde user=%s", order_id, user_id)
    return CheckoutSubmission(True, order_id=order_id, redirect_url=success_url(order_id))
