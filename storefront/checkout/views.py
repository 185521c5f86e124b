# module storefront.checkout.views

"""Endpoints du checkout (pages HTML + API JSON).
- GET /checkout?site=<id>|package=<id>: résout l'article, ouvre la session de paiement, affiche le formulaire.
- POST /checkout: valide le formulaire, confirme le paiement Stripe, crée la commande puis redirige.
- GET /checkout/return: reprise après authentification hors site (3-D Secure...).
- GET /checkout/success?order=<id>: page de confirmation.
- payment_option=balance: paiement par le solde du compte (utilisateur connecté).
- /api/v1/checkout/init et /api/v1/checkout/submit: mêmes étapes en JSON.
État entre l'affichage et la soumission: CheckoutContext dans la session signée (SessionMiddleware).
Le montant débité vient toujours de ce contexte, jamais du navigateur.
"""
from typing import Any, Dict, Optional
import logging
import urllib.parse

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError
from starlette.status import HTTP_303_SEE_OTHER

from storefront.config import CHECKOUT_RETURN_PATH, STRIPE_PUBLIC_KEY
from storefront.infra.api_client import ApiClient, get_api_client
from storefront.utils.csrf import get_or_create_csrf_token, attach_csrf_cookie_if_missing
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import GUEST_USER_ID, AuthSession, get_auth_session
from storefront.utils.templates import templates
from storefront.checkout import repository as checkout_repository
from storefront.checkout import service as checkout_service
from storefront.checkout.models import (
    CheckoutContext,
    CheckoutSubmission,
    form_model_for,
    NO_ITEM,
    NOT_FOUND,
    INVALID_FORM,
    PROVIDER_FAILED,
    REQUIRES_ACTION,
    ORDER_FAILED,
    SESSION_EXPIRED,
    INSUFFICIENT_BALANCE,
    BALANCE_UNAVAILABLE,
)

logger = logging.getLogger(__name__)

web_router = APIRouter(tags=["Checkout Pages"])
api_router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])

SESSION_CONTEXT_KEY = "checkout"
SESSION_PENDING_KEY = "checkout_pending"
SESSION_EXPIRED_MESSAGE = "Your checkout session has expired. Please select an item again."

_STATUS_BY_REASON = {
    NO_ITEM: 400,
    NOT_FOUND: 404,
    INVALID_FORM: 400,
    PROVIDER_FAILED: 402,
    ORDER_FAILED: 502,
    SESSION_EXPIRED: 400,
    INSUFFICIENT_BALANCE: 402,
    BALANCE_UNAVAILABLE: 400,
}


def _session_context(request: Request) -> Optional[CheckoutContext]:
    raw = request.session.get(SESSION_CONTEXT_KEY)
    if not raw:
        return None
    try:
        return CheckoutContext.model_validate(raw)
    except ValidationError:
        logger.warning("checkout: contexte de session illisible, ignoré")
        request.session.pop(SESSION_CONTEXT_KEY, None)
        return None


def _clear_checkout(request: Request) -> None:
    request.session.pop(SESSION_CONTEXT_KEY, None)
    request.session.pop(SESSION_PENDING_KEY, None)


def _return_url(request: Request) -> str:
    return str(request.base_url).rstrip("/") + CHECKOUT_RETURN_PATH


def _account_balance(api: ApiClient, auth: AuthSession) -> Optional[float]:
    """Solde affiché au checkout, None pour un visiteur ou si illisible."""
    if not auth.is_authenticated or auth.user_id == GUEST_USER_ID:
        return None
    return checkout_service.read_balance(api, auth.user_id)


def _prefill(auth: AuthSession) -> Dict[str, Any]:
    return {"customer_name": auth.name or "", "customer_email": auth.email or ""}


def _marketplace_redirect(message: str) -> RedirectResponse:
    msg = urllib.parse.quote_plus(message)
    return RedirectResponse(url=f"/marketplace?error={msg}", status_code=HTTP_303_SEE_OTHER)


def _render_checkout(
    request: Request,
    *,
    status_code: int = 200,
    item=None,
    context: Optional[CheckoutContext] = None,
    error: Optional[str] = None,
    field_errors: Optional[Dict[str, str]] = None,
    values: Optional[Dict[str, Any]] = None,
    show_form: bool = True,
    balance: Optional[float] = None,
) -> HTMLResponse:
    csrf = get_or_create_csrf_token(request)
    resp = templates.TemplateResponse(
        request,
        "checkout.html",
        {
            "item": item,
            "context": context,
            "error": error,
            "field_errors": field_errors or {},
            "values": values or {},
            "show_form": show_form and context is not None,
            "csrf_token": csrf,
            "balance": balance,
        },
        status_code=status_code,
    )
    resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    attach_csrf_cookie_if_missing(resp, request, csrf)
    return resp


def _page_response(
    request: Request,
    context: CheckoutContext,
    submission: CheckoutSubmission,
    values: Dict[str, Any],
    balance: Optional[float] = None,
):
    """Traduit un CheckoutSubmission en réponse HTML (redirection ou formulaire ré-affiché)."""
    if submission.success:
        _clear_checkout(request)
        return RedirectResponse(url=submission.redirect_url, status_code=HTTP_303_SEE_OTHER)
    if submission.reason == REQUIRES_ACTION:
        request.session[SESSION_PENDING_KEY] = submission.form.model_dump(mode="json")
        return RedirectResponse(url=submission.redirect_url, status_code=HTTP_303_SEE_OTHER)
    if submission.reason == ORDER_FAILED and not submission.recoverable:
        # Paiement capturé: la session de paiement ne peut pas être rejouée
        _clear_checkout(request)
        return _render_checkout(request, status_code=502, error=submission.error, show_form=False)
    return _render_checkout(
        request,
        status_code=_STATUS_BY_REASON.get(submission.reason, 400),
        context=context,
        item=None,
        error=submission.error,
        field_errors=submission.field_errors,
        values=values,
        balance=balance,
    )


@web_router.get("/checkout", response_class=HTMLResponse)
def checkout_page(
    request: Request,
    site: Optional[str] = None,
    package: Optional[str] = None,
    auth: AuthSession = Depends(get_auth_session),
):
    """Affiche le checkout pour un site ou un package.
    - Sans référence: état « No item selected », aucun appel réseau.
    - Article introuvable: redirection vers la marketplace.
    - Session de paiement impossible: erreur terminale, formulaire non affiché.
    """
    _clear_checkout(request)
    api = get_api_client(auth)
    init = checkout_service.init_checkout(api, site_id=site, package_id=package)
    if not init.success:
        if init.reason == NOT_FOUND:
            return _marketplace_redirect(init.error)
        status_code = 400 if init.reason == NO_ITEM else 502
        return _render_checkout(request, status_code=status_code, item=init.item, error=init.error, show_form=False)

    context = init.context()
    request.session[SESSION_CONTEXT_KEY] = context.model_dump(mode="json")
    return _render_checkout(
        request, item=init.item, context=context, values=_prefill(auth), balance=_account_balance(api, auth)
    )


@web_router.post(
    "/checkout",
    response_class=HTMLResponse,
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
async def checkout_submit_page(request: Request, auth: AuthSession = Depends(get_auth_session)):
    """Soumission du formulaire HTML (payment_method fourni par Stripe.js, ou payment_option=balance)."""
    context = _session_context(request)
    if context is None:
        return _marketplace_redirect(SESSION_EXPIRED_MESSAGE)
    form_data = {k: v for k, v in (await request.form()).items() if isinstance(v, str)}
    api = get_api_client(auth)
    submission = checkout_service.submit_checkout(
        api,
        context,
        form_data,
        form_data.get("payment_method"),
        auth.user_id,
        _return_url(request),
    )
    balance = None if submission.success else _account_balance(api, auth)
    return _page_response(request, context, submission, form_data, balance)


@web_router.get("/checkout/return", response_class=HTMLResponse)
def checkout_return_page(
    request: Request,
    payment_intent: Optional[str] = None,
    auth: AuthSession = Depends(get_auth_session),
):
    """Retour de Stripe après authentification hors site: finalise la commande si le paiement a réussi."""
    context = _session_context(request)
    pending = request.session.get(SESSION_PENDING_KEY)
    if context is None or not pending or not payment_intent:
        return _marketplace_redirect(SESSION_EXPIRED_MESSAGE)
    form = form_model_for(context.item_type).model_validate(pending)
    request.session.pop(SESSION_PENDING_KEY, None)
    submission = checkout_service.resume_checkout(get_api_client(auth), context, form, auth.user_id, payment_intent)
    return _page_response(request, context, submission, pending)


@web_router.get("/checkout/success", response_class=HTMLResponse)
def checkout_success_page(
    request: Request,
    order: Optional[str] = None,
    auth: AuthSession = Depends(get_auth_session),
):
    """Confirmation de commande. Sans identifiant ou commande illisible: retour à l'accueil."""
    if not order:
        return RedirectResponse(url="/", status_code=HTTP_303_SEE_OTHER)
    result = checkout_repository.get_order(get_api_client(auth), order)
    if not result.ok or not isinstance(result.data, dict):
        return RedirectResponse(url="/", status_code=HTTP_303_SEE_OTHER)
    resp = templates.TemplateResponse(request, "checkout_success.html", {"order": result.data, "order_id": order})
    resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    return resp


def _submission_json(request: Request, submission: CheckoutSubmission) -> JSONResponse:
    if submission.success:
        _clear_checkout(request)
        return JSONResponse({
            "status": "succeeded",
            "orderId": submission.order_id,
            "redirectUrl": submission.redirect_url,
        })
    if submission.reason == REQUIRES_ACTION:
        request.session[SESSION_PENDING_KEY] = submission.form.model_dump(mode="json")
        return JSONResponse({"status": REQUIRES_ACTION, "redirectUrl": submission.redirect_url})
    if submission.reason == ORDER_FAILED and not submission.recoverable:
        _clear_checkout(request)
    raise HTTPException(
        status_code=_STATUS_BY_REASON.get(submission.reason, 400),
        detail={
            "message": submission.error,
            "reason": submission.reason,
            "fieldErrors": submission.field_errors,
            "recoverable": submission.recoverable,
        },
    )


@api_router.get("/init")
def api_init_checkout(
    request: Request,
    site: Optional[str] = None,
    package: Optional[str] = None,
    auth: AuthSession = Depends(get_auth_session),
):
    """Variante JSON de GET /checkout.
    - Retour: {itemType, item, amount, clientSecret, publishableKey, balance}
    - balance: solde du compte connecté, null pour un visiteur
    - Erreurs: 400 (aucun article), 404 (introuvable), 502 (session de paiement)
    """
    _clear_checkout(request)
    api = get_api_client(auth)
    init = checkout_service.init_checkout(api, site_id=site, package_id=package)
    if not init.success:
        status_code = _STATUS_BY_REASON.get(init.reason, 502)
        raise HTTPException(status_code=status_code, detail={"message": init.error, "reason": init.reason})

    context = init.context()
    request.session[SESSION_CONTEXT_KEY] = context.model_dump(mode="json")
    return {
        "itemType": init.item_type,
        "item": init.item.model_dump(mode="json"),
        "amount": init.amount,
        "clientSecret": context.client_secret,
        "publishableKey": STRIPE_PUBLIC_KEY,
        "balance": _account_balance(api, auth),
    }


@api_router.post("/submit", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def api_submit_checkout(request: Request, auth: AuthSession = Depends(get_auth_session)):
    """Variante JSON de POST /checkout.
    - Entrée: {name, email, targetUrl?, articleTopic?, ..., paymentMethod, paymentOption?}
    - paymentOption "balance": paiement par solde, 402 si solde insuffisant
    - 200: {status: "succeeded", orderId, redirectUrl} ou {status: "requires_action", redirectUrl}
    - 400 formulaire invalide / session expirée, 402 refus Stripe (récupérable), 502 commande non créée
    """
    context = _session_context(request)
    if context is None:
        raise HTTPException(status_code=400, detail={"message": SESSION_EXPIRED_MESSAGE, "reason": SESSION_EXPIRED})
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail={"message": "Invalid JSON body", "reason": INVALID_FORM})

    payment_method = body.get("paymentMethod") or body.get("payment_method")
    submission = checkout_service.submit_checkout(
        get_api_client(auth),
        context,
        body,
        payment_method,
        auth.user_id,
        _return_url(request),
    )
    return _submission_json(request, submission)
