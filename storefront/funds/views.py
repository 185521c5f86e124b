# module storefront.funds.views
"""Rechargement du solde (utilisateur authentifié).
- POST /api/v1/funds/create-intent {amount}: 400 hors bornes, 502 si le backend échoue.
- POST /api/v1/funds/confirm {paymentIntentId}
"""
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, Request
from storefront.infra.api_client import get_api_client
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import AuthSession, require_user
from storefront.funds import service as funds_service
from storefront.funds.service import FundsError

router = APIRouter(prefix="/api/v1/funds", tags=["Funds API"])


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    return body


@router.post("/create-intent", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
async def create_intent(request: Request, auth: AuthSession = Depends(require_user)):
    body = await _json_body(request)
    try:
        return funds_service.create_intent(get_api_client(auth), auth.user_id, body.get("amount"))
    except FundsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/confirm", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
async def confirm(request: Request, auth: AuthSession = Depends(require_user)):
    body = await _json_body(request)
    try:
        _, data = funds_service.confirm(get_api_client(auth), body.get("paymentIntentId"))
    except FundsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": data}
