from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
from storefront.utils.security import AUTH_TOKEN_COOKIE, ID_TOKEN_COOKIE


def client_key(request: Request) -> str:
    """Clé de limitation: jeton porteur haché si présent, sinon IP, suffixée du chemin."""
    token = request.cookies.get(AUTH_TOKEN_COOKIE) or request.cookies.get(ID_TOKEN_COOKIE)
    path = request.url.path
    if token:
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{digest}:{path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{path}"


def _local_hit(request: Request, key: str, times: int, seconds: int) -> None:
    now = time.time()
    store = getattr(request.app.state, "_rl_store", {})
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = hits
    request.app.state._rl_store = store


def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance de limitation de débit:
    - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (dev/tests).
    - rate_limit_enabled=False (lifespan): aucune limitation.
    - sinon fastapi-limiter (Redis). Une erreur du limiteur ne bloque pas la requête.
    """
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, client_key(request), times, seconds)
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        from fastapi_limiter.depends import RateLimiter

        async def _identifier(req: Request) -> str:
            return client_key(req)

        try:
            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible: pas de 429 en prod (activer LOCAL_RATE_LIMIT_FALLBACK=1 en dev)
            return
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    from fastapi_limiter import FastAPILimiter
    ready = getattr(FastAPILimiter, "redis", None) is not None
    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": ready,
        "backend": "redis" if ready else None,
        "local_fallback": os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1",
    }
