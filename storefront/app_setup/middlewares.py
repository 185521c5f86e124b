"""
Middlewares transverses du storefront.
- register_basic_middlewares: session signée (contexte de checkout), CORS, TrustedHost, X-Forwarded-*.
- register_no_cache_middleware: pas de cache sur /checkout et ses sous-pages.
- register_force_https_middleware: redirection HTTPS derrière un proxy.
L'ordre d'ajout compte: le dernier middleware ajouté s'exécute en premier.
"""
from fastapi import Request, FastAPI
from fastapi.responses import RedirectResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
from storefront.config import COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS, SESSION_SECRET_KEY

NO_CACHE_PREFIXES = ("/checkout", "/api/v1/checkout", "/api/v1/funds")


def register_basic_middlewares(app: FastAPI) -> None:
    """
    - SessionMiddleware: cookie signé (itsdangerous) portant le CheckoutContext.
    - CORSMiddleware: origines définies par CORS_ORIGINS.
    - TrustedHostMiddleware: limite les hôtes acceptés.
    - ProxyHeadersMiddleware: fait confiance aux en-têtes x-forwarded-*.
    """
    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET_KEY,
        session_cookie="storefront_session",
        same_site="lax",
        https_only=COOKIE_SECURE,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])


def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_cache_for_checkout(request: Request, call_next):
        response = await call_next(request)
        path = request.url.path.rstrip("/")
        if path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response


def register_force_https_middleware(app: FastAPI) -> None:
    """Force HTTP -> HTTPS lorsqu'un proxy place x-forwarded-proto=http (ajouté en dernier)."""
    @app.middleware("http")
    async def force_https(request: Request, call_next):
        if request.headers.get("x-forwarded-proto") == "http":
            url = str(request.url.replace(scheme="https"))
            return RedirectResponse(url, status_code=301)
        return await call_next(request)
