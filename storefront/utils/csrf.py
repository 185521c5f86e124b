# module storefront.utils.csrf
from fastapi import FastAPI, Request
from fastapi.responses import Response, JSONResponse
import secrets
import urllib.parse
from storefront.config import COOKIE_SECURE
from storefront.utils.security import AUTH_TOKEN_COOKIE, ID_TOKEN_COOKIE

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_FORM_FIELD = "csrf_token"
CSRF_EXEMPT_PREFIXES = ("/health",)


def get_or_create_csrf_token(request: Request) -> str:
    """Renvoie le token CSRF existant (cookie) ou en crée un nouveau."""
    return request.cookies.get(CSRF_COOKIE_NAME) or secrets.token_urlsafe(32)


def attach_csrf_cookie_if_missing(response: Response, request: Request, token: str) -> None:
    """Pose le cookie CSRF si absent (lisible en JS pour l'en-tête X-CSRF-Token)."""
    if not request.cookies.get(CSRF_COOKIE_NAME):
        response.set_cookie(
            key=CSRF_COOKIE_NAME,
            value=token,
            httponly=False,
            secure=COOKIE_SECURE,
            samesite="Lax",
            max_age=60 * 60,
            path="/",
        )


async def _form_token(request: Request) -> str:
    """Lit csrf_token dans un body urlencoded sans consommer le flux pour la route."""
    body = await request.body()

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}
    request._receive = receive

    parsed = urllib.parse.parse_qs(body.decode(errors="ignore"))
    values = parsed.get(CSRF_FORM_FIELD, []) + parsed.get(CSRF_HEADER_NAME, [])
    return values[0] if values else ""


def register_csrf_middleware(app: FastAPI) -> None:
    """
    Double-submit cookie: sur POST/PUT/PATCH/DELETE d'un utilisateur porteur d'un jeton,
    le header X-CSRF-Token (ou le champ csrf_token du formulaire) doit égaler le cookie csrf_token.
    """
    @app.middleware("http")
    async def csrf_protection(request: Request, call_next):
        method = request.method.upper()
        path = request.url.path.rstrip("/") or "/"
        has_session = bool(request.cookies.get(AUTH_TOKEN_COOKIE) or request.cookies.get(ID_TOKEN_COOKIE))
        is_state_changing = method in ("POST", "PUT", "PATCH", "DELETE")
        is_exempt = path.startswith(CSRF_EXEMPT_PREFIXES)

        token = get_or_create_csrf_token(request)

        if is_state_changing and has_session and not is_exempt:
            cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "")
            provided = request.headers.get(CSRF_HEADER_NAME, "")
            if not provided and request.headers.get("content-type", "").startswith("application/x-www-form-urlencoded"):
                provided = await _form_token(request)
            if not cookie_token or not provided or not secrets.compare_digest(provided, cookie_token):
                return JSONResponse(status_code=403, content={"detail": "CSRF verification failed"})

        response = await call_next(request)
        attach_csrf_cookie_if_missing(response, request, token)
        return response
