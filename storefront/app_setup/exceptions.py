"""
Gestionnaire d'exceptions HTTP.
- 401/403 sur une page HTML: redirection vers la marketplace avec le message (?error=...).
- API (/api/*) ou client JSON: réponse FastAPI standard {"detail": ...}.
"""
import urllib.parse
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def html_redirect_on_auth_errors(request: Request, exc: HTTPException):
        if exc.status_code in (401, 403):
            accept = (request.headers.get("accept") or "").lower()
            is_api = request.url.path.startswith("/api/")
            if "text/html" in accept and not is_api:
                detail = str(getattr(exc, "detail", "")) or (
                    "Please sign in" if exc.status_code == 401 else "Access denied"
                )
                msg = urllib.parse.quote_plus(detail)
                return RedirectResponse(url=f"/marketplace?error={msg}", status_code=HTTP_303_SEE_OTHER)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
