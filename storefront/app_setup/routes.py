"""
Routes simples (hors routers).
- / : redirige vers la marketplace.
- /auth/logout : efface les jetons et le contexte de checkout.
- /favicon.ico : 204 pour éviter des 404 dans les logs.
"""
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse, Response
from starlette.status import HTTP_204_NO_CONTENT, HTTP_303_SEE_OTHER
from storefront.utils.security import clear_auth_cookies


def register_routes(app: FastAPI) -> None:
    @app.get("/", include_in_schema=False)
    def root_redirect():
        return RedirectResponse(url="/marketplace", status_code=HTTP_303_SEE_OTHER)

    @app.get("/auth/logout", include_in_schema=False)
    def logout(request: Request):
        request.session.clear()
        resp = RedirectResponse(url="/marketplace", status_code=HTTP_303_SEE_OTHER)
        clear_auth_cookies(resp)
        return resp

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=HTTP_204_NO_CONTENT)
