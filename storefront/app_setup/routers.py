"""
Registre central des routers.
- Pages web: marketplace, checkout (formulaire, retour 3-D Secure, succès)
- API v1: catalogue, checkout, funds
- Health
"""
from fastapi import FastAPI
from storefront.catalog.views import web_router as catalog_web_router, api_router as catalog_api_router
from storefront.checkout.views import web_router as checkout_web_router, api_router as checkout_api_router
from storefront.funds import views as funds_views
from storefront.health.router import router as health_router


def register_routers(app: FastAPI) -> None:
    # Pages web (HTML)
    app.include_router(catalog_web_router)
    app.include_router(checkout_web_router)
    # API v1
    app.include_router(catalog_api_router)
    app.include_router(checkout_api_router)
    app.include_router(funds_views.router)
    # Health & monitoring
    app.include_router(health_router)
