"""
Factory d'application utilisée par les entrypoints (storefront.asgi, python -m storefront)
et par les tests.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_force_https_middleware
from .security import register_security_middleware
from .exceptions import register_exception_handlers
from .routes import register_routes
from .routers import register_routers
from storefront.config import COOKIE_SECURE
from storefront.utils.csrf import register_csrf_middleware


def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - CSRF, en-têtes de sécurité, no-cache
      - middlewares de base (session, CORS, hosts); ajoutés après pour envelopper les précédents
      - gestionnaires d'exceptions, routes simples et routers
    """
    app = FastAPI(title="Marketplace Storefront", lifespan=lifespan)
    register_csrf_middleware(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_basic_middlewares(app)
    if COOKIE_SECURE:
        register_force_https_middleware(app)
    register_exception_handlers(app)
    register_routes(app)
    register_routers(app)
    return app
