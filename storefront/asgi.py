"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn -k uvicorn.workers.UvicornWorker).
Toute la configuration est centralisée dans storefront.app_setup.factory.
"""
from storefront.app_setup.factory import create_app

app = create_app()
