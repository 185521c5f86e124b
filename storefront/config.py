# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

TEMPLATES_DIR = BASE_DIR / "templates"

"""
Configuration centrale du storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Expose l'URL du backend REST (API_BASE_URL) et son timeout
- Normalise et expose les clés Stripe, sécurité cookies, CORS/hosts
- Fournit les chemins de redirection du checkout (succès, retour 3-D Secure)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Backend REST: base URL (accepte aussi la variable héritée du front Next.js)
API_BASE_URL = _clean_env(
    os.getenv("API_BASE_URL") or os.getenv("NEXT_PUBLIC_API_URL") or "http://localhost:5000/api/v1"
)
if API_BASE_URL and not API_BASE_URL.startswith("http"):
    API_BASE_URL = "https://" + API_BASE_URL
API_BASE_URL = API_BASE_URL.rstrip("/")
API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "10"))

# Stripe: clé publique (Stripe.js côté navigateur) et clé secrète (SDK serveur)
STRIPE_PUBLIC_KEY = _clean_env(
    os.getenv("STRIPE_PUBLIC_KEY") or os.getenv("NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY") or ""
)
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Pages du checkout
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/checkout/success")
CHECKOUT_RETURN_PATH = os.getenv("CHECKOUT_RETURN_PATH", "/checkout/return")

# Montants autorisés pour le rechargement du solde
FUNDS_MIN_AMOUNT = float(os.getenv("FUNDS_MIN_AMOUNT", "10"))
FUNDS_MAX_AMOUNT = float(os.getenv("FUNDS_MAX_AMOUNT", "10000"))
