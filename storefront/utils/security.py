"""
Session d'authentification explicite (par requête).

Le storefront ne gère pas l'authentification: il relaie seulement le jeton porteur
vers le backend REST. Deux sources possibles:
- le JWT émis par le backend (cookie auth_token), prioritaire;
- le jeton du fournisseur d'identité (Firebase: en-tête Authorization ou cookie id_token).
Les claims sont lus sans vérification de signature: c'est le backend qui valide.
"""
from typing import Optional, Dict, Any
import logging

import jwt
from fastapi import Request, HTTPException, Depends
from fastapi.responses import Response
from storefront.config import COOKIE_SECURE

logger = logging.getLogger(__name__)

AUTH_TOKEN_COOKIE = "auth_token"
ID_TOKEN_COOKIE = "id_token"
GUEST_USER_ID = "guest"

# Claims candidats pour l'identifiant utilisateur (JWT backend puis Firebase)
_USER_ID_CLAIMS = ("id", "userId", "user_id", "uid", "sub")


def read_claims(token: Optional[str]) -> Dict[str, Any]:
    """Décode un JWT sans vérifier la signature. Retourne {} si le jeton est illisible."""
    if not token:
        return {}
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        logger.warning("Jeton porteur illisible, claims ignorés")
        return {}


class AuthSession:
    def __init__(self, jwt_token: Optional[str] = None, identity_token: Optional[str] = None):
        self.jwt_token = (jwt_token or "").strip() or None
        self.identity_token = (identity_token or "").strip() or None

    def bearer(self) -> Optional[str]:
        """Jeton à joindre aux appels backend: JWT stocké d'abord, jeton d'identité sinon."""
        return self.jwt_token or self.identity_token

    @property
    def is_authenticated(self) -> bool:
        return self.bearer() is not None

    @property
    def claims(self) -> Dict[str, Any]:
        return read_claims(self.bearer())

    @property
    def user_id(self) -> str:
        claims = self.claims
        for name in _USER_ID_CLAIMS:
            value = claims.get(name)
            if value:
                return str(value)
        return GUEST_USER_ID

    @property
    def email(self) -> Optional[str]:
        return self.claims.get("email")

    @property
    def name(self) -> Optional[str]:
        claims = self.claims
        return claims.get("name") or claims.get("fullName")


def get_auth_session(request: Request) -> AuthSession:
    """Construit l'AuthSession de la requête (cookie auth_token, puis Bearer/cookie id_token)."""
    identity_token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        identity_token = auth_header[7:].strip()
    if not identity_token:
        identity_token = request.cookies.get(ID_TOKEN_COOKIE)
    return AuthSession(jwt_token=request.cookies.get(AUTH_TOKEN_COOKIE), identity_token=identity_token)


def require_user(auth: AuthSession = Depends(get_auth_session)) -> AuthSession:
    if not auth.is_authenticated or auth.user_id == GUEST_USER_ID:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


def clear_auth_cookies(response: Response):
    """Déconnexion: supprime les deux jetons porteurs côté navigateur."""
    response.delete_cookie(AUTH_TOKEN_COOKIE, path="/", secure=COOKIE_SECURE)
    response.delete_cookie(ID_TOKEN_COOKIE, path="/", secure=COOKIE_SECURE)
