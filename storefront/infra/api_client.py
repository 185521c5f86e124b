"""
Client HTTP du backend REST (httpx).

- Joint `Authorization: Bearer <token>` depuis l'AuthSession de la requête.
- Déballe l'enveloppe `{"data": ...}` renvoyée par le backend.
- Convertit les erreurs réseau/HTTP en BackendError avec le message du body
  (champ `message`, puis `error`) ou un message générique.
- ApiResult: résultat explicite d'un appel (ok/data/error) utilisé par les repositories.
"""
from typing import Any, Dict, Optional
import logging

import httpx
from storefront.config import API_BASE_URL, API_TIMEOUT_SECONDS
from storefront.utils.security import AuthSession

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class BackendError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ApiResult:
    def __init__(
        self,
        ok: bool,
        data: Any = None,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.ok = ok
        self.data = data
        self.error = error
        self.status_code = status_code

    @classmethod
    def success(cls, data: Any) -> "ApiResult":
        return cls(True, data=data)

    @classmethod
    def failure(cls, error: str, status_code: Optional[int] = None) -> "ApiResult":
        return cls(False, error=error, status_code=status_code)

    @property
    def not_found(self) -> bool:
        return not self.ok and self.status_code == 404

    def __repr__(self) -> str:
        return f"ApiResult(ok={self.ok}, status_code={self.status_code}, error={self.error!r})"


def error_message(body: Any, fallback: str = GENERIC_ERROR_MESSAGE) -> str:
    """Message d'erreur du backend: body.message, puis body.error, sinon fallback."""
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return fallback


def unwrap(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ApiClient:
    def __init__(
        self,
        base_url: str = API_BASE_URL,
        session: Optional[AuthSession] = None,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or AuthSession()
        self.timeout = timeout
        self._transport = transport

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.session.bearer()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, path: str, *, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, url, json=json, params=params, headers=self.headers())
        except httpx.HTTPError as e:
            logger.warning("Network error %s %s: %s", method, path, e)
            raise BackendError(GENERIC_ERROR_MESSAGE) from e

        body = _safe_json(response)
        if response.is_error:
            message = error_message(body)
            logger.warning("API error %s %s -> %s %s", method, path, response.status_code, body)
            raise BackendError(message, status_code=response.status_code)
        return unwrap(body)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)


def get_api_client(session: Optional[AuthSession] = None) -> ApiClient:
    """Client backend au nom de la session fournie (anonyme si None)."""
    return ApiClient(session=session)


def call(label: str, fn, *args, **kwargs) -> ApiResult:
    """Exécute un appel backend et le convertit en ApiResult (aucun retry)."""
    try:
        return ApiResult.success(fn(*args, **kwargs))
    except BackendError as e:
        logger.error("%s failed (status=%s): %s", label, e.status_code, e.message)
        return ApiResult.failure(e.message, e.status_code)
