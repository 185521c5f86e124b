from urllib.parse import urlparse
import socket
import httpx
from storefront.config import API_BASE_URL, API_TIMEOUT_SECONDS


def health_backend_info(transport=None):
    """Résolution DNS puis GET /health sur le backend REST (aucune authentification)."""
    parsed = urlparse(API_BASE_URL) if API_BASE_URL else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, parsed.port or (443 if parsed.scheme == "https" else 80))
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info = {
        "api_base_url": API_BASE_URL,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "status_code": None,
        "error": None,
    }
    try:
        with httpx.Client(timeout=API_TIMEOUT_SECONDS, transport=transport) as client:
            res = client.get(f"{API_BASE_URL}/health")
        info["status_code"] = res.status_code
        info["connect_ok"] = res.status_code < 500
    except httpx.HTTPError as e:
        info["error"] = str(e)
    return info
