from fastapi import FastAPI
from storefront.config import API_BASE_URL, COOKIE_SECURE

# Stripe.js: script, iframes (3-D Secure, Elements) et appels API depuis le navigateur
STRIPE_SCRIPT_SOURCES = ["https://js.stripe.com"]
STRIPE_FRAME_SOURCES = ["https://js.stripe.com", "https://hooks.stripe.com"]
STRIPE_CONNECT_SOURCES = ["https://api.stripe.com"]


def build_csp() -> str:
    connect = ["'self'", *STRIPE_CONNECT_SOURCES]
    if API_BASE_URL:
        connect.append(API_BASE_URL.rstrip("/"))
    cdns = ["https://cdn.jsdelivr.net", "https://unpkg.com", "https://cdn.tailwindcss.com"]
    return (
        "default-src 'self'; "
        "base-uri 'self'; object-src 'none'; frame-ancestors 'none'; "
        "img-src 'self' data: blob: https:; "
        f"style-src 'self' 'unsafe-inline' {' '.join(cdns)}; "
        f"script-src 'self' 'unsafe-inline' {' '.join(STRIPE_SCRIPT_SOURCES + cdns)}; "
        f"frame-src {' '.join(STRIPE_FRAME_SOURCES)}; "
        f"connect-src {' '.join(connect + cdns)}"
    )


def register_security_middleware(app: FastAPI) -> None:
    csp = build_csp()

    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=(), payment=(self)")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
        response.headers["Content-Security-Policy"] = csp
        return response
