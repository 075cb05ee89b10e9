"""HTTP middleware stack for the partnerships API.

Starlette runs middleware in reverse-add order, so the stack below is,
from the outside in: CORS, request id, rate limiting, then the routers
with the global exception handlers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cpms.config import Settings
from cpms.middleware.error_handler import setup_error_handlers
from cpms.middleware.logging import setup_logging
from cpms.middleware.rate_limit import RateLimitMiddleware
from cpms.middleware.request_id import RequestIdMiddleware

# Headers the admin dashboard reads from responses
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, exception handlers, and the middleware stack."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        login_requests_per_window=settings.rate_limit_login_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    # Outermost, so 429s and 500s carry CORS headers. Credentials are on
    # because the session token also travels as a cookie.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=EXPOSED_HEADERS,
    )
