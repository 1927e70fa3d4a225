"""Middleware registration."""

from fastapi import FastAPI

from gkey.config import Settings
from gkey.middleware.cors import setup_cors
from gkey.middleware.error_handler import setup_error_handlers
from gkey.middleware.logging import setup_logging
from gkey.middleware.rate_limit import RateLimitMiddleware
from gkey.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware. Last added runs outermost, so CORS wraps 429 responses."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
