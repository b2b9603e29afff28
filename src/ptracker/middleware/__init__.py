"""HTTP middleware stack.

Outermost first, a request passes CORS, request id tagging and then the
per-caller rate limiter. Error handlers turn ``PTrackerError`` into JSON.
"""

from fastapi import FastAPI

from ptracker.config import Settings
from ptracker.middleware.cors import setup_cors
from ptracker.middleware.error_handler import setup_error_handlers
from ptracker.middleware.logging import setup_logging
from ptracker.middleware.rate_limit import RateLimitMiddleware
from ptracker.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging and register handlers and middleware on ``app``.

    Starlette wraps in reverse-add order, so the last one added is outermost.
    A non-positive ``rate_limit_requests`` leaves the limiter out entirely.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    # CORS headers must also reach 429 and error responses.
    setup_cors(app, settings)
