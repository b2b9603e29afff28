"""CORS for the web client.

Callers identify themselves with the identity provider's ``X-User-*``
headers, so those are the custom request headers a preflight may ask for.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ptracker.config import Settings

IDENTITY_HEADERS = ["X-User-Id", "X-User-Email", "X-User-Name"]
ALLOWED_HEADERS = ["Content-Type", "Authorization", "X-Request-Id", *IDENTITY_HEADERS]
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"]
ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    # Credentials are never allowed together with a wildcard origin.
    wildcard = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not wildcard,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=EXPOSED_HEADERS,
        max_age=settings.cors_max_age_seconds,
    )
