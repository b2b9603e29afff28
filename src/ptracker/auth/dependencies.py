"""FastAPI authentication dependencies.

Authentication itself happens at the identity provider in front of the API;
the verified identity arrives in X-User-* headers. The display name may be
percent-encoded so that non-ASCII names survive the header transport.
"""

from __future__ import annotations

from urllib.parse import unquote

from fastapi import Depends, Header, HTTPException

from ptracker.auth.gate import Identity
from ptracker.dependencies import get_data_service
from ptracker.service.data_service import DataService


async def get_identity(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
    service: DataService = Depends(get_data_service),
) -> Identity:
    """Resolve the caller and their roles. Raises 401 when not authenticated."""
    if not x_user_id or not x_user_email:
        raise HTTPException(status_code=401, detail="Authentication required")
    return service.gate.identify(
        user_id=x_user_id.strip(),
        email=x_user_email.strip(),
        full_name=unquote(x_user_name or "").strip(),
    )


async def get_registered_identity(
    identity: Identity = Depends(get_identity),
    service: DataService = Depends(get_data_service),
) -> Identity:
    """Same as get_identity but also records the interaction (upsert)."""
    await service.upsert_user(identity)
    return identity
