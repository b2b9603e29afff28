"""Admin gate: role resolution and capability checks.

Identities come from the external identity provider and are trusted
verbatim. The gate only decides which roles an identity carries; the
configured administrator addresses are the sole source of the admin role.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from ptracker.errors import ForbiddenError


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    """An authenticated caller."""

    user_id: str
    email: str
    full_name: str = ""
    roles: frozenset[Role] = field(default_factory=lambda: frozenset({Role.USER}))

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles


class AdminGate:
    """Authorization predicate consulted by every admin-only mutation."""

    def __init__(self, admin_emails: Iterable[str]) -> None:
        self._admin_emails = frozenset(e.strip().lower() for e in admin_emails if e.strip())

    def is_admin(self, user_id: str, email: str) -> bool:  # noqa: ARG002
        return bool(email) and email.strip().lower() in self._admin_emails

    def identify(self, user_id: str, email: str, full_name: str = "") -> Identity:
        """Build an Identity with its roles resolved."""
        roles = {Role.USER}
        if self.is_admin(user_id, email):
            roles.add(Role.ADMIN)
        return Identity(user_id=user_id, email=email, full_name=full_name, roles=frozenset(roles))


def require_admin(identity: Identity, action: str = "perform this action") -> None:
    """Fail fast unless the identity holds the admin capability."""
    if not identity.is_admin:
        msg = f"Access denied: only the administrator can {action}"
        raise ForbiddenError(msg)
