"""
Admin gate: resolve a bearer credential and require the admin role.

The provisioning flows must only run for callers whose stored profile role is
`admin`. The gate raises `PermissionError` with a short code; web adapters
map `unauthenticated` to 401 and `forbidden` to 403.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from storage.ports import IdentityStore, RecordStore, StoreError

from .domain import ADMIN_ROLE


def bearer_token(authorization: Optional[str]) -> str:
    """Return the token part of an `Authorization: Bearer <token>` header."""
    value = (authorization or "").strip()
    if value[:7].lower() == "bearer ":
        return value[7:].strip()
    return ""


@dataclass
class AdminGate:
    identities: IdentityStore
    records: RecordStore

    def require_admin(self, authorization: Optional[str]) -> str:
        """Return the requester's user id when the caller is an admin."""
        token = bearer_token(authorization)
        if not token:
            raise PermissionError("unauthenticated")
        user = self.identities.resolve_user(token)
        if not user or not user.get("id"):
            raise PermissionError("unauthenticated")
        user_id = str(user["id"])
        try:
            role = self.records.get_profile_role(user_id)
        except StoreError:
            # An unreadable profile is treated like a missing one.
            role = None
        if role != ADMIN_ROLE:
            raise PermissionError("forbidden")
        return user_id


__all__ = ["AdminGate", "bearer_token"]
