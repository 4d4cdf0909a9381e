"""
Storage ports used by provisioning, the admin gate and notifications.

Keep these small and framework-agnostic so tests can supply simple fakes.
Adapters translate every backend rejection into `StoreError` carrying the
backend's own message; callers never see SDK exception types.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol


class StoreError(Exception):
    """A backing-store call (identity admin API or table request) was rejected.

    `message` is the text surfaced to API callers unchanged.
    """

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation


class IdentityStore(Protocol):
    """Hosted identity service (auth users).

    Users are returned as plain dicts with at least `id` and `email`.
    """

    def invite_user(self, email: str, *, metadata: Dict[str, Any]) -> Dict[str, Any]: ...

    def create_user(
        self,
        email: str,
        *,
        password: str,
        metadata: Dict[str, Any],
        email_confirm: bool = True,
    ) -> Dict[str, Any]: ...

    def delete_user(self, user_id: str) -> None: ...

    def resolve_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """Return the user behind a bearer token, or None when it is invalid."""
        ...


class RecordStore(Protocol):
    """Relational tables touched by the provisioning flows."""

    def get_profile_role(self, user_id: str) -> Optional[str]: ...

    def upsert_profile(self, row: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete_profile(self, user_id: str) -> None: ...

    def upsert_staff_member(self, row: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete_staff_member(self, user_id: str) -> None: ...

    def upsert_permissions(self, row: Dict[str, Any]) -> Dict[str, Any]: ...

    def delete_permissions(self, user_id: str) -> None: ...

    def upsert_trainer(self, row: Dict[str, Any]) -> Dict[str, Any]: ...

    def insert_trainer(self, row: Dict[str, Any]) -> Dict[str, Any]: ...


class ClientPackageReader(Protocol):
    """Read side of `client_packages` joined with package and client data.

    Rows carry `id, client_id, sessions_remaining, expiry_date, status` plus
    nested `packages {name, sessions_included}` and
    `clients {first_name, last_name, email}`.
    """

    def list_active_expiring_between(self, *, after: str, until: str) -> List[Dict[str, Any]]:
        """Active packages with `after < expiry_date <= until` (ISO dates)."""
        ...

    def list_active_with_sessions_at_most(self, threshold: int) -> List[Dict[str, Any]]:
        """Active packages with `0 < sessions_remaining <= threshold`."""
        ...


__all__ = ["StoreError", "IdentityStore", "RecordStore", "ClientPackageReader"]
