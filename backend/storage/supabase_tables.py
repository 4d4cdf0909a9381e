"""
Supabase-backed table adapter for provisioning and notifications.

This adapter implements `RecordStore` and `ClientPackageReader` using a
provided Supabase client. It is intentionally duck-typed to avoid a hard
dependency during testing. The client is expected to expose
`.table(name)` returning a PostgREST request builder offering
`select/upsert/insert/delete/eq/lte/gt/maybe_single/execute`.

Security:
- The caller must ensure the client is initialized with the Service Role key;
  provisioning writes bypass row level security.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .config import (
    CLIENT_PACKAGE_COLUMNS,
    CLIENT_PACKAGES_TABLE,
    PROFILES_TABLE,
    STAFF_MEMBERS_TABLE,
    STAFF_PERMISSIONS_TABLE,
    TRAINERS_TABLE,
    USER_KEY,
)
from .ports import StoreError


def error_message(exc: BaseException) -> str:
    """Extract the human-readable message from a Supabase/PostgREST error.

    postgrest's APIError and the auth errors both expose `.message`; fall back
    to `str(exc)` for anything else.
    """
    msg = getattr(exc, "message", None)
    if isinstance(msg, str) and msg:
        return msg
    return str(exc) or exc.__class__.__name__


class SupabaseRecordStore:
    """Table access for profiles, staff, permissions, trainers and packages."""

    def __init__(self, client: Any):
        # Duck-typed supabase client, e.g., from `supabase import create_client(...)`.
        self._client = client

    # --- Helpers -----------------------------------------------------------------

    def _run(self, operation: str, build: Callable[[], Any]) -> Any:
        try:
            res = build().execute()
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(error_message(exc), operation=operation) from exc
        # maybe_single() yields None instead of a response when no row matches.
        if res is None:
            return None
        return getattr(res, "data", None)

    @staticmethod
    def _first_row(data: Any, operation: str) -> Dict[str, Any]:
        if isinstance(data, list):
            if not data:
                raise StoreError("No row returned", operation=operation)
            return dict(data[0])
        if isinstance(data, dict):
            return dict(data)
        raise StoreError("No row returned", operation=operation)

    def _upsert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        op = f"upsert:{table}"
        data = self._run(op, lambda: self._client.table(table).upsert([row], on_conflict=USER_KEY))
        return self._first_row(data, op)

    def _delete_for_user(self, table: str, user_id: str) -> None:
        self._run(f"delete:{table}", lambda: self._client.table(table).delete().eq(USER_KEY, user_id))

    # --- RecordStore -------------------------------------------------------------

    def get_profile_role(self, user_id: str) -> Optional[str]:
        data = self._run(
            f"select:{PROFILES_TABLE}",
            lambda: self._client.table(PROFILES_TABLE).select("role").eq(USER_KEY, user_id).maybe_single(),
        )
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            return None
        role = data.get("role")
        return str(role) if role is not None else None

    def upsert_profile(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._upsert(PROFILES_TABLE, row)

    def delete_profile(self, user_id: str) -> None:
        self._delete_for_user(PROFILES_TABLE, user_id)

    def upsert_staff_member(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._upsert(STAFF_MEMBERS_TABLE, row)

    def delete_staff_member(self, user_id: str) -> None:
        self._delete_for_user(STAFF_MEMBERS_TABLE, user_id)

    def upsert_permissions(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._upsert(STAFF_PERMISSIONS_TABLE, row)

    def delete_permissions(self, user_id: str) -> None:
        self._delete_for_user(STAFF_PERMISSIONS_TABLE, user_id)

    def upsert_trainer(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self._upsert(TRAINERS_TABLE, row)

    def insert_trainer(self, row: Dict[str, Any]) -> Dict[str, Any]:
        op = f"insert:{TRAINERS_TABLE}"
        data = self._run(op, lambda: self._client.table(TRAINERS_TABLE).insert(row))
        return self._first_row(data, op)

    # --- ClientPackageReader -----------------------------------------------------

    def list_active_expiring_between(self, *, after: str, until: str) -> List[Dict[str, Any]]:
        data = self._run(
            f"select:{CLIENT_PACKAGES_TABLE}",
            lambda: self._client.table(CLIENT_PACKAGES_TABLE)
            .select(CLIENT_PACKAGE_COLUMNS)
            .eq("status", "active")
            .lte("expiry_date", until)
            .gt("expiry_date", after),
        )
        return [dict(r) for r in (data or [])]

    def list_active_with_sessions_at_most(self, threshold: int) -> List[Dict[str, Any]]:
        data = self._run(
            f"select:{CLIENT_PACKAGES_TABLE}",
            lambda: self._client.table(CLIENT_PACKAGES_TABLE)
            .select(CLIENT_PACKAGE_COLUMNS)
            .eq("status", "active")
            .lte("sessions_remaining", threshold)
            .gt("sessions_remaining", 0),
        )
        return [dict(r) for r in (data or [])]

    # --- Health ------------------------------------------------------------------

    def ping(self) -> None:
        """Raise StoreError when the profiles table cannot be reached."""
        self._run(f"select:{PROFILES_TABLE}", lambda: self._client.table(PROFILES_TABLE).select(USER_KEY).limit(1))


__all__ = ["SupabaseRecordStore", "error_message"]
