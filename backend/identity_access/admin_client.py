"""
Supabase Auth admin client (minimal) for user provisioning and token checks.

Design:
- Framework-agnostic, callable from web adapters and the provisioning service.
- Wraps a duck-typed supabase client; every rejection becomes `StoreError`
  with the provider's message so callers can surface it unchanged.

Security:
- Do not log credentials or tokens.
- The admin client must be created with the Service Role key; sign-in uses a
  separate client created with the anon key.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional

import structlog

from storage.ports import StoreError
from storage.supabase_tables import error_message

logger = structlog.get_logger("trainwithus.identity_access")


def _user_dict(user: Any) -> Dict[str, Any]:
    """Normalize a gotrue `User` (pydantic model or dict) to a plain dict."""
    if user is None:
        return {}
    if isinstance(user, dict):
        data = dict(user)
    else:
        data = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None) or {},
            "created_at": getattr(user, "created_at", None),
        }
    if data.get("id") is not None:
        data["id"] = str(data["id"])
    created = data.get("created_at")
    if created is not None and not isinstance(created, str):
        data["created_at"] = created.isoformat() if hasattr(created, "isoformat") else str(created)
    return data


class SupabaseIdentityAdmin:
    """Identity store backed by the Supabase Auth admin API."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @property
    def _admin(self) -> Any:
        return self._client.auth.admin

    def invite_user(self, email: str, *, metadata: Dict[str, Any]) -> Dict[str, Any]:
        try:
            res = self._admin.invite_user_by_email(email, {"data": dict(metadata)})
        except Exception as exc:
            raise StoreError(error_message(exc), operation="auth:invite") from exc
        user = _user_dict(getattr(res, "user", None))
        if not user.get("id"):
            raise StoreError("Failed to invite user", operation="auth:invite")
        return user

    def create_user(
        self,
        email: str,
        *,
        password: str,
        metadata: Dict[str, Any],
        email_confirm: bool = True,
    ) -> Dict[str, Any]:
        attrs = {
            "email": email,
            "password": password,
            "email_confirm": email_confirm,
            "user_metadata": dict(metadata),
        }
        try:
            res = self._admin.create_user(attrs)
        except Exception as exc:
            raise StoreError(error_message(exc), operation="auth:create") from exc
        user = _user_dict(getattr(res, "user", None))
        if not user.get("id"):
            raise StoreError("Failed to create user", operation="auth:create")
        return user

    def delete_user(self, user_id: str) -> None:
        try:
            self._admin.delete_user(user_id)
        except Exception as exc:
            raise StoreError(error_message(exc), operation="auth:delete") from exc

    def resolve_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        if not access_token:
            return None
        try:
            res = self._client.auth.get_user(access_token)
        except Exception as exc:
            # Invalid/expired tokens surface as AuthApiError; treat as anonymous.
            logger.info("token_verification_failed", error_type=exc.__class__.__name__)
            return None
        user = _user_dict(getattr(res, "user", None)) if res is not None else {}
        return user if user.get("id") else None


class PasswordSignIn:
    """Email/password sign-in against Supabase Auth using the anon key.

    One anon-key client is built on first use and reused. A signed-in supabase
    client switches its table requests to the user's token, so this client is
    only ever used for `auth` calls and never shared with the service-role
    client. Session persistence and token refresh are off in the wiring, so
    the shared client starts no refresh timers and writes no session storage.
    """

    def __init__(self, client_factory: Callable[[], Any]) -> None:
        self._client_factory = client_factory
        self._client: Any = None
        self._lock = threading.Lock()

    def _auth_client(self) -> Any:
        with self._lock:
            if self._client is None:
                self._client = self._client_factory()
            return self._client

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """Return `{user, session}` dicts or raise StoreError("Invalid email or password")."""
        try:
            res = self._auth_client().auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            msg = error_message(exc)
            if "Invalid login credentials" in msg:
                msg = "Invalid email or password"
            raise StoreError(msg, operation="auth:sign_in") from exc
        user = getattr(res, "user", None)
        session = getattr(res, "session", None)
        if user is None or session is None:
            raise StoreError("Invalid email or password", operation="auth:sign_in")
        return {
            "user": _user_dict(user),
            "session": {
                "access_token": getattr(session, "access_token", None),
                "refresh_token": getattr(session, "refresh_token", None),
                "expires_at": getattr(session, "expires_at", None),
            },
        }


__all__ = ["SupabaseIdentityAdmin", "PasswordSignIn"]
