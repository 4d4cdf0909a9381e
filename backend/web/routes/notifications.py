"""
Notification routes: scheduled package reminders, the password-change notice and
account emails (welcome, password reset, email verification).

Permissions:
    - package-expiry-notifications is called by a scheduler and requires
      `Authorization: Bearer <CRON_SECRET>` when a secret is configured.
    - send-password-change-notification requires a signed-in caller whose
      email matches the recipient.
    - send-auth-email is called by the app during sign-up and password reset,
      before the recipient may be signed in. It accepts the project's anon key
      or any valid user token as bearer.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field
import structlog

from identity_access.gate import bearer_token
from notifications.mailer import MailerError
from notifications.service import send_auth_email, send_password_change_notice
from storage.ports import StoreError

from ..wiring import get_services
from .security import bad_request, private_json, read_model, secret_matches

notifications_router = APIRouter(tags=["Notifications"])
logger = structlog.get_logger("trainwithus.web.notifications")

MAILER_NOT_CONFIGURED = "Email service not configured. Please contact administrator."


class PasswordChangePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: str
    timestamp: str


class AuthEmailData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    reset_url: Optional[str] = Field(default=None, alias="resetUrl")
    verification_url: Optional[str] = Field(default=None, alias="verificationUrl")


class AuthEmailPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    type: Optional[str] = None
    data: Optional[AuthEmailData] = None


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@notifications_router.post("/functions/package-expiry-notifications")
async def package_expiry_notifications(request: Request):
    """Send expiry and low-session reminders for active client packages."""
    services = get_services()
    if services.cron_secret and not secret_matches(request.headers.get("Authorization"), services.cron_secret):
        return private_json({"error": "Unauthorized"}, status_code=401)
    if not services.mailer.configured:
        logger.error("package_reminders_mailer_missing")
        return private_json({"error": MAILER_NOT_CONFIGURED}, status_code=500)
    today = datetime.now(timezone.utc).date()
    try:
        sent = await asyncio.to_thread(services.reminders.run, today)
    except StoreError as exc:
        logger.error("package_reminders_failed", operation=exc.operation, error=exc.message)
        return private_json({"error": exc.message}, status_code=500)
    return private_json({"success": True, "notifications_sent": len(sent), "notifications": sent})


@notifications_router.post("/functions/send-password-change-notification")
async def send_password_change_notification(request: Request):
    """Email the account owner that their password was changed."""
    services = get_services()
    token = bearer_token(request.headers.get("Authorization"))
    user = await asyncio.to_thread(services.gate.identities.resolve_user, token) if token else None
    if not user:
        return private_json({"error": "Unauthorized"}, status_code=401)

    payload, error = await read_model(request, PasswordChangePayload)
    if error:
        return error
    email = payload.email.strip()
    if (user.get("email") or "").lower() != email.lower():
        return private_json({"error": "Unauthorized"}, status_code=401)
    try:
        changed_at = _parse_timestamp(payload.timestamp)
    except ValueError:
        return bad_request("invalid_timestamp")

    try:
        await asyncio.to_thread(
            send_password_change_notice,
            services.mailer,
            email=email,
            changed_at=changed_at,
            sender=services.security_sender,
        )
    except ValueError as exc:
        return bad_request(str(exc))
    except MailerError as exc:
        logger.error("password_notice_failed", user_id=user.get("id"), error=str(exc))
        return private_json({"error": str(exc)}, status_code=500)
    return private_json({"success": True})


async def _app_caller(services, authorization: Optional[str]) -> bool:
    if services.anon_key and secret_matches(authorization, services.anon_key):
        return True
    token = bearer_token(authorization)
    if not token:
        return False
    return bool(await asyncio.to_thread(services.gate.identities.resolve_user, token))


@notifications_router.post("/functions/send-auth-email")
async def send_auth_email_route(request: Request):
    """Send a welcome, password-reset or email-verification message."""
    services = get_services()
    if not await _app_caller(services, request.headers.get("Authorization")):
        return private_json({"error": "Unauthorized"}, status_code=401)
    payload, error = await read_model(request, AuthEmailPayload)
    if error:
        return error
    email = (payload.email or "").strip()
    kind = (payload.type or "").strip()
    if not email or not kind:
        return private_json({"error": "Email and type are required"}, status_code=400)
    if not services.mailer.configured:
        logger.error("auth_email_mailer_missing", kind=kind)
        return private_json({"error": MAILER_NOT_CONFIGURED}, status_code=500)

    data = payload.data or AuthEmailData()
    try:
        message_id = await asyncio.to_thread(
            send_auth_email,
            services.mailer,
            email=email,
            kind=kind,
            first_name=data.first_name,
            last_name=data.last_name,
            reset_url=data.reset_url,
            verification_url=data.verification_url,
            account_url=services.account_url,
            sender=services.auth_sender,
        )
    except ValueError as exc:
        return bad_request(str(exc))
    except MailerError as exc:
        logger.error("auth_email_failed", kind=kind, error=str(exc))
        return private_json({"error": str(exc)}, status_code=500)
    return private_json({"success": True, "messageId": message_id})
