"""Client reminder and security notice use cases.

Why:
    Package reminders, password-change notices and the account emails
    (welcome, password reset, email verification) are the outbound email this
    backend sends itself; invitations are sent by the identity service.
    Keeping them here lets the HTTP adapters stay thin and lets tests run with
    a fake mailer and an in-memory package reader.

Behavior:
    - A reminder that fails to send is logged and skipped; the run continues
      and only successful sends are reported.
    - Reading packages is not guarded: a store failure aborts the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import structlog

from identity_access.passwords import is_valid_email
from storage.ports import ClientPackageReader

from . import templates
from .mailer import MailerError, MailerProtocol

logger = structlog.get_logger("trainwithus.notifications")

DEFAULT_NOTIFICATIONS_FROM = "TrainWithUs <notifications@trainwithus.ae>"
DEFAULT_SECURITY_FROM = "TrainWithUs <onboarding@resend.dev>"
DEFAULT_AUTH_FROM = "TrainWithUs <noreply@resend.dev>"


def _parse_day(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _nested(row: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = row.get(key)
    # PostgREST returns a list for to-many embeds; take the first entry.
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else {}


@dataclass
class PackageReminderService:
    packages: ClientPackageReader
    mailer: MailerProtocol
    sender: str = DEFAULT_NOTIFICATIONS_FROM
    notice_days: int = 14
    low_sessions_threshold: int = 3

    def _send(self, kind: str, row: Dict[str, Any], subject: str, html: str, to: str) -> bool:
        try:
            self.mailer.send(sender=self.sender, to=[to], subject=subject, html=html)
        except MailerError as exc:
            logger.error("notification_send_failed", kind=kind, client_package_id=row.get("id"), error=str(exc))
            return False
        return True

    def run(self, today: date) -> List[Dict[str, Any]]:
        """Send expiry and low-session reminders; return one entry per email sent."""
        until = today + timedelta(days=self.notice_days)
        expiring = self.packages.list_active_expiring_between(after=today.isoformat(), until=until.isoformat())
        low = self.packages.list_active_with_sessions_at_most(self.low_sessions_threshold)

        sent: List[Dict[str, Any]] = []
        for row in expiring:
            pkg, client = _nested(row, "packages"), _nested(row, "clients")
            expiry = _parse_day(row.get("expiry_date"))
            email = client.get("email")
            if expiry is None or not is_valid_email(email):
                logger.warning("notification_skipped", kind="expiry_reminder", client_package_id=row.get("id"))
                continue
            days = (expiry - today).days
            subject, html = templates.expiry_reminder(
                first_name=client.get("first_name") or "",
                package_name=pkg.get("name") or "",
                days=days,
                expiry=expiry,
                sessions_remaining=int(row.get("sessions_remaining") or 0),
            )
            if self._send("expiry_reminder", row, subject, html, email):
                sent.append(
                    {
                        "type": "expiry_reminder",
                        "client_id": row.get("client_id"),
                        "package_name": pkg.get("name"),
                        "days_until_expiry": days,
                        "sessions_remaining": row.get("sessions_remaining"),
                    }
                )

        for row in low:
            pkg, client = _nested(row, "packages"), _nested(row, "clients")
            expiry = _parse_day(row.get("expiry_date"))
            email = client.get("email")
            if expiry is None or not is_valid_email(email):
                logger.warning("notification_skipped", kind="low_sessions", client_package_id=row.get("id"))
                continue
            remaining = int(row.get("sessions_remaining") or 0)
            subject, html = templates.low_sessions_reminder(
                first_name=client.get("first_name") or "",
                package_name=pkg.get("name") or "",
                sessions_remaining=remaining,
                expiry=expiry,
            )
            if self._send("low_sessions", row, subject, html, email):
                sent.append(
                    {
                        "type": "low_sessions",
                        "client_id": row.get("client_id"),
                        "package_name": pkg.get("name"),
                        "sessions_remaining": remaining,
                        "expiry_date": row.get("expiry_date"),
                    }
                )
        logger.info("package_reminders_sent", count=len(sent))
        return sent


def send_password_change_notice(
    mailer: MailerProtocol,
    *,
    email: str,
    changed_at: datetime,
    sender: str = DEFAULT_SECURITY_FROM,
) -> Optional[str]:
    """Email a password-change notice; raises ValueError or MailerError."""
    if not is_valid_email(email):
        raise ValueError("invalid_email")
    subject, html = templates.password_changed(email=email, changed_at=changed_at)
    return mailer.send(sender=sender, to=[email], subject=subject, html=html)



def _link(value: Optional[str], code: str) -> str:
    url = (value or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(code)
    return url


def send_auth_email(
    mailer: MailerProtocol,
    *,
    email: str,
    kind: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    reset_url: Optional[str] = None,
    verification_url: Optional[str] = None,
    account_url: str = "",
    sender: str = DEFAULT_AUTH_FROM,
) -> Optional[str]:
    """Send a welcome, password-reset or verification email; return the provider message id.

    Raises ValueError("invalid_email" | "invalid_email_type" | "invalid_reset_url" |
    "invalid_verification_url") before sending, MailerError when the provider rejects.
    """
    if not is_valid_email(email):
        raise ValueError("invalid_email")
    if kind == "welcome":
        subject, html = templates.welcome_email(first_name=first_name, last_name=last_name, account_url=account_url)
    elif kind == "password_reset":
        subject, html = templates.password_reset_email(
            first_name=first_name, last_name=last_name, reset_url=_link(reset_url, "invalid_reset_url")
        )
    elif kind == "email_verification":
        subject, html = templates.email_verification_email(
            first_name=first_name,
            last_name=last_name,
            verification_url=_link(verification_url, "invalid_verification_url"),
        )
    else:
        raise ValueError("invalid_email_type")
    message_id = mailer.send(sender=sender, to=[email], subject=subject, html=html)
    logger.info("auth_email_sent", kind=kind, message_id=message_id)
    return message_id


__all__ = ["PackageReminderService", "send_auth_email", "send_password_change_notice"]
