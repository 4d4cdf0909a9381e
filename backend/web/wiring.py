"""
Service wiring for the web adapters.

Why:
    Routes need the provisioning service, the admin gate, the login limiter
    and the notification services, all built from one Supabase client. This
    module builds them lazily on first use and lets tests inject fakes with
    `set_services`.

Security:
    Requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY. The service-role
    client never leaves the server; sign-in uses a separate anon-key client.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from identity_access.admin_client import PasswordSignIn, SupabaseIdentityAdmin
from identity_access.gate import AdminGate
from identity_access.rate_limit import LoginRateLimiter
from notifications.mailer import MailerProtocol, NullMailer, ResendMailer
from notifications.service import DEFAULT_AUTH_FROM, PackageReminderService
from provisioning.service import ProvisioningService
from storage.supabase_tables import SupabaseRecordStore

from .config import Settings, get_settings

logger = structlog.get_logger("trainwithus.web")


@dataclass
class Services:
    provisioning: ProvisioningService
    gate: AdminGate
    sign_in: PasswordSignIn
    limiter: LoginRateLimiter
    reminders: PackageReminderService
    mailer: MailerProtocol
    records: Any
    security_sender: str
    cron_secret: str = ""
    auth_sender: str = DEFAULT_AUTH_FROM
    account_url: str = ""
    anon_key: str = ""


_SERVICES: Optional[Services] = None


def _client_options(settings: Settings):
    from supabase import ClientOptions

    return ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        postgrest_client_timeout=settings.SUPABASE_TIMEOUT_SECONDS,
    )


def build_supabase_client(settings: Settings, *, key: str):
    url = (settings.SUPABASE_URL or "").strip()
    if not url or not key:
        raise RuntimeError("supabase_not_configured")
    from supabase import create_client

    return create_client(url, key, options=_client_options(settings))


def build_services(settings: Settings | None = None) -> Services:
    s = settings or get_settings()
    client = build_supabase_client(s, key=s.SUPABASE_SERVICE_ROLE_KEY)
    identities = SupabaseIdentityAdmin(client)
    records = SupabaseRecordStore(client)
    anon_key = s.SUPABASE_ANON_KEY or s.SUPABASE_SERVICE_ROLE_KEY
    mailer: MailerProtocol = ResendMailer(s.RESEND_API_KEY) if s.RESEND_API_KEY else NullMailer()
    services = Services(
        provisioning=ProvisioningService(identities=identities, records=records),
        gate=AdminGate(identities=identities, records=records),
        sign_in=PasswordSignIn(lambda: build_supabase_client(s, key=anon_key)),
        limiter=LoginRateLimiter(
            max_attempts=s.LOGIN_MAX_ATTEMPTS,
            window_seconds=s.LOGIN_WINDOW_SECONDS,
            block_seconds=s.LOGIN_BLOCK_SECONDS,
        ),
        reminders=PackageReminderService(
            packages=records,
            mailer=mailer,
            sender=s.NOTIFICATIONS_FROM,
            notice_days=s.EXPIRY_NOTICE_DAYS,
            low_sessions_threshold=s.LOW_SESSIONS_THRESHOLD,
        ),
        mailer=mailer,
        records=records,
        security_sender=s.SECURITY_FROM,
        cron_secret=s.CRON_SECRET,
        auth_sender=s.AUTH_EMAIL_FROM,
        account_url=(s.APP_URL or s.SUPABASE_URL.replace("/rest/v1", "")).strip(),
        anon_key=s.SUPABASE_ANON_KEY,
    )
    logger.info("services_wired", mailer_configured=mailer.configured)
    return services


def get_services() -> Services:
    global _SERVICES
    if _SERVICES is None:
        _SERVICES = build_services()
    return _SERVICES


def set_services(services: Optional[Services]) -> None:
    """Inject services (tests) or reset to lazy wiring with None."""
    global _SERVICES
    _SERVICES = services


__all__ = ["Services", "build_services", "build_supabase_client", "get_services", "set_services"]
