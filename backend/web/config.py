"""
Configuration and startup security checks for the TrainWithUs backend.

Why: Provisioning runs with the Supabase service role key and can create
accounts. We must prevent accidental insecure deployments without burdening
local development.

Settings are read with pydantic-settings from the process environment. The
guard `ensure_secure_config_on_startup` raises `SystemExit` on fatal
misconfiguration in production-like environments.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_PLACEHOLDERS = ("DUMMY", "CHANGE_ME", "TEST_ONLY")


class Settings(BaseSettings):
    """Backend settings with validation"""

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")

    # Environment: dev | test | stage | prod
    TRAINWITHUS_ENV: str = "dev"

    # Supabase (service role for admin + table writes, anon for sign-in)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_TIMEOUT_SECONDS: int = 30

    # Email provider
    RESEND_API_KEY: str = ""
    NOTIFICATIONS_FROM: str = "TrainWithUs <notifications@trainwithus.ae>"
    SECURITY_FROM: str = "TrainWithUs <onboarding@resend.dev>"
    AUTH_EMAIL_FROM: str = "TrainWithUs <noreply@resend.dev>"
    # Link target of the welcome email; falls back to the Supabase project URL.
    APP_URL: str = ""

    # Shared secret for scheduled jobs (cron). Empty disables the check in dev.
    CRON_SECRET: str = ""

    # Login rate limiting
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_WINDOW_SECONDS: int = 15 * 60
    LOGIN_BLOCK_SECONDS: int = 60 * 60

    # Package reminders
    EXPIRY_NOTICE_DAYS: int = 14
    LOW_SESSIONS_THRESHOLD: int = 3

    # Monitoring
    LOG_LEVEL: str = "INFO"

    @property
    def environment(self) -> str:
        return (self.TRAINWITHUS_ENV or "dev").strip().lower()

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.environment)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _is_placeholder(value: str) -> bool:
    v = (value or "").strip().upper()
    return not v or v.startswith(_PLACEHOLDERS)


def ensure_secure_config_on_startup(settings: Settings | None = None) -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - Supabase service role key must be set and not a known placeholder.
    - SUPABASE_URL must be set and use https.
    - RESEND_API_KEY must be configured (notifications would fail silently).
    - CRON_SECRET must be configured so scheduled endpoints are not public.
    """
    s = settings or Settings()
    if not s.is_prod_like:
        return  # dev/test remain permissive

    if _is_placeholder(s.SUPABASE_SERVICE_ROLE_KEY):
        raise SystemExit(
            "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a placeholder in production."
        )

    url = (s.SUPABASE_URL or "").strip().lower()
    if not url.startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must be set and use https in production.")

    if _is_placeholder(s.RESEND_API_KEY):
        raise SystemExit("Refusing to start: RESEND_API_KEY is unset or a placeholder in production.")

    if _is_placeholder(s.CRON_SECRET):
        raise SystemExit("Refusing to start: CRON_SECRET is unset or a placeholder in production.")
