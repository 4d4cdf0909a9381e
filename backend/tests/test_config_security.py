"""
Security config guard tests.

Validates that production/staging environments fail fast when the Supabase
Service Role key, the email API key or the cron secret is unset or a
placeholder, or when the Supabase URL is not https, while development allows
running with dummy values for local convenience.
"""
from __future__ import annotations

import pytest

from web import config as cfg

SECURE_PROD_ENV = {
    "TRAINWITHUS_ENV": "prod",
    "SUPABASE_URL": "https://abc.supabase.co",
    "SUPABASE_SERVICE_ROLE_KEY": "REAL_NON_DUMMY",
    "RESEND_API_KEY": "re_live_key",
    "CRON_SECRET": "REAL_CRON_SECRET",
}


@pytest.fixture
def prod_env(monkeypatch: pytest.MonkeyPatch):
    for key, value in SECURE_PROD_ENV.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


def test_secure_prod_config_passes(prod_env):
    cfg.ensure_secure_config_on_startup()


def test_service_role_key_guard_prod_raises(prod_env):
    """In prod-like env, a dummy/unset service role key must abort startup."""
    prod_env.setenv("SUPABASE_SERVICE_ROLE_KEY", "DUMMY_DO_NOT_USE")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_service_role_key_guard_dev_allows_dummy(monkeypatch: pytest.MonkeyPatch):
    """In dev env, a dummy service role key is tolerated for local setups."""
    monkeypatch.setenv("TRAINWITHUS_ENV", "dev")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "DUMMY_DO_NOT_USE")
    monkeypatch.setenv("SUPABASE_URL", "http://127.0.0.1:54321")
    # Should not raise
    cfg.ensure_secure_config_on_startup()


def test_staging_requires_https_supabase_url(prod_env):
    prod_env.setenv("TRAINWITHUS_ENV", "staging")
    prod_env.setenv("SUPABASE_URL", "http://abc.supabase.co")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize("value", ["", "CHANGE_ME_RESEND", "test_only_key"])
def test_prod_requires_real_resend_key(prod_env, value):
    prod_env.setenv("RESEND_API_KEY", value)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_prod_requires_cron_secret(prod_env):
    prod_env.setenv("CRON_SECRET", "")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_settings_defaults_and_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TRAINWITHUS_ENV", " Stage ")
    monkeypatch.setenv("LOGIN_MAX_ATTEMPTS", "7")
    s = cfg.Settings()
    assert s.environment == "stage"
    assert s.is_prod_like is True
    assert s.LOGIN_MAX_ATTEMPTS == 7
    assert s.LOGIN_WINDOW_SECONDS == 900
    assert s.EXPIRY_NOTICE_DAYS == 14
