"""
Account emails: welcome, password reset and email verification.

Focus:
    - Subjects per type and the sender passed through
    - Names and links are escaped; a missing name greets "there"
    - Reset and verification links must be absolute http(s) URLs
    - Unknown types and bad recipients fail before anything is sent
"""
from __future__ import annotations

import pytest

from notifications.mailer import MailerError
from notifications.service import send_auth_email
from utils.fake_stores import FakeMailer

SENDER = "Accounts <noreply@gym.test>"


def test_welcome_email_greets_by_full_name_and_links_account():
    mailer = FakeMailer()
    message_id = send_auth_email(
        mailer,
        email="new@gym.test",
        kind="welcome",
        first_name="Sara",
        last_name="Haddad",
        account_url="https://app.trainwithus.ae",
        sender=SENDER,
    )
    msg = mailer.sent[0]
    assert message_id == "msg-1"
    assert msg["from"] == SENDER
    assert msg["to"] == ["new@gym.test"]
    assert msg["subject"] == "Welcome to TrainWithUs!"
    assert "Welcome Sara Haddad!" in msg["html"]
    assert "Access Your Account" in msg["html"]


def test_welcome_without_full_name_greets_there_and_omits_empty_link():
    mailer = FakeMailer()
    send_auth_email(mailer, email="new@gym.test", kind="welcome", first_name="Sara")
    html = mailer.sent[0]["html"]
    assert "Welcome there!" in html
    assert "Access Your Account" not in html


def test_password_reset_email_links_in_button_and_fallback():
    mailer = FakeMailer()
    send_auth_email(
        mailer,
        email="member@gym.test",
        kind="password_reset",
        reset_url="https://app.trainwithus.ae/reset?token=abc",
    )
    msg = mailer.sent[0]
    assert msg["subject"] == "Reset Your Password - TrainWithUs"
    assert "Hi there," in msg["html"]
    assert msg["html"].count("reset?token=abc") == 3
    assert "expire in 60 minutes" in msg["html"]


def test_verification_email_subject():
    mailer = FakeMailer()
    send_auth_email(
        mailer,
        email="member@gym.test",
        kind="email_verification",
        first_name="A",
        last_name="B",
        verification_url="https://app.trainwithus.ae/verify?t=1",
    )
    assert mailer.sent[0]["subject"] == "Verify Your Email - TrainWithUs"
    assert "Hi A B," in mailer.sent[0]["html"]


def test_names_and_links_are_escaped():
    mailer = FakeMailer()
    send_auth_email(
        mailer,
        email="member@gym.test",
        kind="password_reset",
        first_name="<b>Eve",
        last_name="X",
        reset_url='https://evil.test/"><script>alert(1)</script>',
    )
    html = mailer.sent[0]["html"]
    assert "<script>" not in html
    assert "<b>Eve" not in html
    assert "&lt;b&gt;Eve" in html


@pytest.mark.parametrize(
    "kind, links, code",
    [
        ("password_reset", {}, "invalid_reset_url"),
        ("password_reset", {"reset_url": "javascript:alert(1)"}, "invalid_reset_url"),
        ("email_verification", {"verification_url": "/verify?t=1"}, "invalid_verification_url"),
        ("newsletter", {}, "invalid_email_type"),
    ],
)
def test_invalid_requests_send_nothing(kind, links, code):
    mailer = FakeMailer()
    with pytest.raises(ValueError) as excinfo:
        send_auth_email(mailer, email="member@gym.test", kind=kind, **links)
    assert str(excinfo.value) == code
    assert mailer.sent == []


def test_invalid_recipient_is_rejected():
    with pytest.raises(ValueError) as excinfo:
        send_auth_email(FakeMailer(), email="nope", kind="welcome")
    assert str(excinfo.value) == "invalid_email"


def test_provider_rejection_propagates():
    mailer = FakeMailer()
    mailer.reject["member@gym.test"] = "domain not verified"
    with pytest.raises(MailerError):
        send_auth_email(mailer, email="member@gym.test", kind="welcome")
