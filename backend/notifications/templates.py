"""
Email subjects and HTML bodies.

Dynamic values are escaped before interpolation. Dates are rendered in a
locale-independent English format so output does not depend on the host.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Tuple

from identity_access.passwords import sanitize_input

BRAND = "TrainWithUs"


def format_day(value: date) -> str:
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_timestamp(value: datetime) -> str:
    """`Month D, YYYY at HH:MM UTC`; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return f"{format_day(utc.date())} at {utc.strftime('%H:%M')} UTC"


def expiry_reminder(*, first_name: str, package_name: str, days: int, expiry: date, sessions_remaining: int) -> Tuple[str, str]:
    name = sanitize_input(first_name or "")
    pkg = sanitize_input(package_name or "")
    subject = f"Your {package_name} package expires in {days} days"
    html = (
        "<h2>Package Expiry Reminder</h2>"
        f"<p>Hi {name},</p>"
        f"<p>Your <strong>{pkg}</strong> package will expire in <strong>{days} days</strong> on {format_day(expiry)}.</p>"
        f"<p>You currently have <strong>{sessions_remaining}</strong> sessions remaining.</p>"
        "<p>Please contact us to renew your package or book your remaining sessions.</p>"
        f"<p>Best regards,<br>{BRAND} Team</p>"
    )
    return subject, html


def low_sessions_reminder(*, first_name: str, package_name: str, sessions_remaining: int, expiry: date) -> Tuple[str, str]:
    name = sanitize_input(first_name or "")
    pkg = sanitize_input(package_name or "")
    subject = f"Only {sessions_remaining} sessions left in your {package_name} package"
    html = (
        "<h2>Session Reminder</h2>"
        f"<p>Hi {name},</p>"
        f"<p>You have only <strong>{sessions_remaining} sessions</strong> remaining in your <strong>{pkg}</strong> package.</p>"
        f"<p>Your package expires on {format_day(expiry)}.</p>"
        "<p>Please book your remaining sessions or contact us to renew your package.</p>"
        f"<p>Best regards,<br>{BRAND} Team</p>"
    )
    return subject, html


def password_changed(*, email: str, changed_at: datetime) -> Tuple[str, str]:
    subject = f"Password Updated - {BRAND}"
    when = format_timestamp(changed_at)
    html = (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>Password Updated</title></head><body>"
        f"<h1>{BRAND}</h1>"
        "<h2>Your password has been updated</h2>"
        f"<p>The password for <strong>{sanitize_input(email)}</strong> was changed on {when}.</p>"
        "<p>If you made this change, no further action is needed.</p>"
        "<p>If you did not change your password, reset it immediately and contact our support team.</p>"
        f"<p>{BRAND} Security</p>"
        "</body></html>"
    )
    return subject, html



def _greeting_name(first_name: str | None, last_name: str | None) -> str:
    # Both parts are needed for a personal greeting.
    if first_name and last_name:
        return sanitize_input(f"{first_name} {last_name}")
    return "there"


def _header() -> str:
    return f"<h1>{BRAND}</h1><p>Professional Training Management</p>"


def _button(url: str, label: str) -> str:
    return f"<p><a href=\"{sanitize_input(url)}\">{label}</a></p>"


def _fallback_link(url: str) -> str:
    safe = sanitize_input(url)
    return (
        "<p>If the button doesn't work, copy and paste this link into your browser:<br>"
        f"<a href=\"{safe}\">{safe}</a></p>"
    )


def welcome_email(*, first_name: str | None, last_name: str | None, account_url: str) -> Tuple[str, str]:
    subject = f"Welcome to {BRAND}!"
    html = (
        _header()
        + f"<h2>Welcome {_greeting_name(first_name, last_name)}!</h2>"
        + f"<p>Thank you for joining {BRAND}! We're excited to help you on your fitness journey.</p>"
        + "<p>Your account has been successfully created. You can now:</p>"
        + "<ul><li>Book training sessions</li><li>Manage your packages</li>"
        + "<li>Track your progress</li><li>Access your training history</li></ul>"
        + (_button(account_url, "Access Your Account") if account_url else "")
        + "<p>If you have any questions, feel free to reach out to our support team.</p>"
    )
    return subject, html


def password_reset_email(*, first_name: str | None, last_name: str | None, reset_url: str) -> Tuple[str, str]:
    subject = f"Reset Your Password - {BRAND}"
    html = (
        _header()
        + "<h2>Password Reset Request</h2>"
        + f"<p>Hi {_greeting_name(first_name, last_name)},</p>"
        + f"<p>We received a request to reset your password for your {BRAND} account. "
        + "Click the button below to create a new password:</p>"
        + _button(reset_url, "Reset Password")
        + "<p>This link will expire in 60 minutes for security reasons.</p>"
        + "<p>If you didn't request this password reset, you can safely ignore this email. "
        + "Your password will remain unchanged.</p>"
        + _fallback_link(reset_url)
    )
    return subject, html


def email_verification_email(*, first_name: str | None, last_name: str | None, verification_url: str) -> Tuple[str, str]:
    subject = f"Verify Your Email - {BRAND}"
    html = (
        _header()
        + "<h2>Verify Your Email Address</h2>"
        + f"<p>Hi {_greeting_name(first_name, last_name)},</p>"
        + f"<p>Thanks for signing up for {BRAND}! To complete your registration, "
        + "please verify your email address by clicking the button below:</p>"
        + _button(verification_url, "Verify Email Address")
        + f"<p>Once verified, you'll be able to access all features of your {BRAND} account.</p>"
        + "<p>If you didn't create an account with us, you can safely ignore this email.</p>"
        + _fallback_link(verification_url)
    )
    return subject, html


__all__ = [
    "expiry_reminder",
    "low_sessions_reminder",
    "password_changed",
    "welcome_email",
    "password_reset_email",
    "email_verification_email",
    "format_day",
    "format_timestamp",
]
