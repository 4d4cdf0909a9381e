"""
Package reminder job and password-change notice (service level).

Uses an in-memory package reader and a fake mailer; no HTTP involved.
"""
from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from notifications.mailer import MailerError
from notifications.service import PackageReminderService, send_password_change_notice
from utils.fake_stores import FakeMailer, FakePackageReader, package_row

TODAY = date(2026, 10, 18)


def _service(reader, mailer, **kwargs) -> PackageReminderService:
    return PackageReminderService(packages=reader, mailer=mailer, sender="Gym <n@gym.test>", **kwargs)


def test_expiring_and_low_sessions_each_send_one_email():
    reader = FakePackageReader(
        expiring=[package_row(row_id="p1", client_id="c1", email="one@x.com", expiry_date="2026-10-25", sessions_remaining=6)],
        low=[package_row(row_id="p2", client_id="c2", email="two@x.com", sessions_remaining=2, expiry_date="2026-12-31")],
    )
    mailer = FakeMailer()
    sent = _service(reader, mailer).run(TODAY)

    assert [m["to"] for m in mailer.sent] == [["one@x.com"], ["two@x.com"]]
    assert mailer.sent[0]["subject"] == "Your 10 Session Pack package expires in 7 days"
    assert mailer.sent[1]["subject"] == "Only 2 sessions left in your 10 Session Pack package"
    assert "October 25, 2026" in mailer.sent[0]["html"]
    assert mailer.sent[0]["from"] == "Gym <n@gym.test>"
    assert sent == [
        {
            "type": "expiry_reminder",
            "client_id": "c1",
            "package_name": "10 Session Pack",
            "days_until_expiry": 7,
            "sessions_remaining": 6,
        },
        {
            "type": "low_sessions",
            "client_id": "c2",
            "package_name": "10 Session Pack",
            "sessions_remaining": 2,
            "expiry_date": "2026-12-31",
        },
    ]


def test_query_window_uses_notice_days_and_threshold():
    reader = FakePackageReader()
    _service(reader, FakeMailer(), notice_days=7, low_sessions_threshold=1).run(TODAY)
    assert reader.queries == [{"after": "2026-10-18", "until": "2026-10-25"}, {"threshold": 1}]


def test_failed_send_is_skipped_and_run_continues():
    reader = FakePackageReader(
        expiring=[
            package_row(row_id="p1", client_id="c1", email="bounce@x.com", expiry_date="2026-10-20"),
            package_row(row_id="p2", client_id="c2", email="ok@x.com", expiry_date="2026-10-21"),
        ]
    )
    mailer = FakeMailer()
    mailer.reject["bounce@x.com"] = "Invalid `to` field"
    sent = _service(reader, mailer).run(TODAY)
    assert [s["client_id"] for s in sent] == ["c2"]
    assert len(mailer.sent) == 1


def test_rows_without_usable_email_are_skipped():
    row = package_row(row_id="p1", client_id="c1", email="", expiry_date="2026-10-20")
    mailer = FakeMailer()
    assert _service(FakePackageReader(expiring=[row]), mailer).run(TODAY) == []
    assert mailer.sent == []


def test_embedded_lists_are_accepted():
    row = package_row(row_id="p1", client_id="c1", email="one@x.com", expiry_date="2026-10-19")
    row["packages"] = [row["packages"]]
    row["clients"] = [row["clients"]]
    sent = _service(FakePackageReader(expiring=[row]), FakeMailer()).run(TODAY)
    assert sent[0]["days_until_expiry"] == 1


def test_client_names_are_escaped_in_html():
    row = package_row(row_id="p1", client_id="c1", email="one@x.com", expiry_date="2026-10-20", first_name="<script>")
    mailer = FakeMailer()
    _service(FakePackageReader(expiring=[row]), mailer).run(TODAY)
    assert "<script>" not in mailer.sent[0]["html"]
    assert "&lt;script&gt;" in mailer.sent[0]["html"]


def test_password_change_notice_formats_timestamp():
    mailer = FakeMailer()
    send_password_change_notice(
        mailer,
        email="member@x.com",
        changed_at=datetime(2026, 3, 5, 9, 7, tzinfo=timezone.utc),
        sender="Security <s@gym.test>",
    )
    msg = mailer.sent[0]
    assert msg["subject"] == "Password Updated - TrainWithUs"
    assert msg["to"] == ["member@x.com"]
    assert "March 5, 2026 at 09:07 UTC" in msg["html"]


def test_password_change_notice_rejects_invalid_email():
    with pytest.raises(ValueError) as excinfo:
        send_password_change_notice(FakeMailer(), email="nope", changed_at=datetime.now(timezone.utc))
    assert str(excinfo.value) == "invalid_email"


def test_password_change_notice_propagates_mailer_error():
    mailer = FakeMailer()
    mailer.reject["member@x.com"] = "rate limited"
    with pytest.raises(MailerError):
        send_password_change_notice(mailer, email="member@x.com", changed_at=datetime.now(timezone.utc))
