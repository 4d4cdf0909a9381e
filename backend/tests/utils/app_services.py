"""
Build a `Services` bundle wired entirely with in-memory fakes.

API tests inject it with `wiring.set_services(...)`; the conftest resets the
wiring after each test.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from identity_access.gate import AdminGate
from identity_access.rate_limit import LoginRateLimiter
from identity_access.stores import InMemoryAttemptStore
from notifications.service import PackageReminderService
from provisioning.service import ProvisioningService
from storage.ports import StoreError
from web.wiring import Services

from utils.fake_stores import FakeIdentityStore, FakeMailer, FakePackageReader, FakeRecordStore

ADMIN_TOKEN = "admin-token"
MEMBER_TOKEN = "member-token"


class FakeSignIn:
    def __init__(self) -> None:
        self.accounts: Dict[str, str] = {}
        self.calls = 0

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        self.calls += 1
        if self.accounts.get(email) != password:
            raise StoreError("Invalid email or password", operation="auth:sign_in")
        return {
            "user": {"id": f"user-{email}", "email": email},
            "session": {"access_token": "at", "refresh_token": "rt", "expires_at": 1_900_000_000},
        }


@dataclass
class FakeWorld:
    identities: FakeIdentityStore = field(default_factory=FakeIdentityStore)
    records: FakeRecordStore = field(default_factory=FakeRecordStore)
    packages: FakePackageReader = field(default_factory=FakePackageReader)
    mailer: FakeMailer = field(default_factory=FakeMailer)
    sign_in: FakeSignIn = field(default_factory=FakeSignIn)
    admin: Optional[Dict[str, Any]] = None
    member: Optional[Dict[str, Any]] = None
    services: Optional[Services] = None


def build_fake_world(*, cron_secret: str = "", limiter: LoginRateLimiter | None = None) -> FakeWorld:
    world = FakeWorld()
    world.admin = world.identities.add_user("boss@gym.test", token=ADMIN_TOKEN)
    world.records.set_role(world.admin["id"], "admin")
    world.member = world.identities.add_user("member@gym.test", token=MEMBER_TOKEN)
    world.records.set_role(world.member["id"], "client")
    world.services = Services(
        provisioning=ProvisioningService(identities=world.identities, records=world.records),
        gate=AdminGate(identities=world.identities, records=world.records),
        sign_in=world.sign_in,  # type: ignore[arg-type]
        limiter=limiter or LoginRateLimiter(InMemoryAttemptStore()),
        reminders=PackageReminderService(packages=world.packages, mailer=world.mailer),
        mailer=world.mailer,
        records=world.records,
        security_sender="Security <security@gym.test>",
        cron_secret=cron_secret,
    )
    return world
