"""Staff and trainer provisioning service (Clean Architecture boundary).

Why:
    Creating a staff member spans the identity service and four tables with no
    shared transaction. This service validates the whole request up front,
    then runs the writes as a saga so a late failure removes everything the
    earlier steps created, in reverse order.

Errors:
    - ValueError("<code>") for invalid input; nothing has been written yet.
    - ProvisionError for a failing step; `store_failure` tells adapters whether
      the backing store rejected the call (client error) or something
      unexpected happened (server error). `message` is the first failing
      store's message and `compensated` lists the steps that were undone.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

import structlog

from identity_access.domain import PAYROLL_TYPES, STAFF_PROFILE_ROLE
from identity_access.passwords import is_valid_email, validate_password
from storage.ports import IdentityStore, RecordStore, StoreError

from .permissions import merge_permissions
from .saga import Context, Step, StepFailed, run_saga

logger = structlog.get_logger("trainwithus.provisioning")


@dataclass
class StaffRequest:
    email: str
    first_name: str
    last_name: str
    send_activation_email: bool = True
    custom_password: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    start_date: Optional[str] = None
    notes: Optional[str] = None
    address: Optional[str] = None
    login_access: bool = True
    is_trainer: bool = False
    payroll_type: Optional[str] = None
    session_rate: object = 0
    package_percentage: object = 0
    permissions: Mapping[str, object] = field(default_factory=dict)


@dataclass
class TrainerRequest:
    email: str
    password: str
    first_name: str
    last_name: str
    payroll_type: Optional[str] = None
    session_rate: object = None
    package_percentage: object = None


@dataclass
class ProvisionResult:
    user_id: str
    user: Dict[str, Any]
    staff: Optional[Dict[str, Any]] = None
    trainer: Optional[Dict[str, Any]] = None


class ProvisionError(Exception):
    def __init__(
        self, message: str, *, step: str, store_failure: bool, compensated: Optional[List[str]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.store_failure = store_failure
        self.compensated = list(compensated or [])


# --- Input normalisation -------------------------------------------------------


def _normalize_email(value: object) -> str:
    email = value.strip() if isinstance(value, str) else value
    if not is_valid_email(email):
        raise ValueError("invalid_email")
    return email  # type: ignore[return-value]


def _normalize_name(value: object, code: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(code)
    return value.strip()


def _normalize_optional_text(value: object, code: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(code)
    trimmed = value.strip()
    return trimmed or None


def _parse_iso_date(value: object, code: str) -> Optional[str]:
    text = _normalize_optional_text(value, code)
    if text is None:
        return None
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError as exc:
        raise ValueError(code) from exc


def _normalize_rate(value: object, code: str, *, upper: float | None = None) -> float | int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(code)
    if not math.isfinite(value) or value < 0 or (upper is not None and value > upper):
        raise ValueError(code)
    return value


def _normalize_payroll_type(value: object) -> str:
    if value not in PAYROLL_TYPES:
        raise ValueError("invalid_payroll_type")
    return value  # type: ignore[return-value]


def trainer_rates(payroll_type: str, session_rate: object, package_percentage: object) -> Dict[str, Any]:
    """Keep only the rate that matches the payroll type; the other becomes 0."""
    ptype = _normalize_payroll_type(payroll_type)
    rate = _normalize_rate(session_rate, "invalid_session_rate")
    pct = _normalize_rate(package_percentage, "invalid_package_percentage", upper=100)
    return {
        "payroll_type": ptype,
        "session_rate": rate if ptype == "per_session" else 0,
        "package_percentage": pct if ptype == "percentage" else 0,
    }


def _normalize_custom_password(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("invalid_password")
    if not validate_password(value).is_valid:
        raise ValueError("weak_password")
    return value


# --- Service ---------------------------------------------------------------------


@dataclass
class ProvisioningService:
    """Use cases for creating staff members and trainers (framework-independent)."""

    identities: IdentityStore
    records: RecordStore

    def _identity_step(self, create) -> Step:
        def compensate(ctx: Context) -> None:
            self.identities.delete_user(ctx["identity"]["id"])

        return Step("identity", create, compensate)

    def _run(self, steps: List[Step]) -> Context:
        try:
            return run_saga(steps).context
        except StepFailed as exc:
            cause = exc.cause
            if isinstance(cause, StoreError):
                raise ProvisionError(
                    cause.message, step=exc.step, store_failure=True, compensated=exc.compensated
                ) from cause
            raise ProvisionError(
                str(cause) or "Unexpected error", step=exc.step, store_failure=False, compensated=exc.compensated
            ) from cause

    def create_staff(self, request: StaffRequest, *, requester_id: str) -> ProvisionResult:
        email = _normalize_email(request.email)
        first_name = _normalize_name(request.first_name, "invalid_first_name")
        last_name = _normalize_name(request.last_name, "invalid_last_name")
        custom_password = _normalize_custom_password(request.custom_password)
        phone = _normalize_optional_text(request.phone, "invalid_phone")
        address = _normalize_optional_text(request.address, "invalid_address")
        notes = _normalize_optional_text(request.notes, "invalid_notes")
        date_of_birth = _parse_iso_date(request.date_of_birth, "invalid_date_of_birth")
        start_date = _parse_iso_date(request.start_date, "invalid_start_date")
        permissions = merge_permissions(request.permissions)
        rates = (
            trainer_rates(request.payroll_type, request.session_rate, request.package_percentage)  # type: ignore[arg-type]
            if request.is_trainer
            else None
        )
        invite = bool(request.send_activation_email) and custom_password is None
        metadata = {"first_name": first_name, "last_name": last_name}

        def create_identity(ctx: Context) -> Dict[str, Any]:
            if invite:
                return self.identities.invite_user(email, metadata=metadata)
            return self.identities.create_user(
                email,
                password=custom_password or str(uuid4()),
                metadata=metadata,
                email_confirm=True,
            )

        def uid(ctx: Context) -> str:
            return ctx["identity"]["id"]

        steps = [
            self._identity_step(create_identity),
            Step(
                "profile",
                lambda ctx: self.records.upsert_profile(
                    {
                        "user_id": uid(ctx),
                        "first_name": first_name,
                        "last_name": last_name,
                        "phone": phone,
                        "date_of_birth": date_of_birth,
                        "address": address,
                        "role": STAFF_PROFILE_ROLE,
                    }
                ),
                lambda ctx: self.records.delete_profile(uid(ctx)),
            ),
            Step(
                "staff_member",
                lambda ctx: self.records.upsert_staff_member(
                    {
                        "user_id": uid(ctx),
                        "is_active": True,
                        "login_access": bool(request.login_access),
                        "is_trainer": bool(request.is_trainer),
                        "start_date": start_date,
                        "notes": notes,
                    }
                ),
                lambda ctx: self.records.delete_staff_member(uid(ctx)),
            ),
            Step(
                "permissions",
                lambda ctx: self.records.upsert_permissions({"user_id": uid(ctx), **permissions}),
                lambda ctx: self.records.delete_permissions(uid(ctx)),
            ),
        ]
        if rates is not None:
            steps.append(
                Step(
                    "trainer",
                    lambda ctx: self.records.upsert_trainer({"user_id": uid(ctx), **rates, "created_by": requester_id}),
                )
            )

        ctx = self._run(steps)
        user_id = uid(ctx)
        logger.info("staff_provisioned", user_id=user_id, is_trainer=rates is not None, invited=invite)
        return ProvisionResult(
            user_id=user_id,
            user=ctx["identity"],
            staff=ctx["staff_member"],
            trainer=ctx.get("trainer"),
        )

    def create_trainer(self, request: TrainerRequest, *, requester_id: str) -> ProvisionResult:
        """Legacy trainer-only flow: identity, profile, trainer row.

        Rates are stored as given (missing values become 0); unlike the staff
        flow the non-matching rate is not zeroed.
        """
        email = _normalize_email(request.email)
        first_name = _normalize_name(request.first_name, "invalid_first_name")
        last_name = _normalize_name(request.last_name, "invalid_last_name")
        if not isinstance(request.password, str) or not request.password:
            raise ValueError("invalid_password")
        payroll_type = _normalize_payroll_type(request.payroll_type)
        session_rate = _normalize_rate(request.session_rate, "invalid_session_rate")
        package_percentage = _normalize_rate(request.package_percentage, "invalid_package_percentage", upper=100)
        metadata = {"first_name": first_name, "last_name": last_name, "role": STAFF_PROFILE_ROLE}

        def uid(ctx: Context) -> str:
            return ctx["identity"]["id"]

        steps = [
            self._identity_step(
                lambda ctx: self.identities.create_user(
                    email, password=request.password, metadata=metadata, email_confirm=True
                )
            ),
            Step(
                "profile",
                lambda ctx: self.records.upsert_profile(
                    {"user_id": uid(ctx), "first_name": first_name, "last_name": last_name, "role": STAFF_PROFILE_ROLE}
                ),
                lambda ctx: self.records.delete_profile(uid(ctx)),
            ),
            Step(
                "trainer",
                lambda ctx: self.records.insert_trainer(
                    {
                        "user_id": uid(ctx),
                        "payroll_type": payroll_type,
                        "session_rate": session_rate,
                        "package_percentage": package_percentage,
                        "created_by": requester_id,
                    }
                ),
            ),
        ]
        ctx = self._run(steps)
        logger.info("trainer_provisioned", user_id=uid(ctx))
        return ProvisionResult(
            user_id=uid(ctx),
            user=ctx["identity"],
            trainer=ctx["trainer"],
        )


__all__ = [
    "ProvisioningService",
    "ProvisionError",
    "ProvisionResult",
    "StaffRequest",
    "TrainerRequest",
    "trainer_rates",
]
