"""
Staff provisioning routes (create-staff, create-trainer).

Why:
    Admins add staff members and trainers from the management UI. The adapter
    authenticates the bearer token, requires the admin role, parses the
    camelCase body and delegates to `ProvisioningService`, which owns
    validation and the rollback on partial failure.

Responses:
    - 200 `{success, user_id, staff}` / `{success, trainer, user}`
    - 401 unauthenticated, 403 not an admin
    - 400 invalid body or a backing-store rejection (`{error: <store message>}`)
    - 500 unexpected failure
"""
from __future__ import annotations

import asyncio
from typing import Dict, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt
import structlog

from provisioning.service import ProvisionError, StaffRequest, TrainerRequest

from ..wiring import get_services
from .security import bad_request, private_json, read_model

staff_router = APIRouter(tags=["Staff"])  # explicit paths below
logger = structlog.get_logger("trainwithus.web.staff")

Number = StrictInt | StrictFloat


class CreateStaffPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: str
    send_activation_email: bool = Field(default=True, alias="sendActivationEmail")
    custom_password: Optional[str] = Field(default=None, alias="customPassword")
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    phone: Optional[str] = None
    date_of_birth: Optional[str] = Field(default=None, alias="dateOfBirth")
    start_date: Optional[str] = Field(default=None, alias="startDate")
    notes: Optional[str] = None
    address: Optional[str] = None
    login_access: bool = Field(default=True, alias="loginAccess")
    is_trainer: bool = Field(default=False, alias="isTrainer")
    payroll_type: Optional[str] = Field(default=None, alias="payrollType")
    session_rate: Optional[Number] = Field(default=0, alias="sessionRate")
    package_percentage: Optional[Number] = Field(default=0, alias="packagePercentage")
    permissions: Optional[Dict[str, StrictBool]] = None

    def to_request(self) -> StaffRequest:
        return StaffRequest(
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            send_activation_email=self.send_activation_email,
            custom_password=self.custom_password,
            phone=self.phone,
            date_of_birth=self.date_of_birth,
            start_date=self.start_date,
            notes=self.notes,
            address=self.address,
            login_access=self.login_access,
            is_trainer=self.is_trainer,
            payroll_type=self.payroll_type,
            session_rate=self.session_rate,
            package_percentage=self.package_percentage,
            permissions=dict(self.permissions or {}),
        )


class CreateTrainerPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: str
    password: str
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    payroll_type: Optional[str] = Field(default=None, alias="payrollType")
    session_rate: Optional[Number] = Field(default=None, alias="sessionRate")
    package_percentage: Optional[Number] = Field(default=None, alias="packagePercentage")

    def to_request(self) -> TrainerRequest:
        return TrainerRequest(
            email=self.email,
            password=self.password,
            first_name=self.first_name,
            last_name=self.last_name,
            payroll_type=self.payroll_type,
            session_rate=self.session_rate,
            package_percentage=self.package_percentage,
        )


async def _require_admin(request: Request, *, forbidden_message: str):
    services = get_services()
    try:
        requester_id = await asyncio.to_thread(services.gate.require_admin, request.headers.get("Authorization"))
    except PermissionError as exc:
        if str(exc) == "forbidden":
            return None, private_json({"error": forbidden_message}, status_code=403)
        return None, private_json({"error": "Unauthorized"}, status_code=401)
    return requester_id, None


def _provision_error(exc: ProvisionError):
    return private_json({"error": exc.message}, status_code=400 if exc.store_failure else 500)


@staff_router.post("/functions/create-staff")
async def create_staff(request: Request):
    """Provision a staff member (identity, profile, staff row, permissions, trainer row).

    Permissions:
        Caller must present a bearer token of a user whose profile role is `admin`.
    """
    requester_id, error = await _require_admin(request, forbidden_message="Only admins can create staff")
    if error:
        return error
    payload, error = await read_model(request, CreateStaffPayload)
    if error:
        return error
    services = get_services()
    try:
        result = await asyncio.to_thread(
            services.provisioning.create_staff, payload.to_request(), requester_id=requester_id
        )
    except ValueError as exc:
        return bad_request(str(exc))
    except ProvisionError as exc:
        logger.warning(
            "create_staff_failed", step=exc.step, store_failure=exc.store_failure, compensated=exc.compensated
        )
        return _provision_error(exc)
    return private_json({"success": True, "user_id": result.user_id, "staff": result.staff})


@staff_router.post("/functions/create-trainer")
async def create_trainer(request: Request):
    """Provision a trainer account (identity, profile, trainer row).

    Permissions:
        Caller must present a bearer token of a user whose profile role is `admin`.
    """
    requester_id, error = await _require_admin(request, forbidden_message="Only admins can create trainers")
    if error:
        return error
    payload, error = await read_model(request, CreateTrainerPayload)
    if error:
        return error
    services = get_services()
    try:
        result = await asyncio.to_thread(
            services.provisioning.create_trainer, payload.to_request(), requester_id=requester_id
        )
    except ValueError as exc:
        return bad_request(str(exc))
    except ProvisionError as exc:
        logger.warning(
            "create_trainer_failed", step=exc.step, store_failure=exc.store_failure, compensated=exc.compensated
        )
        return _provision_error(exc)
    return private_json({"success": True, "trainer": result.trainer, "user": result.user})
