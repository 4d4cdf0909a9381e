"""
Authentication routes (router-only module).

Why:
    Email/password sign-in goes through the backend so repeated failures for
    the same email can be throttled before Supabase Auth is contacted.

Behavior:
    - Every request counts as an attempt for the lower-cased email.
    - Blocked identifiers get 429 with `Retry-After` in seconds.
    - A successful login clears the counter for the email.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict
import structlog

from identity_access.passwords import is_valid_email
from storage.ports import StoreError

from ..wiring import get_services
from .security import bad_request, private_json, read_model

auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = structlog.get_logger("trainwithus.web.auth")


class LoginPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: str
    password: str


@auth_router.post("/auth/login")
async def login(request: Request):
    """Sign in with email and password, subject to the login rate limit.

    Responses:
        200 `{user_id, email, access_token, refresh_token, expires_at}`
        400 malformed body or email
        401 `{error: "invalid_credentials", detail, remaining_attempts}`
        429 `{error: "too_many_attempts", retry_after}`
    """
    payload, error = await read_model(request, LoginPayload)
    if error:
        return error
    email = payload.email.strip().lower()
    if not is_valid_email(email):
        return bad_request("invalid_email")
    if not payload.password:
        return bad_request("invalid_password")

    services = get_services()
    decision = services.limiter.check(email)
    if not decision.allowed:
        retry_after = decision.retry_after(services.limiter.now())
        return private_json(
            {"error": "too_many_attempts", "retry_after": retry_after},
            status_code=429,
            headers={"Retry-After": str(retry_after)},
        )

    try:
        result = await asyncio.to_thread(services.sign_in.sign_in, email, payload.password)
    except StoreError as exc:
        logger.info("sign_in_failed", remaining_attempts=decision.remaining_attempts)
        return private_json(
            {
                "error": "invalid_credentials",
                "detail": exc.message,
                "remaining_attempts": decision.remaining_attempts,
            },
            status_code=401,
        )

    services.limiter.clear(email)
    user = result["user"]
    session = result["session"]
    logger.info("sign_in_succeeded", user_id=user.get("id"))
    return private_json(
        {
            "user_id": user.get("id"),
            "email": user.get("email") or email,
            "access_token": session.get("access_token"),
            "refresh_token": session.get("refresh_token"),
            "expires_at": session.get("expires_at"),
        }
    )
