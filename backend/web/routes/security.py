"""
Shared web helpers for the JSON function endpoints.

Keeps the response contract in one place: every body is JSON, errors carry a
string `error`, and nothing is cacheable by intermediaries.
"""
from __future__ import annotations

import hmac
import re
from typing import Any, Optional, Tuple, Type, TypeVar

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def private_json(body: Any, *, status_code: int = 200, headers: dict | None = None) -> JSONResponse:
    hdrs = {"Cache-Control": "private, no-store"}
    hdrs.update(headers or {})
    return JSONResponse(body, status_code=status_code, headers=hdrs)


def bad_request(detail: str) -> JSONResponse:
    return private_json({"error": "bad_request", "detail": detail}, status_code=400)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid_body"
    # Report the top-level field only; nested locs carry union tags and dict keys.
    loc = [str(p) for p in errors[0].get("loc", ()) if p != "body"]
    if not loc:
        return "invalid_body"
    # Aliases are camelCase; detail codes use the snake_case field name.
    return f"invalid_{_CAMEL_BOUNDARY.sub('_', loc[0]).lower()}"


async def read_model(request: Request, model: Type[M]) -> Tuple[Optional[M], Optional[JSONResponse]]:
    """Parse the JSON body into `model`; return (model, None) or (None, 400 response)."""
    try:
        raw = await request.json()
    except ValueError:
        return None, bad_request("invalid_json")
    if not isinstance(raw, dict):
        return None, bad_request("invalid_body")
    try:
        return model.model_validate(raw), None
    except ValidationError as exc:
        return None, bad_request(_first_error(exc))


def secret_matches(authorization: Optional[str], secret: str) -> bool:
    """Constant-time check of `Authorization: Bearer <secret>`."""
    value = (authorization or "").strip()
    if value[:7].lower() != "bearer ":
        return False
    return hmac.compare_digest(value[7:].strip().encode(), secret.encode())
