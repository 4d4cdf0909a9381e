"TrainWithUs backend"
from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via TRAINWITHUS_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("TRAINWITHUS_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

from web.config import ensure_secure_config_on_startup, get_settings  # noqa: E402

# Minimal production safety checks (fail-fast on insecure config)
ensure_secure_config_on_startup()

SETTINGS = get_settings()


def configure_logging(level: str, *, json_logs: bool) -> None:
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get((level or "INFO").upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


configure_logging(SETTINGS.LOG_LEVEL, json_logs=SETTINGS.is_prod_like)
logger = structlog.get_logger("trainwithus.web")

app = FastAPI(title="TrainWithUs", description="Staff provisioning and client notifications", version="0.1.0")

# Browser clients call the functions directly from the management UI.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

from web.routes.auth import auth_router  # noqa: E402
from web.routes.notifications import notifications_router  # noqa: E402
from web.routes.operations import operations_router  # noqa: E402
from web.routes.staff import staff_router  # noqa: E402

# --- Security Headers Middleware ----------------------------------------------


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    # JSON-only API: nothing may be framed, sniffed or loaded from a response.
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    if SETTINGS.is_prod_like:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        exc_type=type(exc).__name__,
    )
    return JSONResponse(
        {"error": "Unexpected error"},
        status_code=500,
        headers={"Cache-Control": "private, no-store"},
    )


app.include_router(auth_router)
app.include_router(staff_router)
app.include_router(notifications_router)
app.include_router(operations_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
