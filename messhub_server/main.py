# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""MessHub Server - Main FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from messhub_server import __version__
from messhub_server.config import settings
from messhub_server.database import init_db
from messhub_server.exceptions import InternalError, MessHubException
from messhub_server.routers import auth

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    401: "AUTH_004",
    403: "AUTH_005",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "RATE_LIMIT_001",
}


def setup_logging(level: str) -> None:
    """Console logging for the server process; leaves existing handlers alone."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _get_cors_origins() -> list[str]:
    raw = (settings.cors_origins or "*").strip()
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def _field_errors(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors to [{field, message}] like the web client expects."""
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        out.append({"field": ".".join(loc), "message": message})
    return out


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging(settings.log_level)
    await init_db()
    if not (settings.smtp_host and settings.smtp_user) or settings.skip_email:
        logger.info("SMTP not configured - one-time codes will be written to the log")
    yield


app = FastAPI(
    title="MessHub Server",
    description="Account registration, email OTP verification and password reset API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status, and duration for each request (no body or auth headers)."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.exception_handler(MessHubException)
async def messhub_exception_handler(request: Request, exc: MessHubException) -> JSONResponse:
    """Business errors carry their own code and status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.to_error()})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(400, "VALIDATION_001", "Validation failed", _field_errors(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "SERVER_001" if exc.status_code >= 500 else "HTTP_ERROR")
    return _error_response(exc.status_code, code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: log the traceback, never leak it."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content={"success": False, "error": error.to_error()})


app.include_router(auth.router, prefix="/api")


@app.get("/")
async def root():
    """API info."""
    return {
        "name": "MessHub Server",
        "version": __version__,
        "api": "/api",
        "docs": "/api/docs",
    }


@app.get("/api/health")
async def health():
    """Health check for load balancers."""
    return {"status": "ok"}
