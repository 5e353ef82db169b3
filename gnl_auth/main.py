"""
main.py

FastAPI application entry point.

Assembles the application: logging, middleware, exception handlers and
routers. No business logic lives here.

Key roles:
- FastAPI app instance
- request id + access log middleware, CORS
- error envelope for every failure path
- router registration (auth, account, content, admin, moderator ...)
- health and database ping endpoints

Design principles:
- domain errors (AppError) carry their own status and code
- store outages map to 503, timeouts to 504, everything else to 500
- health/db-ping stay cheap so probes can call them often

Related files:
- gnl_auth.core.config        : settings
- gnl_auth.core.api_response  : envelopes
- gnl_auth.routers.*          : API routers

"""

import logging
import time
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from gnl_auth.core.api_response import error_response_payload, get_request_id, success_payload
from gnl_auth.core.config import settings
from gnl_auth.core.deps import get_db
from gnl_auth.core.errors import AppError, StoreUnavailable, Timeout
from gnl_auth.routers import account, admin, auth, content, moderator, sessions, two_factor, users

logger = logging.getLogger(__name__)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

# postgres query_canceled (statement_timeout)
_QUERY_CANCELED = "57014"

app = FastAPI(title="Great Nigeria Library Auth")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(account.router)
app.include_router(two_factor.router)
app.include_router(sessions.router)
app.include_router(users.router)
app.include_router(content.router)
app.include_router(admin.router)
app.include_router(moderator.router)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    request.state.request_id = request_id
    started_at = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started_at) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "http_request request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


def _error_response(request: Request, exc: AppError, validation=None) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response_payload(
            request,
            code=exc.code,
            error=exc.error,
            message=exc.message,
            validation=validation if validation is not None else exc.details,
        ),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("app error request_id=%s code=%s", get_request_id(request), exc.code)
    return _error_response(request, exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response_payload(
            request,
            code=f"HTTP_{exc.status_code}",
            error=message,
            message=message,
        ),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_response_payload(
            request,
            code="VALIDATION_ERROR",
            error="Validation Error",
            message="Validation error",
            validation=errors,
        ),
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    if getattr(exc.orig, "pgcode", None) == _QUERY_CANCELED:
        logger.warning("statement timeout request_id=%s", get_request_id(request))
        return _error_response(request, Timeout())
    logger.exception("store unavailable request_id=%s", get_request_id(request), exc_info=exc)
    return _error_response(request, StoreUnavailable())


@app.exception_handler(PoolTimeoutError)
async def pool_timeout_handler(request: Request, exc: PoolTimeoutError):
    logger.warning("connection pool timeout request_id=%s", get_request_id(request))
    return _error_response(request, Timeout())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error request_id=%s", get_request_id(request), exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_response_payload(
            request,
            code="INTERNAL",
            error="Internal Server Error",
            message="Internal server error",
        ),
    )


"""
Health check endpoint

- confirms the process is up and serving requests
- used by load balancers / deploy probes

"""
@app.get("/health")
def health(request: Request):
    return success_payload("ok", {"status": "ok", "request_id": get_request_id(request)})


"""
Database ping endpoint

- runs SELECT 1 to confirm the database answers
- separates "process alive" from "database alive"

"""
@app.get("/db-ping")
def db_ping(db: Session = Depends(get_db)):
    value = db.execute(text("SELECT 1")).scalar_one()
    return success_payload("ok", {"db": "ok", "value": value})
