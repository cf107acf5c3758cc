"""FastAPI application for the DealStack REST API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from dealstack.billing.totals import LineItemValidationError, normalize_field_name
from dealstack.config import get_config
from dealstack.core.logging import configure_logging
from dealstack.db.connection import close_db
from dealstack.web.routes import (
    auth,
    customers,
    dashboard,
    health,
    invoices,
    orders,
    tickets,
    worksheets,
)

logger = structlog.get_logger()

# Request locations that are not part of the field path
_LOCATIONS = {"body", "query", "path", "header", "cookie"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        structlog.contextvars.clear_contextvars()

        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            logger.info(
                "request_completed",
                status_code=response.status_code,
            )
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            logger.error("request_failed", error=str(exc))
            raise


def _field_key(loc: tuple[Any, ...]) -> str:
    """``("body", "items", 0, "unitPrice")`` -> ``"items.0.price"``."""
    parts = [str(part) for part in loc]
    if parts and parts[0] in _LOCATIONS:
        parts = parts[1:]
    if not parts:
        return "request"
    # Line item aliases only; a customer's "name" stays "name"
    if len(parts) >= 3 and parts[0] == "items":
        parts[-1] = normalize_field_name(parts[-1])
    return ".".join(parts)


def _clean_message(msg: str) -> str:
    return msg.removeprefix("Value error, ")


def validation_errors(exc: RequestValidationError) -> dict[str, str]:
    """Flatten pydantic errors into ``{field.path: message}`` (first error wins)."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        errors.setdefault(_field_key(tuple(err.get("loc", ()))), _clean_message(err["msg"]))
    return errors


def install_error_handlers(app: FastAPI) -> None:
    """Uniform ``{message}`` / ``{message, errors}`` error bodies."""

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = validation_errors(exc)
        logger.info("request_invalid", path=request.url.path, fields=sorted(errors))
        return JSONResponse(
            status_code=422,
            content={"message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(LineItemValidationError)
    async def line_item_validation_handler(request: Request, exc: LineItemValidationError):
        return JSONResponse(
            status_code=422,
            content={"message": "Validation failed", "errors": exc.errors},
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app_started", environment=get_config().environment)
    yield
    await close_db()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    """Build the API application with middleware, metrics and routers."""
    configure_logging()
    config = get_config()

    app = FastAPI(
        title="DealStack API",
        description="Customers, worksheets, invoices, orders and support tickets",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    if config.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Prometheus Metrics
    Instrumentator().instrument(app).expose(app)

    install_error_handlers(app)

    prefix = config.api.base_path.rstrip("/")
    for module in (health, auth, customers, worksheets, invoices, orders, tickets, dashboard):
        app.include_router(module.router, prefix=prefix)

    return app
