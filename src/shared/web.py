"""FastAPI glue shared by the routers: dependencies and domain error mapping."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from payments.gateway.port import GatewayError, GatewayTimeout
from shared.exceptions import (
    Forbidden,
    InvalidTransition,
    ObjectNotFoundError,
    OrderAlreadyPaid,
    ValidationError,
)

logger = structlog.get_logger(__name__)


def get_coordinator(request: Request):
    return request.app.state.coordinator


def get_settings(request: Request):
    return request.app.state.settings


def get_gateway(request: Request):
    return request.app.state.coordinator.gateway


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": type(exc).__name__, "messages": exc.messages},
    )


async def _forbidden(request: Request, exc: Forbidden) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": "Forbidden", "detail": str(exc)})


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "NotFound", "messages": exc.messages})


async def _already_paid(request: Request, exc: OrderAlreadyPaid) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": "already_completed", "detail": "Payment for this order has already been completed"},
    )


async def _invalid_transition(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": "InvalidTransition", "detail": str(exc)})


async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger.warning("Payment gateway call failed", path=request.url.path, error=str(exc))
    status_code = 504 if isinstance(exc, GatewayTimeout) else 502
    return JSONResponse(
        status_code=status_code,
        content={
            "error": "gateway_unavailable",
            "detail": "The payment provider is unavailable. Your order is unchanged, please try again.",
            "retryable": True,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(Forbidden, _forbidden)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(OrderAlreadyPaid, _already_paid)
    app.add_exception_handler(InvalidTransition, _invalid_transition)
    app.add_exception_handler(GatewayError, _gateway_error)
