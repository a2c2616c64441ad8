"""Map domain exceptions to ``{success: false, message, data}`` responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.api.schemas import ErrorResponse
from ordering.payment.initiation import PaymentGatewayError

logger = structlog.get_logger(__name__)


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for errors in messages.values():
            if isinstance(errors, list) and errors:
                return str(errors[0])
    return str(messages)


def error_response(status_code: int, message: str, data=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message, data=data).model_dump())


async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("Request rejected", path=request.url.path, errors=exc.messages)
    return error_response(400, _first_message(exc.messages), data={"errors": dict(exc.messages)})


async def not_found_handler(request: Request, exc: ObjectNotFoundError):
    return error_response(404, "Order not found")


async def payment_gateway_error_handler(request: Request, exc: PaymentGatewayError):
    return error_response(402, exc.message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(PaymentGatewayError, payment_gateway_error_handler)
