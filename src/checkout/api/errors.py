"""Exception handlers: map the checkout error taxonomy onto HTTP responses.

Validation and state errors carry actionable detail back to the caller.
Signature and gateway failures are logged with context but answered with a
generic message; anything unexpected is logged and answered opaquely.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from checkout.exceptions import CheckoutError, GatewayError, SignatureMismatch

logger = structlog.get_logger(__name__)

GENERIC_MESSAGES = {
    SignatureMismatch: "Payment verification failed",
    GatewayError: "Payment service is unavailable, please try again",
}


def _body(code: str, detail: str, errors: dict | None = None) -> dict:
    body = {"code": code, "detail": detail}
    if errors:
        body["errors"] = errors
    return body


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    messages = getattr(exc, "messages", None) or {}
    detail = getattr(exc, "message", None) or next(
        (msgs[0] for msgs in messages.values() if msgs),
        "Invalid request",
    )
    code = getattr(exc, "code", "VALIDATION_FAILED")
    logger.info("Request rejected", path=request.url.path, code=code, errors=messages)
    return JSONResponse(status_code=400, content=_body(code, str(detail), messages))


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    detail = getattr(exc, "message", None) or "Resource not found"
    code = getattr(exc, "code", "RESOURCE_NOT_FOUND")
    logger.info("Resource not found", path=request.url.path, code=code)
    return JSONResponse(status_code=404, content=_body(code, str(detail)))


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    generic = GENERIC_MESSAGES.get(type(exc))
    if exc.status_code >= 500 and generic is None:
        logger.error("Checkout failed", path=request.url.path, code=exc.code, error=exc.message, **exc.context)
        return JSONResponse(status_code=500, content=_body("INTERNAL_ERROR", "Something went wrong"))

    if generic is not None:
        logger.warning(
            "Payment step failed",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
            detail=getattr(exc, "detail", None),
            **exc.context,
        )
    return JSONResponse(status_code=exc.status_code, content=_body(exc.code, generic or exc.message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content=_body("INTERNAL_ERROR", "Something went wrong"))


def register_exception_handlers(app: FastAPI) -> None:
    """Install Protean's default handlers, then the checkout-specific ones."""
    register_protean_handlers(app)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
