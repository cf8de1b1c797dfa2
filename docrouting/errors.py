import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Routing error taxonomy
# ---------------------------------------------------------------------------


class RoutingError(HTTPException):
    """Expected, caller-visible rejection of a routing operation.

    The detail is a ``{code, message, details}`` dict so the registered
    handlers render it verbatim.
    """

    status_code = 400
    code = "routing_error"
    default_message = "Routing operation rejected"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": self.message, "details": details},
        )


class ValidationFailed(RoutingError):
    status_code = 422
    code = "validation_failed"
    default_message = "Validation failed"


class NotCurrentHolder(RoutingError):
    status_code = 409
    code = "not_current_holder"
    default_message = "You do not hold the active routing entry for this document"


class NotCurrentRecipient(RoutingError):
    status_code = 409
    code = "not_current_recipient"
    default_message = (
        "You are not the current recipient for this document. "
        "Only the latest recipient can receive it."
    )


class NotAPendingRecipient(RoutingError):
    status_code = 409
    code = "not_a_pending_recipient"
    default_message = (
        "You are not a pending recipient for this document in your department"
    )


class AlreadyReceived(RoutingError):
    status_code = 409
    code = "already_received"
    default_message = "Document already received"


class AlreadyReceivedByYou(RoutingError):
    status_code = 409
    code = "already_received_by_you"
    default_message = "You have already received this document"


class AlreadyReceivedByDepartment(RoutingError):
    status_code = 409
    code = "already_received_by_department"
    default_message = (
        "This document has already been received by another user in your department"
    )


class DuplicateOrderNumber(RoutingError):
    status_code = 409
    code = "duplicate_order_number"
    default_message = "The order number has already been taken today"


class GenerationExhausted(RoutingError):
    status_code = 503
    code = "generation_exhausted"
    default_message = "Unable to generate a unique order number. Please try again."


class Unauthorized(RoutingError):
    status_code = 403
    code = "unauthorized"
    default_message = "You are not allowed to perform this action"


class NotFound(RoutingError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


def register_error_handlers(app) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_payload("internal_error", "Internal server error", None),
        )
