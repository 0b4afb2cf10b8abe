"""API error type and FastAPI exception handlers."""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from schemas.common import ApiErrorBody, ApiErrorResponse, BackoffHint
from utils.logger import log_structured_error, setup_logger

logger = setup_logger(__name__)

INVALID_JSON_MESSAGE = "We could not read that request. Please check the data and try again."

# Route prefix -> (log domain, error code prefix)
ROUTE_FAMILIES = (
    ("/api/auth", "auth", "AUTH"),
    ("/api/me", "auth", "AUTH"),
    ("/api/contributions", "contributions", "CONTRIBUTION"),
    ("/api/analytics", "analytics", "ANALYTICS"),
    ("/api/invitations", "goals", "GOAL"),
    ("/api/shared", "goals", "GOAL"),
    ("/api/goals", "goals", "GOAL"),
)


class ApiError(Exception):
    """Error rendered as ``{"error": {...}}`` with an HTTP status."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int,
        hint: Optional[str] = None,
        backoff: Optional[BackoffHint] = None,
        log_level: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.hint = hint
        self.backoff = backoff
        self.log_level = log_level or ("error" if status_code >= 500 else "warn")
        self.context = context or {}
        self.error = error


def route_family(path: str) -> tuple:
    """Return the ``(domain, code prefix)`` a request path belongs to."""
    for prefix, domain, code_prefix in ROUTE_FAMILIES:
        if path.startswith(prefix):
            return domain, code_prefix
    return "api", "API"


def error_response(error: ApiError) -> JSONResponse:
    body = ApiErrorResponse(
        error=ApiErrorBody(
            code=error.code,
            message=error.message,
            hint=error.hint,
            backoff=error.backoff,
        )
    )
    headers = {}
    if error.backoff is not None:
        headers["Retry-After"] = str(error.backoff.retry_after_seconds)

    return JSONResponse(
        status_code=error.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        if err.get("type") == "json_invalid":
            return INVALID_JSON_MESSAGE
        message = str(err.get("msg", ""))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(message)
    return "; ".join(messages) or INVALID_JSON_MESSAGE


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    domain, _ = route_family(request.url.path)
    if exc.log_level != "none":
        log_structured_error(
            domain,
            exc.code,
            exc.status_code,
            level=exc.log_level,
            context={"path": request.url.path, "method": request.method, **exc.context},
            error=exc.error,
        )
    return error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    _, code_prefix = route_family(request.url.path)
    message = _validation_message(exc)
    hint = None

    if message == INVALID_JSON_MESSAGE:
        hint = "Ensure you are sending valid JSON."
    elif code_prefix == "AUTH":
        message = f"Please update the highlighted fields: {message}"
        hint = "Check the details and try again."
    elif code_prefix == "CONTRIBUTION":
        message = f"Please update the highlighted fields: {message}"
        hint = "Double-check the contribution details and try again."

    error = ApiError(
        f"{code_prefix}_VALIDATION_ERROR",
        message,
        400,
        hint=hint,
        context={"issues": len(exc.errors())},
    )
    return await api_error_handler(request, error)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
