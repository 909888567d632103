"""Exception handlers turning localization errors into ErrorResponse bodies."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from infrastructure.logging import get_module_logger
from modules.localization.domain.enums import ErrorKind
from modules.localization.domain.errors import LocalizationError
from modules.localization.schemas import ErrorResponse

logger = get_module_logger()

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.WORKFLOW_STATE: 409,
    ErrorKind.PERMISSION: 403,
    ErrorKind.PROVIDER_UNAVAILABLE: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.INTERNAL: 500,
}


def _respond(status_code: int, error: str, error_code: str, details: dict) -> JSONResponse:
    body = ErrorResponse(error=error, error_code=error_code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def localization_error_handler(request: Request, exc: Exception):
    """Map a LocalizationError to its HTTP status."""
    if not isinstance(exc, LocalizationError):
        raise exc
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "localization_request_failed",
        path=request.url.path,
        kind=exc.kind.value,
        error=exc.message,
        field=exc.field,
    )
    return _respond(status_code, exc.message, exc.kind.value, exc.to_dict()["details"])


async def request_validation_handler(request: Request, exc: Exception):
    """Report body/query validation failures in the same envelope."""
    if not isinstance(exc, RequestValidationError):
        raise exc
    errors = exc.errors()
    first = errors[0] if errors else {}
    path = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    return _respond(
        422,
        first.get("msg", "Invalid request"),
        ErrorKind.VALIDATION.value,
        {
            "field": path or None,
            "errors": [
                {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg")}
                for e in errors
            ],
        },
    )


def setup_error_handlers(app: FastAPI):
    """
    Register the localization exception handlers on the FastAPI application.
    """
    app.add_exception_handler(LocalizationError, localization_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
