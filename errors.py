import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

MISSING_ERROR_TYPES = {"missing", "string_too_short"}


def register_error_handlers(app: FastAPI) -> None:
    """Request validation -> 400, anything unhandled -> generic 500."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=build_validation_error_response(errors),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


def build_validation_error_response(errors) -> dict:
    if errors and all(e["type"] in MISSING_ERROR_TYPES for e in errors):
        detail = "Missing required fields"
    else:
        detail = "Invalid request data"
    return {
        "detail": detail,
        "errors": [
            {
                "field": ".".join(str(loc) for loc in e["loc"] if loc != "body"),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in errors
        ],
    }
