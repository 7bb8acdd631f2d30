"""
Domain errors raised by the service layer and their HTTP rendering.

Services never build HTTP responses; they raise one of these and the handler
registered on the app turns it into the standard error envelope:

    {"error": {"code": "...", "message": "...", "status": 404}}
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()


class ServiceError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Missing or malformed fields on create/update."""
    status_code = 422
    code = "VALIDATION_FAILED"


class AuthenticationError(ServiceError):
    status_code = 401
    code = "AUTHENTICATION_REQUIRED"


class PermissionDeniedError(ServiceError):
    status_code = 403
    code = "PERMISSION_DENIED"


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = 409
    code = "CONFLICT"


def error_response(exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "status": exc.status_code,
            }
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        log.info(
            "request.rejected",
            path=request.url.path,
            method=request.method,
            code=exc.code,
            status=exc.status_code,
        )
        return error_response(exc)
