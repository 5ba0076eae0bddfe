"""Application error definitions and FastAPI handlers."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError


class AppException(Exception):
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, code: str = "error"):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class NotFoundException(AppException):
    def __init__(self, message: str = "Record not found"):
        super().__init__(message=message, status_code=status.HTTP_404_NOT_FOUND, code="not_found")


class ValidationAppException(AppException):
    def __init__(self, message: str = "Invalid data"):
        super().__init__(message=message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, code="validation_error")


class TenantRequiredException(AppException):
    def __init__(self, message: str = "Tenant identifier is required"):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, code="tenant_required")


class InvalidTransitionException(AppException):
    def __init__(self, message: str = "Status transition is not allowed"):
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, code="invalid_transition")


class ConfirmationRequiredException(AppException):
    def __init__(self, message: str = "This change discards progress and must be confirmed"):
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, code="confirmation_required")


class ForbiddenOperationException(AppException):
    def __init__(self, message: str = "Operation is not allowed"):
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, code="forbidden_operation")


def _format_error(detail: str, code: str):
    return {"success": False, "message": detail, "code": code}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content=_format_error(exc.message, exc.code))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_format_error("Submitted data could not be validated", "validation_error"),
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_format_error("Submitted data could not be validated", "validation_error"),
        )
