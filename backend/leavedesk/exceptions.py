import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Violation(BaseModel):
    """A single rule violation found while validating an entity."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    violations: list[Violation] | None = None


class AppError(Exception):
    """Base application exception."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or rule-violating input."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, violations: list[Violation] | None = None) -> None:
        self.violations = violations or []
        super().__init__(message)

    @classmethod
    def from_violations(cls, violations: list[Violation]) -> "ValidationError":
        return cls("; ".join(v.message for v in violations), violations)


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateNameError(AppError):
    status_code = status.HTTP_409_CONFLICT


class AlreadyExistsError(AppError):
    status_code = status.HTTP_409_CONFLICT


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class StateError(AppError):
    """Invalid state transition or an already-processed period."""

    status_code = status.HTTP_409_CONFLICT


class InvalidBalanceError(AppError):
    """A mutation would break the non-negative / max-balance invariant."""

    status_code = status.HTTP_400_BAD_REQUEST


class DisabledTypeError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    violations = exc.violations if isinstance(exc, ValidationError) and exc.violations else None
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
            violations=violations,
        ).model_dump(exclude_none=True),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(exclude_none=True),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            detail="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).model_dump(exclude_none=True),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
