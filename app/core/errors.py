"""Error taxonomy shared by the data-access layer and the HTTP surface."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger


logger = get_logger(__name__)


class AppError(Exception):
    name = "App"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": {
                "type": self.name,
                "message": self.message,
                "details": self.details,
            }
        }


class ClientError(AppError):
    """Malformed or unrecognized input; carries field-level details."""

    name = "Client"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    name = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class ServerError(AppError):
    """A storage invariant was violated. Detail is logged, never returned."""

    name = "Server"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Something went wrong"

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": {
                "type": self.name,
                "message": self.public_message,
                "details": [],
            }
        }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, ServerError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def sqlalchemy_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} storage error: {exc}")
    return await app_error_handler(request, ServerError(str(exc)))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)  # type: ignore[arg-type]
