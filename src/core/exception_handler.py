"""
Global exception handler for the FileShare upload receiver.
Error bodies are plain text so the upload client can surface them verbatim.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from .exceptions import (
    ForbiddenPathException,
    StorageException,
    ValidationException
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""

    @app.exception_handler(ValidationException)
    async def handle_validation_error(request: Request, exc: ValidationException):
        return PlainTextResponse(exc.message, status_code=400)

    @app.exception_handler(ForbiddenPathException)
    async def handle_forbidden_path(request: Request, exc: ForbiddenPathException):
        return PlainTextResponse(exc.message, status_code=403)

    @app.exception_handler(StorageException)
    async def handle_storage_error(request: Request, exc: StorageException):
        return PlainTextResponse(exc.message, status_code=500)

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return PlainTextResponse("An unexpected error occurred", status_code=500)
