"""Exception handlers translating domain errors into `{success, message}` bodies."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from otpauth.core.exceptions import AuthServiceError, StoreError

logger = logging.getLogger(__name__)


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def auth_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return _failure(exc.status_code, StoreError.default_message)
    return _failure(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any("email" in error.get("loc", ()) for error in errors):
        return _failure(status.HTTP_400_BAD_REQUEST, "Invalid email address.")
    logger.debug("Rejected malformed body on %s: %s", request.url.path, errors)
    return _failure(status.HTTP_400_BAD_REQUEST, "Invalid request.")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, StoreError.default_message)


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(AuthServiceError, auth_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)
