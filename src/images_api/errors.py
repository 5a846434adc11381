"""
Error types raised by the Images API and the handlers that turn them into responses.

Every failure is answered at the request boundary with a small body carrying a
human readable ``message``; stack traces stay in the server log.
"""
import logging

import pydantic
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """Base class for failures coming out of multipart upload parsing/validation."""

    code = "UPLOAD_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class UnsupportedMediaTypeError(UploadError):
    code = "UNSUPPORTED_MEDIA_TYPE"


class FileTooLargeError(UploadError):
    code = "LIMIT_FILE_SIZE"

    def __init__(self, field: str | None = None):
        super().__init__("File too large", field)


class UnexpectedFieldError(UploadError):
    code = "LIMIT_UNEXPECTED_FILE"

    def __init__(self, field: str | None = None):
        super().__init__("Unexpected field", field)


class MissingFileError(UploadError):
    code = "MISSING_FILE"

    def __init__(self):
        super().__init__("No file uploaded or file type is not supported!")


class MalformedMultipartError(UploadError):
    code = "MALFORMED_MULTIPART"


class RefererDeniedError(Exception):
    """The request carried a Referer whose origin is not on the allow-list."""

    def __init__(self, origin: str):
        super().__init__(f"Referer origin {origin!r} is not allowed")
        self.origin = origin


class InvalidRefererError(ValueError):
    """The Referer header could not be parsed as a URL."""


async def handle_upload_errors(request: Request, exc: UploadError) -> JSONResponse:
    logger.warning(f"Rejected upload on {request.url.path}: [{exc.code}] {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": exc.message},
    )


async def handle_referer_denied(request: Request, exc: RefererDeniedError) -> PlainTextResponse:
    logger.warning(f"Denied {request.url.path}: {exc}")
    return PlainTextResponse("Access Denied", status_code=status.HTTP_403_FORBIDDEN)


async def handle_http_exceptions(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_errors(
    request: Request, exc: RequestValidationError | pydantic.ValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in errors
    ) or "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": message},
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that propagates out of the routers."""
    try:
        return await call_next(request)
    except Exception as err:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": str(err) or "Internal Server Error"},
        )
