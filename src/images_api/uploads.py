"""
Size-bounded form parsing for upload requests.

``Request.form()`` spools every file part to a temporary file until the body
ends, whatever its size. Here the body is refused up front when its declared
``Content-Length`` is too big, and otherwise counted while it streams into
Starlette's parsers, so at most ``limit`` bytes are ever buffered.
"""
import logging
from typing import AsyncGenerator

from starlette.datastructures import FormData
from starlette.formparsers import FormParser, MultiPartException, MultiPartParser
from starlette.requests import Request

from images_api.errors import FileTooLargeError, MalformedMultipartError

logger = logging.getLogger(__name__)

# Room for boundaries, part headers and small text fields around the file
MULTIPART_OVERHEAD = 64 * 1024


def body_limit(max_upload_bytes: int) -> int:
    return max_upload_bytes + MULTIPART_OVERHEAD


def media_type(content_type: str | None) -> str:
    """Bare, lowercased media type of a Content-Type value (parameters dropped)."""
    if not content_type:
        return ""
    return content_type.split(";")[0].strip().lower()


def check_content_length(request: Request, limit: int) -> None:
    content_length = request.headers.get("content-length")
    if content_length and content_length.strip().isdigit() and int(content_length) > limit:
        logger.warning(f"Refusing {content_length}-byte body on {request.url.path} (limit {limit})")
        raise FileTooLargeError()


async def limited_stream(request: Request, limit: int) -> AsyncGenerator[bytes, None]:
    """Yield the request body, raising FileTooLargeError once more than ``limit`` bytes arrive."""
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            logger.warning(f"Body on {request.url.path} exceeded {limit} bytes while streaming")
            raise FileTooLargeError()
        yield chunk


async def parse_upload_form(request: Request, max_upload_bytes: int) -> FormData:
    """
    Parse a multipart or urlencoded body without buffering more than the upload limit allows.

    Bodies of any other type give an empty form.

    Raises:
        FileTooLargeError: the body is larger than the limit plus multipart overhead.
        MalformedMultipartError: the multipart body cannot be parsed.
    """
    limit = body_limit(max_upload_bytes)
    check_content_length(request, limit)

    content_type = media_type(request.headers.get("content-type"))
    if content_type == "multipart/form-data":
        parser = MultiPartParser(request.headers, limited_stream(request, limit))
        try:
            return await parser.parse()
        except MultiPartException as e:
            raise MalformedMultipartError(e.message) from e
    if content_type == "application/x-www-form-urlencoded":
        return await FormParser(request.headers, limited_stream(request, limit)).parse()
    return FormData()
