from fastapi import (
    APIRouter,
    Depends,
    Request,
    UploadFile,
    status
)
from starlette.concurrency import run_in_threadpool
import logging

from images_api.config.settings import Settings
from images_api.errors import (
    FileTooLargeError,
    MissingFileError,
    UnexpectedFieldError,
    UnsupportedMediaTypeError,
)
from images_api.schemas import ErrorResponse, UploadImageResponse
from images_api.security import require_upload_token
from images_api.storage import (
    ALLOWED_MIME_TYPES,
    MIME_EXTENSIONS,
    ImageStorage,
    original_extension,
)
from images_api.uploads import media_type, parse_upload_form

logger = logging.getLogger(__name__)

IMAGE_FIELD = "image"

router = APIRouter()


def _pick_image(form) -> UploadFile | None:
    """Return the single file under IMAGE_FIELD, rejecting any other file part."""
    image = None
    for field, value in form.multi_items():
        # Plain text fields are ignored; only file parts are constrained
        if isinstance(value, str):
            continue
        if field != IMAGE_FIELD or image is not None:
            raise UnexpectedFieldError(field)
        image = value
    if image is None or not image.filename:
        return None
    return image


@router.post(
    "/upload",
    response_model=UploadImageResponse,
    dependencies=[Depends(require_upload_token)],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "multipart/form-data": {
                    "schema": {
                        "type": "object",
                        "required": [IMAGE_FIELD],
                        "properties": {IMAGE_FIELD: {"type": "string", "format": "binary"}},
                    }
                }
            },
        }
    },
)
async def upload_image(request: Request) -> UploadImageResponse:
    """
    Store one image sent as `multipart/form-data` under the `image` field.

    The body is only parsed once the bearer token has been accepted. Accepted
    types are JPEG, PNG and WebP up to the configured size limit; the stored
    file gets a random UUID name and that name is returned in `data`.
    Bodies larger than the limit are refused before they are fully read.
    """
    settings: Settings = request.app.state.settings
    storage: ImageStorage = request.app.state.storage

    form = await parse_upload_form(request, settings.max_upload_bytes)

    try:
        image = _pick_image(form)
        if image is None:
            raise MissingFileError()
        logger.debug(f"Received {image.filename!r} ({image.content_type})")

        mime_type = media_type(image.content_type)
        if mime_type not in ALLOWED_MIME_TYPES:
            raise UnsupportedMediaTypeError(
                f"Unsupported file format {mime_type or 'unknown'}: "
                "only .jpeg, .jpg, .png, .webp formats allowed!",
                IMAGE_FIELD,
            )

        content = await image.read(settings.max_upload_bytes + 1)
        if len(content) > settings.max_upload_bytes:
            raise FileTooLargeError(IMAGE_FIELD)

        if settings.derive_extension_from_mime:
            extension = MIME_EXTENSIONS[mime_type]
        else:
            extension = original_extension(image.filename)

        filename = await run_in_threadpool(storage.save, content, extension)
    finally:
        await form.close()

    return UploadImageResponse(data=filename)
