from textwrap import dedent
import logging
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from images_api.errors import (
    RefererDeniedError,
    UploadError,
    handle_broad_exceptions,
    handle_http_exceptions,
    handle_referer_denied,
    handle_request_validation_errors,
    handle_upload_errors,
)
from images_api.routers.images import router as images_router
from images_api.routers.health import router as health_router
from images_api.config.settings import Settings, get_settings
from images_api.static import ImageStaticFiles
from images_api.storage import ImageStorage

# Set up logging
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Images API",
        summary="Upload images with a bearer token, serve them to allowed referers",
        version="v1",
        description=dedent(
            """\
        | Route | Notes |
        | --- | --- |
        | `POST /upload` | `Authorization: Bearer <token>`, multipart field `image`, JPEG/PNG/WebP |
        | `GET /images/{filename}` | Public cache headers; `Referer`, when sent, must be an allowed origin |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
    )

    if settings.uses_default_token:
        logger.warning("TOKEN is not set; using the insecure default upload token")

    storage = ImageStorage(settings.storage_dir)
    storage.ensure_directory()

    app.state.settings = settings
    app.state.storage = storage

    app.include_router(images_router, tags=["images"])
    app.include_router(health_router, tags=["health"])
    app.mount(
        "/images",
        ImageStaticFiles(
            directory=storage.directory,
            allowed_origins=settings.allowed_referers,
            max_age=settings.cache_max_age,
        ),
        name="images",
    )

    app.add_exception_handler(UploadError, handle_upload_errors)
    app.add_exception_handler(RefererDeniedError, handle_referer_denied)
    app.add_exception_handler(StarletteHTTPException, handle_http_exceptions)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.middleware("http")(handle_broad_exceptions)

    logger.info(f"Created {settings.app_name} ({settings.environment})")
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)
