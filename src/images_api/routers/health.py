from fastapi import APIRouter, Request

from images_api.schemas import HealthResponse
from images_api.storage import ImageStorage

router = APIRouter()

@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint for monitoring API status and component readiness.

    Reports whether the image directory exists and is writable.
    """
    health_status = {
        "status": "ok",
        "components": {
            "api": "ready",
            "storage": "ready",
        },
        "ready": False
    }

    storage: ImageStorage = request.app.state.storage
    try:
        if not storage.is_ready():
            health_status["components"]["storage"] = f"error: {storage.directory} is not a writable directory"
            health_status["status"] = "degraded"
    except OSError as e:
        health_status["components"]["storage"] = f"error: {str(e)}"
        health_status["status"] = "degraded"

    # Overall ready status
    health_status["ready"] = all(
        state == "ready" for state in health_status["components"].values()
    )

    return health_status
