####################################
# --- Request/response schemas --- #
####################################

from typing import Dict

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


class UploadImageResponse(BaseModel):
    """Response model for `POST /upload`."""
    data: str = Field(
        description="Generated name of the stored image, relative to `/images/`.",
        json_schema_extra={"example": "0b8f4e5e-3f6c-4c1d-9a59-5d0a3b8f5b8e.png"},
    )


class ErrorResponse(BaseModel):
    """Body returned with every JSON error response."""
    message: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"message": "Unauthorized"}
        }
    )


class HealthResponse(BaseModel):
    """Response model for `GET /health`."""
    status: str
    components: Dict[str, str]
    ready: bool
