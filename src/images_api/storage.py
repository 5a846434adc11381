"""
Local filesystem storage for uploaded images.

Files live in a single flat directory and are named ``<uuid4><extension>``.
Nothing else is recorded: the directory listing is the only index.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Union

from images_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

# Used instead of the client's extension when naming by MIME type
MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def original_extension(filename: Optional[str]) -> str:
    """Extension of the client-supplied filename, leading dot included, or ''."""
    if not filename:
        return ""
    return os.path.splitext(filename)[1]


def generate_filename(extension: str) -> str:
    return f"{uuid.uuid4()}{extension}"


class ImageStorage:
    """Append-only image directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def ensure_directory(self) -> Path:
        """Create the storage directory if it does not exist yet."""
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"Storing images in {self.directory.resolve()}")
        return self.directory

    def is_ready(self) -> bool:
        return self.directory.is_dir() and os.access(self.directory, os.W_OK)

    def path_for(self, filename: str) -> Path:
        return self.directory / filename

    @log_execution_time
    def save(self, content: bytes, extension: str) -> str:
        """
        Write ``content`` under a freshly generated name and return that name.

        The file is created exclusively, so an existing image is never replaced.
        """
        filename = generate_filename(extension)
        path = self.path_for(filename)
        with open(path, "xb") as f:
            try:
                f.write(content)
            except BaseException:
                # Don't leave a truncated image behind
                f.close()
                path.unlink(missing_ok=True)
                raise
        logger.info(f"Stored {filename} ({len(content)} bytes)")
        return filename
