"""Static serving of stored images behind the Referer allow-list."""
import logging
from typing import Iterable, Union
from os import PathLike

from starlette.requests import Request
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from images_api.security import check_referer

logger = logging.getLogger(__name__)


class ImageStaticFiles(StaticFiles):
    """
    StaticFiles that checks the Referer before serving and adds a public cache policy.

    Path normalisation and the containment check against the storage directory
    are left to ``StaticFiles.lookup_path``; directories are never listed.
    """

    def __init__(
        self,
        directory: Union[str, "PathLike[str]"],
        allowed_origins: Iterable[str],
        max_age: int = 86400,
    ):
        super().__init__(directory=directory, html=False, check_dir=True)
        self.allowed_origins = frozenset(allowed_origins)
        self.max_age = max_age

    async def get_response(self, path: str, scope: Scope) -> Response:
        request = Request(scope)
        check_referer(request.headers.get("referer"), self.allowed_origins)
        response = await super().get_response(path, scope)
        response.headers["Cache-Control"] = f"public, max-age={self.max_age}"
        return response
