"""Request guards: bearer token for uploads and the Referer allow-list for image reads."""
import ipaddress
import logging
import secrets
from typing import Iterable, Optional
from urllib.parse import unquote, urlsplit

from fastapi import HTTPException, Request, status

from images_api.config.settings import Settings
from images_api.errors import InvalidRefererError, RefererDeniedError

logger = logging.getLogger(__name__)

# Schemes whose URLs have a (scheme, host, port) origin; everything else is opaque.
DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}
OPAQUE_ORIGIN = "null"
# Code points that can never appear in a domain, after percent-decoding
FORBIDDEN_HOST_CHARS = frozenset("\x00\t\n\r #/:<>?@[\\]^|%\x7f")


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the credential following the first space of an Authorization header."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2:
        return None
    return parts[1]


def is_valid_token(authorization: Optional[str], expected: str) -> bool:
    token = extract_bearer_token(authorization)
    if token is None:
        return False
    return secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def require_upload_token(request: Request) -> None:
    """FastAPI dependency rejecting requests without the configured bearer token."""
    settings: Settings = request.app.state.settings
    if not is_valid_token(request.headers.get("authorization"), settings.token):
        logger.warning(f"Unauthorized {request.method} {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def _checked_host(host: str, referer: str) -> str:
    """Validate a hostname from urlsplit and return it in serialised origin form."""
    if ":" in host:
        try:
            if "%" in host:
                raise ValueError("zone identifiers are not allowed")
            return f"[{ipaddress.IPv6Address(host).compressed}]"
        except ValueError as e:
            raise InvalidRefererError(f"Invalid URL: {referer}") from e
    host = unquote(host).lower()
    if not host or any(ch in FORBIDDEN_HOST_CHARS or ord(ch) < 0x20 for ch in host):
        raise InvalidRefererError(f"Invalid URL: {referer}")
    return host


def referer_origin(referer: str) -> str:
    """
    Compute the origin (scheme://host[:port]) of a Referer value.

    Path, query and fragment are ignored, scheme and host are lowercased and
    the scheme's default port is dropped. URLs without a hierarchical scheme
    have the opaque origin ``"null"``.

    Raises:
        InvalidRefererError: if the value cannot be parsed as an absolute URL.
    """
    try:
        parts = urlsplit(referer.strip())
        scheme = parts.scheme.lower()
        if not scheme:
            raise InvalidRefererError(f"Invalid URL: {referer}")
        if scheme not in DEFAULT_PORTS:
            return OPAQUE_ORIGIN
        host = parts.hostname
        port = parts.port
    except ValueError as e:
        if isinstance(e, InvalidRefererError):
            raise
        raise InvalidRefererError(f"Invalid URL: {referer}") from e

    if not host:
        raise InvalidRefererError(f"Invalid URL: {referer}")
    host = _checked_host(host, referer)
    if port is not None and port != DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def check_referer(referer: Optional[str], allowed_origins: Iterable[str]) -> None:
    """
    Raise RefererDeniedError when a Referer is present and its origin is not allowed.

    A missing or empty Referer is let through.
    """
    # TODO: decide with product whether requests without a Referer should be refused too
    if not referer:
        return
    origin = referer_origin(referer)
    if origin not in allowed_origins:
        raise RefererDeniedError(origin)
