"""Path and content-type helpers shared by the static file handler."""

import errno
from pathlib import Path
from types import MappingProxyType
from urllib.parse import unquote

from config import DEFAULT_DOCUMENT, STATIC_DIR

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES = MappingProxyType(
    {
        ".html": "text/html",
        ".css": "text/css",
        ".js": "text/javascript",
        ".png": "image/png",
    }
)


class PathTraversalError(ValueError):
    """Raised when a request path would resolve outside the static root."""


def get_content_type(file_path: Path) -> str:
    return MIME_TYPES.get(file_path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def resolve_static_file(
    request_path: str,
    static_dir: Path | str = STATIC_DIR,
    default_document: str = DEFAULT_DOCUMENT,
) -> Path:
    """Map a URL path to an absolute file path that is guaranteed to sit under the root."""
    if not request_path.startswith("/"):
        raise PathTraversalError("Request path must be absolute")

    if request_path == "/":
        relative_path = default_document
    else:
        relative_path = unquote(request_path).lstrip("/")

    if "\x00" in relative_path:
        raise PathTraversalError("Request path contains a NUL byte")

    static_root = Path(static_dir).resolve()
    try:
        candidate = (static_root / relative_path).resolve()
    except RuntimeError as exc:
        # Older interpreters report symlink loops as RuntimeError.
        raise OSError(errno.ELOOP, "Too many levels of symbolic links", request_path) from exc

    try:
        candidate.relative_to(static_root)
    except ValueError as exc:
        raise PathTraversalError(f"Request path escapes static root: {request_path}") from exc

    return candidate
