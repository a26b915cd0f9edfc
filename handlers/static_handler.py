"""Static file handler: read a resolved file and map the outcome to a response."""

from __future__ import annotations

import errno
import logging
import os
import stat
from pathlib import Path

from config import ServerConfig
from request import HTTPRequest
from response import HTTPResponse
from utils import PathTraversalError, get_content_type, resolve_static_file

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = "<h1>404: File not found</h1>"

_NOT_FOUND_ERRNOS = {errno.ENOENT, errno.EISDIR, errno.ENOTDIR, errno.ENAMETOOLONG}


class StaticFileError(Exception):
    """Base class for failures while reading a static file."""


class StaticFileNotFoundError(StaticFileError):
    """Raised when the target is missing or is not a regular file."""


class StaticFileReadError(StaticFileError):
    """Raised for any other I/O failure; carries a symbolic errno label."""

    def __init__(self, message: str, *, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


def _error_code(exc: OSError) -> str:
    if exc.errno is None:
        return "EIO"
    return errno.errorcode.get(exc.errno, "EIO")


def read_static_file(file_path: Path) -> bytes:
    """Return the full contents of a regular file or raise a StaticFileError."""
    try:
        file_stat = os.stat(file_path)
    except OSError as exc:
        if exc.errno in _NOT_FOUND_ERRNOS:
            raise StaticFileNotFoundError(str(file_path)) from exc
        raise StaticFileReadError(str(file_path), error_code=_error_code(exc)) from exc

    if not stat.S_ISREG(file_stat.st_mode):
        raise StaticFileNotFoundError(f"Not a regular file: {file_path}")

    try:
        return file_path.read_bytes()
    except OSError as exc:
        if exc.errno in _NOT_FOUND_ERRNOS:
            raise StaticFileNotFoundError(str(file_path)) from exc
        raise StaticFileReadError(str(file_path), error_code=_error_code(exc)) from exc


def serve_static(request: HTTPRequest, config: ServerConfig) -> HTTPResponse:
    try:
        static_path = resolve_static_file(request.path, config.root, config.default_document)
    except PathTraversalError:
        logger.warning("Rejected path outside static root: %r", request.path)
        return HTTPResponse(status_code=403, body="Forbidden")
    except OSError as exc:
        error_code = _error_code(exc)
        logger.error("Failed to resolve %r: %s", request.path, error_code)
        return HTTPResponse(status_code=500, body=f"Server Error: {error_code}")

    try:
        content = read_static_file(static_path)
    except StaticFileNotFoundError:
        return HTTPResponse(
            status_code=404,
            headers={"Content-Type": "text/html"},
            body=NOT_FOUND_BODY,
        )
    except StaticFileReadError as exc:
        logger.error("Failed to read %s: %s", static_path, exc.error_code)
        return HTTPResponse(status_code=500, body=f"Server Error: {exc.error_code}")

    return HTTPResponse(
        status_code=200,
        headers={"Content-Type": get_content_type(static_path)},
        body=content,
    )
