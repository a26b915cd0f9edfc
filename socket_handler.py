"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket
import time

from config import (
    MAX_BODY_BYTES,
    MAX_HEADER_BYTES,
    MAX_REQUEST_BYTES,
    READ_CHUNK_SIZE,
    WRITE_CHUNK_SIZE,
)
from response import HTTPResponse, prepare_head

HEAD_TERMINATOR = b"\r\n\r\n"


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request."""


class HeaderTooLargeError(HTTPReadError):
    """Raised when HTTP headers exceed configured maximum size."""


class PayloadTooLargeError(HTTPReadError):
    """Raised when request body exceeds configured maximum size."""


class SocketTimeoutError(HTTPReadError):
    """Raised when the whole request did not arrive before the read deadline."""


def _declared_body_length(head: bytes) -> int:
    for line in head.decode("iso-8859-1").split("\r\n")[1:]:
        name, sep, value = line.partition(":")
        if not sep or name.strip().lower() != "content-length":
            continue
        try:
            length = int(value.strip())
        except ValueError as exc:
            raise MalformedRequestError("Invalid Content-Length header") from exc
        if length < 0:
            raise MalformedRequestError("Negative Content-Length header")
        return length
    return 0


def extract_http_request_message(buffer: bytes) -> bytes | None:
    """Return one complete HTTP request from a bytes buffer, or None if more bytes are needed."""
    if len(buffer) > MAX_REQUEST_BYTES:
        raise PayloadTooLargeError("Request exceeded MAX_REQUEST_BYTES")

    head_end = buffer.find(HEAD_TERMINATOR)
    head_size = len(buffer) if head_end == -1 else head_end + len(HEAD_TERMINATOR)
    if head_size > MAX_HEADER_BYTES:
        raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
    if head_end == -1:
        return None

    body_length = _declared_body_length(buffer[:head_end])
    if body_length > MAX_BODY_BYTES:
        raise PayloadTooLargeError("Body exceeded MAX_BODY_BYTES")

    message_end = head_size + body_length
    return buffer[:message_end] if len(buffer) >= message_end else None


def read_http_request_message(
    client_socket: socket.socket,
    timeout: float | None = None,
) -> bytes:
    """Read one HTTP request within ``timeout`` seconds in total.

    ``timeout`` defaults to the socket's own timeout. It bounds the whole
    request, not each ``recv``, so a client trickling bytes cannot hold a
    worker past the deadline. Returns b"" if the client closed before
    sending anything.
    """
    original_timeout = client_socket.gettimeout()
    budget = original_timeout if timeout is None else timeout
    deadline = None if budget is None else time.monotonic() + budget
    buffer = bytearray()

    try:
        while True:
            message = extract_http_request_message(bytes(buffer))
            if message is not None:
                return message

            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise SocketTimeoutError("Request not received before the read deadline")
                client_socket.settimeout(remaining)

            try:
                chunk = client_socket.recv(READ_CHUNK_SIZE)
            except socket.timeout as exc:
                raise SocketTimeoutError("Timed out waiting for request bytes") from exc

            if not chunk:
                if buffer:
                    raise MalformedRequestError("Connection closed before request completed")
                return b""
            buffer += chunk
    finally:
        client_socket.settimeout(original_timeout)


def discard_pending_input(client_socket: socket.socket, timeout: float = 0.1) -> None:
    """Consume bytes the client already sent so closing does not reset the connection."""
    client_socket.settimeout(timeout)
    try:
        client_socket.recv(MAX_HEADER_BYTES)
    except OSError:
        pass


def write_http_response_message(
    client_socket: socket.socket,
    response: HTTPResponse,
    *,
    write_chunk_size: int = WRITE_CHUNK_SIZE,
) -> int:
    """Write an HTTPResponse head and body; returns the number of bytes sent."""
    head = prepare_head(response)
    client_socket.sendall(head)

    body = memoryview(response.body)
    for offset in range(0, len(body), write_chunk_size):
        client_socket.sendall(body[offset : offset + write_chunk_size])
    return len(head) + len(body)
