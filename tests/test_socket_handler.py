"""Unit tests for request framing and response writing."""

import socket
import threading
import time

import pytest

from config import MAX_BODY_BYTES, MAX_HEADER_BYTES
from response import HTTPResponse
from socket_handler import (
    HeaderTooLargeError,
    MalformedRequestError,
    PayloadTooLargeError,
    SocketTimeoutError,
    extract_http_request_message,
    read_http_request_message,
    write_http_response_message,
)


def test_extract_waits_for_complete_head() -> None:
    assert extract_http_request_message(b"GET / HTTP/1.1\r\nHost: x\r\n") is None


def test_extract_waits_for_declared_body() -> None:
    partial = b"POST / HTTP/1.1\r\nHost: x\r\nContent-Length: 4\r\n\r\nab"

    assert extract_http_request_message(partial) is None
    assert extract_http_request_message(partial + b"cd") == partial + b"cd"


def test_extract_ignores_bytes_after_message() -> None:
    message = b"GET / HTTP/1.1\r\nHost: x\r\n\r\n"

    assert extract_http_request_message(message + b"GET /next") == message


def test_extract_rejects_oversized_headers() -> None:
    with pytest.raises(HeaderTooLargeError):
        extract_http_request_message(b"GET / HTTP/1.1\r\nX: " + b"a" * MAX_HEADER_BYTES)


def test_extract_rejects_oversized_body() -> None:
    head = f"POST / HTTP/1.1\r\nHost: x\r\nContent-Length: {MAX_BODY_BYTES + 1}\r\n\r\n"

    with pytest.raises(PayloadTooLargeError):
        extract_http_request_message(head.encode("ascii"))


def test_extract_rejects_bad_content_length() -> None:
    with pytest.raises(MalformedRequestError):
        extract_http_request_message(b"POST / HTTP/1.1\r\nContent-Length: -1\r\n\r\n")


def test_read_returns_empty_when_client_sends_nothing() -> None:
    client, server_side = socket.socketpair()
    with client, server_side:
        client.close()
        assert read_http_request_message(server_side) == b""


def test_read_raises_on_truncated_request() -> None:
    client, server_side = socket.socketpair()
    with client, server_side:
        client.sendall(b"GET / HTTP/1.1\r\nHo")
        client.shutdown(socket.SHUT_WR)
        with pytest.raises(MalformedRequestError):
            read_http_request_message(server_side)


def test_read_times_out_on_stalled_client() -> None:
    client, server_side = socket.socketpair()
    with client, server_side:
        server_side.settimeout(0.1)
        client.sendall(b"GET / HTTP/1.1\r\n")
        with pytest.raises(SocketTimeoutError):
            read_http_request_message(server_side)


def test_write_sends_head_and_body_in_chunks() -> None:
    client, server_side = socket.socketpair()
    body = b"x" * 1000
    with client, server_side:
        sent = write_http_response_message(
            server_side,
            HTTPResponse(status_code=200, body=body),
            write_chunk_size=64,
        )
        server_side.shutdown(socket.SHUT_WR)

        received = bytearray()
        while True:
            chunk = client.recv(4096)
            if not chunk:
                break
            received.extend(chunk)

    assert sent == len(received)
    assert bytes(received).endswith(b"\r\n\r\n" + body)


def test_read_deadline_covers_the_whole_request() -> None:
    client, server_side = socket.socketpair()
    stop = threading.Event()

    def trickle() -> None:
        payload = b"GET / HTTP/1.1\r\nHost: localhost\r\n"
        for byte in payload:
            if stop.wait(0.05):
                return
            try:
                client.sendall(bytes([byte]))
            except OSError:
                return

    sender = threading.Thread(target=trickle, daemon=True)
    with client, server_side:
        server_side.settimeout(5.0)
        sender.start()
        started = time.monotonic()
        try:
            with pytest.raises(SocketTimeoutError):
                read_http_request_message(server_side, timeout=0.3)
        finally:
            stop.set()
            sender.join(timeout=2)
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert server_side.gettimeout() == 5.0
