"""Main HTTP server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import socket
import time
from pathlib import Path

from config import (
    ACCEPT_TIMEOUT_SECS,
    HOST,
    LISTEN_BACKLOG,
    LOG_FORMAT,
    PORT,
    REQUEST_QUEUE_SIZE,
    STATIC_DIR,
    WORKER_COUNT,
    ServerConfig,
)
from handlers.static_handler import serve_static
from request import KNOWN_METHODS, HTTPRequest, HTTPRequestParseError
from response import HTTPResponse
from socket_handler import (
    HeaderTooLargeError,
    HTTPReadError,
    MalformedRequestError,
    PayloadTooLargeError,
    SocketTimeoutError,
    discard_pending_input,
    read_http_request_message,
    write_http_response_message,
)
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = frozenset({"GET", "HEAD"})
ALLOW_HEADER = "GET, HEAD"

_READ_ERROR_STATUS: dict[type[HTTPReadError], int] = {
    MalformedRequestError: 400,
    SocketTimeoutError: 408,
    PayloadTooLargeError: 413,
    HeaderTooLargeError: 431,
}


class HTTPServer:
    def __init__(self, config: ServerConfig | None = None) -> None:
        self.config = config or ServerConfig()
        self.host = self.config.host
        self.port = self.config.port

        self._server_socket: socket.socket | None = None
        self._pool: ThreadPool | None = None
        self._running = False

    def start(self) -> None:
        """Bind, listen and hand accepted clients to the worker pool until stopped."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server_socket:
            self._server_socket = server_socket
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.config.port))
            server_socket.listen(LISTEN_BACKLOG)
            server_socket.settimeout(ACCEPT_TIMEOUT_SECS)
            self.port = server_socket.getsockname()[1]
            self._pool = ThreadPool(
                worker_count=self.config.worker_count,
                queue_size=self.config.request_queue_size,
                handler=self._handle_client,
            )
            self._pool.start()

            self._running = True
            logger.info("The server is listening on port %s...", self.port)
            logger.info("Serving files from %s", self.config.root)
            try:
                while self._running:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError:
                        break

                    if self._pool is None or not self._pool.submit(client_socket, address):
                        self._send_queue_full_response(client_socket, address)
            finally:
                self._running = False
                if self._pool is not None:
                    self._pool.shutdown()
                    self._pool = None

    def stop(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None
        if self._pool is not None:
            self._pool.shutdown()
            self._pool = None

    def _send_queue_full_response(
        self, client_socket: socket.socket, address: tuple[str, int]
    ) -> None:
        with client_socket:
            started_at = time.perf_counter()
            response = HTTPResponse(status_code=503, body="Service Unavailable")
            try:
                discard_pending_input(client_socket)
                bytes_sent = write_http_response_message(client_socket, response)
            except OSError:
                logger.debug("Client %s went away before 503 could be sent", address[0])
                return
            self._log_request(address, "-", "-", response, bytes_sent, started_at)

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            client_socket.settimeout(self.config.socket_timeout_secs)
            started_at = time.perf_counter()
            method = "-"
            path = "-"
            try:
                raw_request = read_http_request_message(
                    client_socket, timeout=self.config.socket_timeout_secs
                )
                if not raw_request:
                    return
                request = HTTPRequest.from_bytes(raw_request)
                method = request.method
                path = request.path
                response = self._dispatch(request)
            except HTTPReadError as exc:
                status_code = _READ_ERROR_STATUS.get(type(exc), 400)
                response = HTTPResponse(status_code=status_code, body=str(exc))
            except HTTPRequestParseError as exc:
                response = HTTPResponse(status_code=exc.status_code, body=str(exc))
            except OSError as exc:
                logger.debug("Connection from %s failed while reading: %s", address[0], exc)
                return

            try:
                bytes_sent = write_http_response_message(client_socket, response)
            except OSError as exc:
                logger.debug("Client %s disconnected mid-response: %s", address[0], exc)
                return
            self._log_request(address, method, path, response, bytes_sent, started_at)

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in KNOWN_METHODS:
            return HTTPResponse(status_code=501, body="Not Implemented")

        if request.method not in SUPPORTED_METHODS:
            return HTTPResponse(
                status_code=405,
                headers={"Allow": ALLOW_HEADER},
                body="Method Not Allowed",
            )

        try:
            response = serve_static(request, self.config)
        except Exception:
            logger.exception("Unhandled error while serving %s", request.path)
            response = HTTPResponse(status_code=500, body="Internal Server Error")

        if request.method == "HEAD":
            return response.head_only()
        return response

    def _log_request(
        self,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_sent: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_out": bytes_sent,
            "latency_ms": round(duration_ms, 3),
        }
        if self.config.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["bytes_out"],
            duration_ms,
        )


def serve(config: ServerConfig) -> None:
    """Run a server for ``config`` in the current thread until interrupted."""
    server = HTTPServer(config)
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve static files over HTTP")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--root", type=Path, default=STATIC_DIR)
    parser.add_argument("--workers", type=int, default=WORKER_COUNT)
    parser.add_argument("--queue-size", type=int, default=REQUEST_QUEUE_SIZE)
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        host=args.host,
        port=args.port,
        root=args.root,
        worker_count=args.workers,
        request_queue_size=args.queue_size,
        log_format=args.log_format,
    )


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    serve(build_config(args))


if __name__ == "__main__":
    main()
