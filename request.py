"""HTTP request model and parser."""

from dataclasses import dataclass, field

from config import MAX_BODY_BYTES, MAX_TARGET_LENGTH

ALLOWED_HTTP_VERSIONS = {"HTTP/1.1", "HTTP/1.0"}
KNOWN_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "OPTIONS",
    "PATCH",
    "TRACE",
    "CONNECT",
}


class HTTPRequestParseError(ValueError):
    """Request parse error carrying an HTTP status code."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


def _split_request_line(line: str) -> tuple[str, str, str]:
    tokens = line.split(" ")
    if len(tokens) != 3 or not all(tokens):
        raise HTTPRequestParseError("Invalid request line")

    method, target, version = tokens
    if not method.isalpha():
        raise HTTPRequestParseError("Method must be an alphabetic token")
    if version not in ALLOWED_HTTP_VERSIONS:
        raise HTTPRequestParseError("Unsupported HTTP version", status_code=505)
    if len(target) > MAX_TARGET_LENGTH:
        raise HTTPRequestParseError("Request target too long", status_code=414)
    # Only origin-form targets; "//x" is a path here, never an authority.
    if not target.startswith("/"):
        raise HTTPRequestParseError("Request target must be an absolute path")
    return method.upper(), target, version


def _collect_headers(lines: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in filter(None, lines):
        name, sep, value = line.partition(":")
        if not sep:
            raise HTTPRequestParseError("Malformed header line")
        key = name.strip().lower()
        if not key:
            raise HTTPRequestParseError("Header name cannot be empty")
        headers[key] = value.strip()
    return headers


def _check_body(headers: dict[str, str], body: bytes) -> None:
    if "transfer-encoding" in headers:
        raise HTTPRequestParseError("Transfer-Encoding request bodies are not supported")

    declared = headers.get("content-length")
    if declared is not None:
        try:
            declared_length = int(declared)
        except ValueError as exc:
            raise HTTPRequestParseError("Invalid Content-Length") from exc
        if declared_length < 0 or declared_length != len(body):
            raise HTTPRequestParseError("Body length does not match Content-Length")

    if len(body) > MAX_BODY_BYTES:
        raise HTTPRequestParseError("Body exceeded MAX_BODY_BYTES", status_code=413)


@dataclass(slots=True)
class HTTPRequest:
    method: str
    path: str
    http_version: str
    raw_target: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def from_bytes(cls, raw: bytes) -> "HTTPRequest":
        """Parse one framed request. The method is upper-cased but not checked against KNOWN_METHODS."""
        head, sep, body = raw.partition(b"\r\n\r\n")
        if not sep:
            raise HTTPRequestParseError("Missing CRLF CRLF request separator")

        request_line, *header_lines = head.decode("iso-8859-1").split("\r\n")
        if not request_line:
            raise HTTPRequestParseError("Missing request line")

        method, target, version = _split_request_line(request_line)
        headers = _collect_headers(header_lines)
        if version == "HTTP/1.1" and "host" not in headers:
            raise HTTPRequestParseError("Host header required for HTTP/1.1")
        _check_body(headers, body)

        path = target.split("#", 1)[0].split("?", 1)[0]
        return cls(
            method=method,
            path=path or "/",
            raw_target=target,
            http_version=version,
            headers=headers,
            body=body,
        )
