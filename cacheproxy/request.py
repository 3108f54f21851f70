"""Parsing of proxy requests of the form "GET http://host:port/uri HTTP/1.1"."""

from __future__ import annotations

import re
import socket
from dataclasses import dataclass, field

GET_METHOD = "GET"
HTTP_VERSION = "HTTP/1.1"
MAX_HEADER_LEN = 2048
DEFAULT_PORT = 80
MAX_PORT = 65535

_REQUEST_LINE_RE = re.compile(
    r"(?P<method>[A-Za-z]{1,8}) "
    r"http://(?P<host>[a-zA-Z0-9.-]{1,128})"
    r"(?::(?P<port>[0-9]{1,6}))?"
    r"/(?P<uri>[a-zA-Z0-9./_]{0,256}) "
    r"(?P<version>HTTP/[0-9].[0-9])"
)
_HEADER_RE = re.compile(r"(?P<name>[a-zA-Z0-9.-]{1,128}): (?P<value>[ -~]{1,128})")


class BadRequest(Exception):
    """The client sent a request the proxy cannot serve."""


@dataclass(frozen=True)
class ProxyRequest:
    """A parsed proxy request. ``uri`` is the path without its leading slash."""

    host: str
    port: int
    uri: str
    version: str = HTTP_VERSION
    method: str = GET_METHOD
    headers: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Return the value of a header field, matched case-insensitively."""
        wanted = name.lower()
        return next((v for k, v in self.headers.items() if k.lower() == wanted), None)

    def __str__(self) -> str:
        lines = [f"{self.method} http://{self.host}:{self.port}/{self.uri} {self.version}"]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())
        return "\n".join(lines)


def parse_request(data: bytes) -> ProxyRequest:
    """Parse the head of a proxy request; raise BadRequest when it is malformed."""
    end = data.find(b"\r\n\r\n")
    if end < 0:
        raise BadRequest("incomplete request head")
    if end + 4 > MAX_HEADER_LEN:
        raise BadRequest("request head too long")
    try:
        text = data[:end].decode("ascii")
    except UnicodeDecodeError as exc:
        raise BadRequest("request head is not ASCII") from exc

    request_line, *header_lines = text.split("\r\n")
    match = _REQUEST_LINE_RE.fullmatch(request_line)
    if match is None:
        raise BadRequest(f"malformed request line: {request_line!r}")
    if match["method"] != GET_METHOD:
        raise BadRequest(f"unsupported method: {match['method']}")
    if match["version"] != HTTP_VERSION:
        raise BadRequest(f"unsupported version: {match['version']}")

    port = int(match["port"]) if match["port"] is not None else DEFAULT_PORT
    if not 1 <= port <= MAX_PORT:
        raise BadRequest(f"invalid port: {port}")

    headers: dict[str, str] = {}
    for line in header_lines:
        header = _HEADER_RE.fullmatch(line)
        if header is None:
            raise BadRequest(f"malformed header: {line!r}")
        headers[header["name"]] = header["value"]

    return ProxyRequest(
        host=match["host"],
        port=port,
        uri=match["uri"],
        version=match["version"],
        method=match["method"],
        headers=headers,
    )


def read_request(conn: socket.socket) -> ProxyRequest:
    """Read a request head from a connection and parse it."""
    buffer = bytearray()
    try:
        while b"\r\n\r\n" not in buffer:
            if len(buffer) >= MAX_HEADER_LEN:
                raise BadRequest("request head too long")
            chunk = conn.recv(MAX_HEADER_LEN - len(buffer))
            if not chunk:
                raise BadRequest("connection closed before end of request head")
            buffer.extend(chunk)
    except socket.timeout as exc:
        raise BadRequest("timed out reading request") from exc
    return parse_request(bytes(buffer))