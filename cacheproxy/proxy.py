"""The caching HTTP proxy: argument handling, upstream fetches and the accept loop."""

from __future__ import annotations

import re
import socket
import sys
from dataclasses import dataclass

from cacheproxy.cache import Cache, CacheMode, create_cache, mark_cached
from cacheproxy.netio import Listener, connect, write_n_bytes
from cacheproxy.request import BadRequest, read_request

PROG = "cacheproxy"
MAX_PORT = 65535
MAX_CACHE_SIZE = 1024
MAX_CACHE_ENTRY = 1 << 20
_READ_CHUNK = 2048 * 10
_NUMBER_RE = re.compile(r"\s*\+?(\d+)")


class UsageError(Exception):
    """The command line is not valid."""


@dataclass(frozen=True)
class ProxyConfig:
    """Settings taken from the command line."""

    port: int
    mode: CacheMode
    size: int


def _parse_number(text: str) -> int | None:
    if text == "":
        return 0
    match = _NUMBER_RE.fullmatch(text)
    return int(match.group(1)) if match else None


def parse_args(argv: list[str]) -> ProxyConfig:
    """Parse ``<port> <mode> <n>``; raise UsageError when they are not valid."""
    if len(argv) != 3:
        raise UsageError(f"usage: {PROG} <port> <mode> <n>")
    port_text, mode_text, size_text = argv

    port = _parse_number(port_text)
    if port is None or not 1 <= port <= MAX_PORT:
        raise UsageError(f"invalid port number: {port_text}")

    if mode_text not in (CacheMode.FIFO.value, CacheMode.LRU.value):
        raise UsageError(f"invalid mode: {mode_text}")

    size = _parse_number(size_text)
    if size is None or not 0 <= size <= MAX_CACHE_SIZE:
        raise UsageError(f"invalid cache size: {size_text}")

    return ProxyConfig(port=port, mode=CacheMode(mode_text), size=size)


def fetch(upstream: socket.socket, uri: str, client: socket.socket) -> bytes:
    """Send a GET for ``uri`` upstream, relay the reply to ``client`` and return it."""
    request = f"GET /{uri} HTTP/1.1\r\nConnection: Close\r\n\r\n".encode("ascii")
    write_n_bytes(upstream, request)
    parts: list[bytes] = []
    while True:
        try:
            chunk = upstream.recv(_READ_CHUNK)
        except OSError:
            break
        if not chunk:
            break
        parts.append(chunk)
        try:
            write_n_bytes(client, chunk)
        except OSError:
            pass
    return b"".join(parts)


def handle_connection(conn: socket.socket, cache: Cache | None) -> None:
    """Serve one client connection from the cache or from the origin server."""
    with conn:
        try:
            request = read_request(conn)
        except BadRequest as exc:
            print(f"Bad request: {exc}", file=sys.stderr)
            return
        except OSError as exc:
            print(f"Bad request: {exc}", file=sys.stderr)
            return

        entry = None
        if cache is not None:
            entry = cache.find(request.host, request.uri, request.port)

        if entry is not None and cache is not None:
            print("Hit!", file=sys.stderr)
            if cache.hit(entry) is not None:
                mark_cached(entry)
                try:
                    write_n_bytes(conn, entry.response)
                except OSError:
                    pass
        else:
            print("Miss!", file=sys.stderr)
            try:
                upstream = connect(request.host, request.port)
            except OSError:
                print(
                    f"Cannot connect to host {request.host}:{request.port}",
                    file=sys.stderr,
                )
                return
            with upstream:
                response = fetch(upstream, request.uri, conn)
            if cache is not None and len(response) < MAX_CACHE_ENTRY:
                cache.miss(request.host, request.uri, request.port, response)

        if cache is not None:
            sys.stdout.write(cache.describe())


def serve(config: ProxyConfig) -> None:
    """Listen on the configured port and serve connections one at a time, forever."""
    cache = create_cache(config.mode, config.size)
    with Listener(config.port) as listener:
        while True:
            conn = listener.accept()
            handle_connection(conn, cache)


def main(argv: list[str] | None = None) -> int:
    """Run the proxy from the command line and return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        config = parse_args(args)
    except UsageError as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        serve(config)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"cannot listen on port {config.port}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())