"""Socket helpers: exact reads and writes, a listening socket and client connections."""

from __future__ import annotations

import socket

ACCEPT_TIMEOUT = 5.0
_CHUNK = 4096


def read_n_bytes(conn: socket.socket, n: int) -> bytes:
    """Read until ``n`` bytes have arrived or the peer closes; errors and timeouts raise OSError."""
    parts: list[bytes] = []
    remaining = n
    while remaining > 0:
        chunk = conn.recv(min(remaining, _CHUNK))
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def write_n_bytes(conn: socket.socket, data: bytes) -> int:
    """Write all of ``data`` and return how many bytes were written."""
    conn.sendall(data)
    return len(data)


def pass_n_bytes(src: socket.socket, dst: socket.socket, n: int) -> int:
    """Copy up to ``n`` bytes from ``src`` to ``dst``, stopping early at end of input."""
    passed = 0
    while passed < n:
        chunk = src.recv(min(n - passed, _CHUNK))
        if not chunk:
            break
        dst.sendall(chunk)
        passed += len(chunk)
    return passed


def connect(host: str, port: int) -> socket.socket:
    """Open a TCP connection to ``host:port``; raise OSError on failure."""
    return socket.create_connection((host, port))


class Listener:
    """A TCP socket listening on a port on all interfaces."""

    def __init__(self, port: int) -> None:
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.bind(("", port))
            self._sock.listen(socket.SOMAXCONN)
        except OSError:
            self._sock.close()
            raise
        self.port: int = self._sock.getsockname()[1]

    def accept(self) -> socket.socket:
        """Accept a connection and give it a five-second timeout."""
        conn, _ = self._sock.accept()
        conn.settimeout(ACCEPT_TIMEOUT)
        return conn

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> Listener:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()