"""Loopback port helpers for the bridge server."""

import socket

from ..config import DEFAULT_HOST

__all__ = ["find_free_port", "port_is_open"]


def find_free_port(host: str = DEFAULT_HOST) -> int:
    """Return a port that was free a moment ago.

    The port is released before returning, so another process can still take
    it before the server binds; callers must treat bind failure as retryable.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return int(sock.getsockname()[1])


def port_is_open(port: int, host: str = DEFAULT_HOST, timeout: float = 0.5) -> bool:
    """Return True if something accepts TCP connections on *port*."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False
