"""
RPC Transport Layer (client side).

This module contains:
- HTTPTransport: synchronous JSON request/response over httpx

One request is in flight at a time per transport; a call does not return
until the server has answered. Individual commands have no timeout by
default because the engine may legitimately wait on the browser for long.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import DEFAULT_HOST
from ..errors import RemoteCommandError, TransportError
from .rpc_serialization import CommandRequest, SessionRequest

logger = logging.getLogger(__name__)


class HTTPTransport:
    """Talks to a bridge server at ``http://<host>:<port>/``.

    Args:
        port: Port the server listens on.
        host: Loopback host of the server.
        client: Pre-built ``httpx.Client`` to use (custom user agent, test
            clients). Its lifetime stays with the caller.
        timeout: Per-request timeout in seconds; ``None`` waits forever.
    """

    def __init__(
        self,
        port: int,
        host: str = DEFAULT_HOST,
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint}"

    def _exchange(self, method: str, endpoint: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        url = self._url(endpoint)
        try:
            if body is None:
                response = self._client.request(method, url)
            else:
                response = self._client.request(method, url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        try:
            decoded = response.json()
        except ValueError as exc:
            raise TransportError(f"{method} {url} returned invalid JSON: {exc}") from exc
        if not isinstance(decoded, dict) or "error" not in decoded:
            raise TransportError(f"{method} {url} returned an unexpected body: {decoded!r}")
        return decoded

    def _unwrap(self, decoded: dict[str, Any], command: str) -> Any:
        if decoded.get("error"):
            raise RemoteCommandError(decoded.get("message"), command=command)
        return decoded.get("message")

    def session(self, target: str, args: list[Any], kwargs: dict[str, Any] | None = None) -> Any:
        body = SessionRequest(type=target, args=list(args))
        if kwargs:
            body["kwargs"] = dict(kwargs)
        logger.debug("POST /session %s", body)
        return self._unwrap(self._exchange("POST", "session", dict(body)), "session")

    def command(self, request: CommandRequest) -> Any:
        logger.debug("POST /command %s", request)
        return self._unwrap(self._exchange("POST", "command", dict(request)), request["command"])

    def shutdown(self) -> Any:
        logger.debug("GET /shutdown on %s", self.base_url)
        return self._unwrap(self._exchange("GET", "shutdown"), "shutdown")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
