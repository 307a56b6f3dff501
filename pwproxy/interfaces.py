"""Public protocols for pwproxy collaborators.

The bridge never talks to an automation engine directly: root objects come
from a :class:`RootLauncher`, and the client reaches the server through a
:class:`CommandTransport`. Both are structural so tests and alternative
engines can plug in without inheriting from concrete classes.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RootLauncher(Protocol):
    """Creates the root remote object of a session."""

    def supports(self, target: str) -> bool:
        """Return True if *target* names a root type this launcher can build."""

    async def launch(self, target: str, args: list[Any], kwargs: dict[str, Any]) -> Any:
        """Build the root object for *target*."""

    async def close(self) -> None:
        """Release engine resources on server shutdown."""


@runtime_checkable
class CommandTransport(Protocol):
    """Synchronous request/response channel to a bridge server."""

    def session(self, target: str, args: list[Any], kwargs: dict[str, Any] | None = None) -> Any:
        """Open a session and return the decoded ``message`` of the reply."""

    def command(self, request: dict[str, Any]) -> Any:
        """Send one ``/command`` envelope and return the decoded ``message``."""

    def shutdown(self) -> Any:
        """Ask the server process to exit."""

    def close(self) -> None:
        """Release client-side connection resources."""
