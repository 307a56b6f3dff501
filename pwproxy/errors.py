"""Exception taxonomy for pwproxy.

Only :class:`ConfigError` and the session-startup errors are fatal to a
session. Everything raised while dispatching a single command is reported
in-band by the server and surfaces on the client as :class:`RemoteCommandError`.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all pwproxy errors."""


class ConfigError(BridgeError):
    """The class/member specification is missing or malformed."""


class InvalidTargetError(BridgeError):
    """The supervisor was asked to start an unknown browser target."""


class UnsupportedTargetError(BridgeError):
    """The server was asked to open a session for an unknown root type."""


class StartupTimeoutError(BridgeError):
    """The server process never became reachable."""


class UnknownObjectError(BridgeError):
    """A command referenced a guid that is not in the remote object table."""


class UnsupportedCommandError(BridgeError):
    """The specification does not declare the command for the given type."""


class TransportError(BridgeError):
    """The HTTP exchange with the server failed (refused, timed out, bad status)."""


class RemoteCommandError(BridgeError):
    """The server answered a request with ``error: true``."""

    def __init__(self, message: object, command: str | None = None) -> None:
        self.remote_message = message
        self.command = command
        prefix = f"{command}: " if command else ""
        super().__init__(f"{prefix}{message}")
