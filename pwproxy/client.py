"""Client-side session for pwproxy.

A :class:`Session` pairs one transport with (optionally) one supervised
server process. It owns the specification, the capability tables and the
transmogrifier used by every handle created within it.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Mapping
from typing import Any, Optional

import httpx
from typing_extensions import override

from ._internal import supervisor
from ._internal.remote_handle import CapabilityCache, RemoteHandle, Stub
from ._internal.rpc_serialization import make_command
from ._internal.rpc_transports import HTTPTransport
from ._internal.spec_registry import SpecRegistry, get_default_registry
from ._internal.supervisor import ServerProcess
from ._internal.transmogrify import Transmogrifier
from .config import SessionConfig
from .errors import BridgeError, TransportError
from .interfaces import CommandTransport

__all__ = ["Session", "Browser", "launch"]

logger = logging.getLogger(__name__)


class Browser(RemoteHandle):
    """Root handle of a session.

    The session keeps its root alive. Once neither the root nor any other
    handle of the session is reachable (or on :meth:`quit`), the session is
    shut down and the server process is waited for.
    """

    def quit(self) -> Optional[int]:
        """Terminate the browser session and wait for the server to exit."""
        return self._session.close()

    def __enter__(self) -> Browser:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.quit()

    @override
    def __repr__(self) -> str:
        return f"<Browser guid={self.guid} port={self._session.port}>"


class _Shutdown:
    """Shutdown state of a session.

    Kept apart from the session so the root's finalizer can hold it without
    keeping the session (and through it the root) reachable.
    """

    def __init__(self, transport: CommandTransport, process: ServerProcess | None) -> None:
        self.transport = transport
        self.process = process
        self.done = False

    def __call__(self) -> Optional[int]:
        if self.done:
            return None
        self.done = True
        try:
            if self.process is not None:
                return supervisor.stop(self.process, self.transport)
            try:
                self.transport.shutdown()
            except TransportError as exc:
                logger.warning("Shutdown request failed: %s", exc)
            return None
        finally:
            self.transport.close()


class Session:
    """One transport endpoint plus at most one server process."""

    def __init__(
        self,
        transport: CommandTransport,
        spec: SpecRegistry,
        *,
        process: ServerProcess | None = None,
        handle_types: Mapping[str, type[RemoteHandle]] | None = None,
    ) -> None:
        self.transport = transport
        self.spec = spec
        self.process = process
        self.handle_types = {"Browser": Browser, **(handle_types or {})}
        self.transmogrifier = Transmogrifier.for_classes(spec.class_names(), self.handle_types)
        self._capabilities = CapabilityCache()
        self._shutdown = _Shutdown(transport, process)
        # Every handle reaches the session, so the root lives as long as any of them
        self._root: Browser | None = None

    @property
    def port(self) -> Optional[int]:
        return getattr(self.transport, "port", None)

    @property
    def closed(self) -> bool:
        return self._shutdown.done

    def capabilities(self, handle_type: type[RemoteHandle], class_name: str) -> dict[str, Stub]:
        return self._capabilities.get(handle_type, class_name, self.spec.members_of(class_name))

    def handle(self, guid: str, class_name: str) -> RemoteHandle:
        """Build a proxy for an already known remote object."""
        handle_type = self.handle_types.get(class_name, RemoteHandle)
        return handle_type(self, guid, class_name)

    def request(
        self,
        command: str,
        guid: str | None,
        class_name: str,
        args: tuple[Any, ...] | list[Any] = (),
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        """Send one command and transmogrify its result."""
        if self._shutdown.done:
            raise BridgeError("Session is closed")
        envelope = make_command(command, guid, class_name, args, kwargs)
        message = self.transport.command(envelope)
        return self.transmogrifier.transmogrify(self, message)

    def open(self, target: str, *args: Any, **kwargs: Any) -> Browser:
        """Ask the server to launch *target* and return the root handle."""
        message = self.transport.session(target, list(args), kwargs)
        root = self.transmogrifier.transmogrify(self, message)
        if not isinstance(root, RemoteHandle):
            raise BridgeError(f"Could not create new session: unexpected reply {message!r}")
        if not isinstance(root, Browser):
            root = Browser(self, root.guid, root.class_name)
        self._root = root
        # Fires once the root and every handle of the session are unreachable
        weakref.finalize(root, self._shutdown)
        logger.info("Opened %s session %s", target, root.guid)
        return root

    def close(self) -> Optional[int]:
        """Shut the server down and wait for it; safe to call more than once."""
        return self._shutdown()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def launch(
    browser: str = "chrome",
    visible: bool = False,
    debug: bool = False,
    port: Optional[int] = None,
    *,
    spec_path: Optional[str] = None,
    client: Optional[httpx.Client] = None,
    launch_args: Optional[list[Any]] = None,
    launch_options: Optional[dict[str, Any]] = None,
) -> Browser:
    """Start a bridge server, open a session and return the root handle.

    Args:
        browser: One of ``chrome``, ``firefox`` or ``webkit``.
        visible: Start the browser headed.
        debug: Have the server log every command it dispatches.
        port: Fixed port for the server; a free one is picked when None.
        spec_path: Specification document overriding the packaged one.
        client: ``httpx.Client`` to send requests with.
        launch_args: Positional arguments for the engine's launch call.
        launch_options: Keyword arguments for the engine's launch call.
    """
    config = SessionConfig(browser=browser, visible=visible, debug=debug, port=port, spec_path=spec_path)
    spec = get_default_registry(config["spec_path"])
    process = supervisor.start(
        config["browser"],
        config["visible"],
        config["port"],
        config["debug"],
        spec_path=spec.source,
    )
    transport = HTTPTransport(process.port, process.host, client=client)
    session = Session(transport, spec, process=process)
    try:
        return session.open(config["browser"], *(launch_args or []), **(launch_options or {}))
    except Exception:
        session.close()
        raise
