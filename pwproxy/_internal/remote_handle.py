"""Remote object handle & per-class capability tables.

RemoteHandle is a lightweight reference to an object living in the bridge
server. It carries only the guid and class name; every method it answers
comes from a capability table built once per class from the specification.
Natively defined attributes are found by normal lookup first, so a
synthesized stub can never shadow them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from .rpc_serialization import SUB_TARGETS, camel_to_snake

if TYPE_CHECKING:
    from ..client import Session

logger = logging.getLogger(__name__)

Stub = Callable[..., Any]

# member name -> scoped class name ("mouse" -> "Mouse")
_SUB_TARGET_CLASSES = {attr: class_name for class_name, attr in SUB_TARGETS.items()}


class RemoteHandle:
    """Handle to an object in the bridge server.

    Attributes:
        guid: Identifier of the remote object, unique within the session.
        class_name: Specification class whose members this handle exposes.
    """

    def __init__(self, session: Session, guid: str, class_name: str) -> None:
        self._session = session
        self._guid = guid
        self._class_name = class_name

    @property
    def guid(self) -> str:
        return self._guid

    @property
    def class_name(self) -> str:
        return self._class_name

    @property
    def session(self) -> Session:
        return self._session

    def spec(self) -> Mapping[str, Any]:
        """Return the members (and their descriptors) this handle can call."""
        return self._session.spec.members_of(self._class_name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        stub = self._session.capabilities(type(self), self._class_name).get(name)
        if stub is None:
            raise AttributeError(f"{self._class_name} has no member '{name}'")
        return stub.__get__(self, type(self))

    def __dir__(self) -> list[str]:
        names = set(super().__dir__())
        names.update(self._session.capabilities(type(self), self._class_name))
        return sorted(names)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RemoteHandle):
            return NotImplemented
        return (self._guid, self._class_name) == (other._guid, other._class_name)

    def __hash__(self) -> int:
        return hash((self._guid, self._class_name))

    def __repr__(self) -> str:
        return f"<{self._class_name} guid={self._guid}>"


def _make_forwarder(command: str) -> Stub:
    def forward(self: RemoteHandle, *args: Any, **kwargs: Any) -> Any:
        return self._session.request(command, self._guid, self._class_name, args, kwargs)

    forward.__name__ = command
    forward.__qualname__ = f"RemoteHandle.{command}"
    forward.__doc__ = f"Forward ``{command}`` to the remote object."
    return forward


def _make_sub_target(command: str, scoped_class: str) -> Stub:
    def sub_target(self: RemoteHandle) -> RemoteHandle:
        return RemoteHandle(self._session, self._guid, scoped_class)

    sub_target.__name__ = command
    sub_target.__qualname__ = f"RemoteHandle.{command}"
    sub_target.__doc__ = f"Address the {scoped_class} of this object; no round trip."
    return sub_target


def build_capability_table(
    handle_type: type[RemoteHandle],
    members: Mapping[str, Any],
) -> dict[str, Stub]:
    """Build the name -> stub table for one class.

    Members already defined on *handle_type* are skipped. camelCase members
    are also reachable under their snake_case name unless that name is taken.
    """
    table: dict[str, Stub] = {}
    for command in members:
        if hasattr(handle_type, command):
            logger.debug("Not synthesizing %s: defined natively on %s", command, handle_type.__name__)
            continue
        scoped = _SUB_TARGET_CLASSES.get(command)
        table[command] = _make_sub_target(command, scoped) if scoped else _make_forwarder(command)

    for command in list(table):
        alias = camel_to_snake(command)
        if alias != command and alias not in members and not hasattr(handle_type, alias):
            table.setdefault(alias, table[command])
    return table


class CapabilityCache:
    """Capability tables of one session, built at most once per (type, class)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: dict[tuple[type[RemoteHandle], str], dict[str, Stub]] = {}

    def get(
        self,
        handle_type: type[RemoteHandle],
        class_name: str,
        members: Mapping[str, Any],
    ) -> dict[str, Stub]:
        key = (handle_type, class_name)
        with self._lock:
            table = self._tables.get(key)
            if table is None:
                table = build_capability_table(handle_type, members)
                self._tables[key] = table
                logger.debug("Built %d stubs for %s", len(table), class_name)
            return table
