"""
Remote object table & command dispatch (server side).

This module contains:
- RemoteObjectTable (guid -> live object, lock-guarded, add-only)
- IdentityPolicy (where guids come from, and when to mint one)
- CommandDispatcher (resolves, authorizes, invokes and encodes one command)
"""

from __future__ import annotations

import inspect
import logging
import threading
import uuid
from collections.abc import Iterable
from typing import Any

from ..errors import UnknownObjectError, UnsupportedCommandError
from .rpc_serialization import (
    SUB_TARGETS,
    CommandRequest,
    Response,
    camel_to_snake,
    encode_bytes,
    fail,
    object_ref,
    ok,
)
from .spec_registry import SpecRegistry

logger = logging.getLogger(__name__)

_JSON_SCALARS = (str, int, float, bool, type(None))


class RemoteObjectTable:
    """Process-wide mapping from opaque guid to live object.

    Entries are only ever added. A guid, once handed out, keeps resolving to
    the same object for the life of the process.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._objects: dict[str, Any] = {}
        self._guid_by_id: dict[int, str] = {}

    def register(self, guid: str, obj: Any) -> str:
        """Register *obj* under *guid*.

        Returns the guid the object is reachable under. An object that is
        already known keeps its first guid.

        Raises:
            ValueError: If *guid* is bound to a different object.
        """
        with self.lock:
            known = self._guid_by_id.get(id(obj))
            if known is not None:
                return known
            existing = self._objects.get(guid)
            if existing is not None and existing is not obj:
                raise ValueError(f"Object ID {guid} already registered")
            self._objects[guid] = obj
            self._guid_by_id[id(obj)] = guid
            return guid

    def guid_of(self, obj: Any) -> str | None:
        with self.lock:
            return self._guid_by_id.get(id(obj))

    def resolve(self, guid: str | None) -> Any:
        """Return the object behind *guid*.

        Raises:
            UnknownObjectError: If the guid was never registered.
        """
        with self.lock:
            if guid is not None and guid in self._objects:
                return self._objects[guid]
        raise UnknownObjectError(f"No such object: {guid}")

    def __contains__(self, guid: object) -> bool:
        with self.lock:
            return guid in self._objects

    def __len__(self) -> int:
        with self.lock:
            return len(self._objects)

    def guids(self) -> list[str]:
        with self.lock:
            return list(self._objects)


def native_identity(obj: Any) -> tuple[str, str] | None:
    """Return ``(guid, type)`` for objects that carry an engine-assigned identity.

    Playwright's public wrappers keep the channel object under ``_impl_obj``.
    """
    for candidate in (obj, getattr(obj, "_impl_obj", None)):
        if candidate is None:
            continue
        guid = getattr(candidate, "_guid", None)
        if isinstance(guid, str) and guid:
            type_name = getattr(candidate, "_type", None)
            if not isinstance(type_name, str) or not type_name:
                type_name = type(obj).__name__
            return guid, type_name
    return None


class IdentityPolicy:
    """Decides the guid and type tag of an object produced by a command.

    Objects with a native identity keep it. Objects whose type is expected to
    be addressed later but carry no identity (``Video`` in Playwright) get a
    freshly minted ``<Type>@<uuid>`` guid.
    """

    def __init__(self, mint_types: Iterable[str] = ("Video",)) -> None:
        self.mint_types = frozenset(mint_types)

    def is_addressable(self, obj: Any) -> bool:
        return native_identity(obj) is not None or type(obj).__name__ in self.mint_types

    def type_of(self, obj: Any) -> str:
        native = native_identity(obj)
        return native[1] if native is not None else type(obj).__name__

    def identify(self, obj: Any) -> tuple[str, str]:
        native = native_identity(obj)
        if native is not None:
            return native
        type_name = type(obj).__name__
        if type_name not in self.mint_types:
            raise TypeError(f"Cannot address result of type {type_name}")
        return f"{type_name}@{uuid.uuid4()}", type_name


class CommandDispatcher:
    """Executes ``/command`` requests against a :class:`RemoteObjectTable`."""

    def __init__(
        self,
        spec: SpecRegistry,
        table: RemoteObjectTable | None = None,
        policy: IdentityPolicy | None = None,
        debug: bool = False,
    ) -> None:
        self.spec = spec
        self.table = table if table is not None else RemoteObjectTable()
        self.policy = policy if policy is not None else IdentityPolicy(["Video", *spec.class_names()])
        self.debug = debug

    async def dispatch(self, request: CommandRequest) -> Response:
        """Run one command. Never raises; failures become ``error: true`` responses."""
        type_name = request.get("type", "")
        guid = request.get("object")
        command = request.get("command", "")
        args = request.get("args") or []
        kwargs = request.get("kwargs") or {}

        if self.debug:
            logger.debug("%s %s %s %s", type_name, guid, command, args)

        try:
            subject = self.table.resolve(guid)
            attr = SUB_TARGETS.get(type_name)
            if attr is not None:
                subject = getattr(subject, attr)
            if not self.spec.has_member(type_name, command):
                raise UnsupportedCommandError(
                    f"{command} is not a recognized command for {type_name or 'this object'}"
                )
            result = await self.invoke(subject, command, args, kwargs)
            return ok(self.encode(result))
        except (UnknownObjectError, UnsupportedCommandError) as exc:
            logger.warning("Rejected %s.%s on %s: %s", type_name, command, guid, exc)
            return fail(str(exc))
        except Exception as exc:
            logger.exception("Command %s.%s failed on %s", type_name, command, guid)
            return fail(str(exc) or type(exc).__name__)

    async def invoke(self, subject: Any, command: str, args: list[Any], kwargs: dict[str, Any]) -> Any:
        member = _resolve_member(subject, command)
        if not callable(member):
            if args or kwargs:
                raise TypeError(f"{command} is a property and takes no arguments")
            return member
        result = member(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def encode(self, value: Any) -> Any:
        """Turn a command result into JSON, registering every addressable object."""
        if isinstance(value, _JSON_SCALARS):
            return value
        if isinstance(value, (bytes, bytearray)):
            return encode_bytes(bytes(value))
        if isinstance(value, (list, tuple)):
            return [self.encode(item) for item in value]
        if isinstance(value, dict):
            return {str(key): self.encode(item) for key, item in value.items()}
        if self.policy.is_addressable(value):
            guid = self.table.guid_of(value)
            if guid is not None:
                return object_ref(guid, self.policy.type_of(value))
            guid, type_name = self.policy.identify(value)
            return object_ref(self.table.register(guid, value), type_name)
        raise TypeError(f"Result of type {type(value).__name__} is not JSON-encodable")

    def register_root(self, obj: Any) -> Any:
        """Register a freshly launched root object and return its encoded reference."""
        return self.encode(obj)


def _resolve_member(subject: Any, command: str) -> Any:
    try:
        return getattr(subject, command)
    except AttributeError:
        snake = camel_to_snake(command)
        if snake == command:
            raise
        return getattr(subject, snake)
