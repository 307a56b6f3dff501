"""
Wire envelopes & value helpers.

This module contains:
1. Envelope TypedDicts for the ``/session``, ``/command`` and response bodies
2. Constructors for success/error responses
3. Small codecs shared by client and server (bytes payloads, member aliases)
"""

from __future__ import annotations

import base64
import re
from typing import Any, Optional, TypedDict

GUID_KEY = "_guid"
TYPE_KEY = "_type"
BYTES_TAG = "bytes"

# Request types that address a facility hanging off the resolved object rather
# than the object itself, mapped to the attribute holding that facility.
SUB_TARGETS: dict[str, str] = {"Mouse": "mouse", "Keyboard": "keyboard"}

# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class SessionRequest(TypedDict, total=False):
    type: str
    args: list[Any]
    kwargs: dict[str, Any]


class CommandRequest(TypedDict, total=False):
    command: str
    object: Optional[str]
    type: str
    args: list[Any]
    kwargs: dict[str, Any]


class Response(TypedDict):
    error: bool
    message: Any


class ObjectRef(TypedDict):
    _guid: str
    _type: str


def make_command(
    command: str,
    guid: str | None,
    type_name: str,
    args: list[Any] | tuple[Any, ...] = (),
    kwargs: dict[str, Any] | None = None,
) -> CommandRequest:
    request = CommandRequest(command=command, object=guid, type=type_name, args=list(args))
    if kwargs:
        request["kwargs"] = dict(kwargs)
    return request


def ok(message: Any) -> Response:
    return Response(error=False, message=message)


def fail(message: Any) -> Response:
    return Response(error=True, message=message)


def object_ref(guid: str, type_name: str) -> ObjectRef:
    return {GUID_KEY: guid, TYPE_KEY: type_name}  # type: ignore[return-value]


def is_object_ref(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get(TYPE_KEY), str)


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


def encode_bytes(data: bytes) -> dict[str, str]:
    """Binary results (screenshots, PDFs) travel as base64 under a ``bytes`` tag."""
    return {TYPE_KEY: BYTES_TAG, "data": base64.b64encode(data).decode("ascii")}


def decode_bytes(value: dict[str, Any]) -> bytes:
    return base64.b64decode(value["data"])


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])|(?<=[A-Z])([A-Z])(?=[a-z])")


def camel_to_snake(name: str) -> str:
    """``waitForSelector`` -> ``wait_for_selector``; ``$eval`` style names pass through."""
    return _CAMEL_BOUNDARY.sub(lambda m: "_" + (m.group(1) or m.group(2)), name).lower()
