"""Result transmogrifier.

Turns decoded response values back into local objects: a structured value
carrying a recognized ``_type`` tag is handed to the factory registered for
that tag (usually producing a :class:`RemoteHandle`), lists are converted
element by element, untagged mappings value by value, and everything else is returned untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from .remote_handle import RemoteHandle
from .rpc_serialization import BYTES_TAG, GUID_KEY, TYPE_KEY, decode_bytes, is_object_ref

if TYPE_CHECKING:
    from ..client import Session

logger = logging.getLogger(__name__)

Factory = Callable[["Session", dict[str, Any]], Any]


def handle_factory(handle_type: type[RemoteHandle]) -> Factory:
    """Factory building *handle_type* proxies from ``{_guid, _type}`` values."""

    def build(session: Session, value: dict[str, Any]) -> Any:
        guid = value.get(GUID_KEY)
        if not isinstance(guid, str):
            return value
        return handle_type(session, guid, value[TYPE_KEY])

    return build


def _bytes_factory(session: Session, value: dict[str, Any]) -> Any:
    return decode_bytes(value)


class Transmogrifier:
    """Extensible tag -> factory table."""

    def __init__(self) -> None:
        self._factories: dict[str, Factory] = {}

    @classmethod
    def for_classes(
        cls,
        class_names: list[str],
        handle_types: dict[str, type[RemoteHandle]] | None = None,
    ) -> Transmogrifier:
        """Table recognizing every class in *class_names* plus ``Video`` and bytes."""
        handle_types = handle_types or {}
        instance = cls()
        for tag in [*class_names, "Video"]:
            instance.register(tag, handle_factory(handle_types.get(tag, RemoteHandle)))
        for tag, handle_type in handle_types.items():
            instance.register(tag, handle_factory(handle_type))
        instance.register(BYTES_TAG, _bytes_factory)
        return instance

    def register(self, tag: str, factory: Factory) -> None:
        if tag in self._factories:
            logger.debug("Overwriting existing factory for %s", tag)
        self._factories[tag] = factory

    def get_factory(self, tag: str) -> Factory | None:
        return self._factories.get(tag)

    def has_handler(self, tag: str) -> bool:
        return tag in self._factories

    def transmogrify(self, session: Session, value: Any) -> Any:
        if isinstance(value, list):
            return [self.transmogrify(session, item) for item in value]
        if is_object_ref(value):
            factory = self._factories.get(value[TYPE_KEY])
            if factory is not None:
                return factory(session, value)
        if isinstance(value, dict):
            return {key: self.transmogrify(session, item) for key, item in value.items()}
        return value
