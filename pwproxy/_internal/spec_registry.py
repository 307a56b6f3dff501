"""Specification registry.

Parses the machine-readable class/member description once and answers
lookups of the form ``class name -> {member name: descriptor}``. The
document is the Playwright ``api.json`` layout::

    {"Page": {"name": "Page", "members": {"goto": {...}, "click": {...}}}, ...}

JSON is the native format; ``.yaml``/``.yml`` documents with the same shape
are read with PyYAML.
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from ..config import default_spec_path
from ..errors import ConfigError

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class ClassSpec:
    """Immutable description of one remote class."""

    name: str
    members: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)


class SpecRegistry:
    """Read-only view over a parsed specification document."""

    def __init__(self, classes: Mapping[str, ClassSpec], source: str = "<memory>") -> None:
        self._classes: Mapping[str, ClassSpec] = MappingProxyType(dict(classes))
        self.source = source

    @classmethod
    def load(cls, source: str | Path) -> SpecRegistry:
        """Load and validate the specification at *source*.

        Raises:
            ConfigError: If the file is absent, unreadable or malformed.
        """
        path = Path(source)
        if not path.is_file():
            raise ConfigError(f"Can't locate specification in '{path}'")
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Can't read specification '{path}': {exc}") from exc

        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                document = yaml.safe_load(raw)
            else:
                document = json.loads(raw)
        except (ValueError, yaml.YAMLError) as exc:
            raise ConfigError(f"Specification '{path}' is not parsable: {exc}") from exc

        registry = cls.from_document(document, source=str(path))
        logger.debug("Loaded %d classes from %s", len(registry), path)
        return registry

    @classmethod
    def from_document(cls, document: Any, source: str = "<memory>") -> SpecRegistry:
        """Build a registry from an already decoded document."""
        if not isinstance(document, dict):
            raise ConfigError(f"Specification {source} must be a mapping of class names")

        classes: dict[str, ClassSpec] = {}
        for name, body in document.items():
            if not isinstance(body, dict):
                raise ConfigError(f"Class '{name}' in {source} must be a mapping")
            members = body.get("members", {})
            if members is None:
                members = {}
            if not isinstance(members, dict):
                raise ConfigError(f"Members of class '{name}' in {source} must be a mapping")
            classes[str(name)] = ClassSpec(name=str(name), members=MappingProxyType(dict(members)))
        return cls(classes, source=source)

    def members_of(self, class_name: str) -> Mapping[str, Any]:
        """Return the member table of *class_name*; empty for unknown classes."""
        spec = self._classes.get(class_name)
        return spec.members if spec is not None else _EMPTY

    def has_member(self, class_name: str, member: str) -> bool:
        return member in self.members_of(class_name)

    def class_names(self) -> list[str]:
        return list(self._classes)

    def get(self, class_name: str) -> ClassSpec | None:
        return self._classes.get(class_name)

    def __contains__(self, class_name: object) -> bool:
        return class_name in self._classes

    def __iter__(self) -> Iterator[str]:
        return iter(self._classes)

    def __len__(self) -> int:
        return len(self._classes)

    def __repr__(self) -> str:
        return f"<SpecRegistry source={self.source} classes={len(self)}>"


@functools.lru_cache(maxsize=8)
def _load_cached(path: str) -> SpecRegistry:
    return SpecRegistry.load(path)


def get_default_registry(source: str | Path | None = None) -> SpecRegistry:
    """Return the process-wide registry for *source* (loaded at most once per path)."""
    path = Path(source) if source is not None else default_spec_path()
    return _load_cached(str(path.resolve()))
