"""Tests for the specification registry.

These tests verify loading, validation and lookup without any server.
"""

import json
from pathlib import Path

import pytest

from pwproxy._internal import spec_registry
from pwproxy._internal.spec_registry import SpecRegistry, get_default_registry
from pwproxy.config import SPEC_ENV_VAR
from pwproxy.errors import ConfigError

from .fixtures.fake_engine import SPEC_DOCUMENT


def write_json(path: Path, document) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestLoad:
    """Tests for SpecRegistry.load."""

    def test_load_json(self, tmp_path: Path):
        """A JSON document in api.json layout loads every class."""
        registry = SpecRegistry.load(write_json(tmp_path / "api.json", SPEC_DOCUMENT))

        assert set(registry.class_names()) == set(SPEC_DOCUMENT)
        assert "press" in registry.members_of("Widget")

    def test_load_yaml(self, tmp_path: Path):
        """YAML documents with the same shape are accepted."""
        path = tmp_path / "api.yaml"
        path.write_text("Widget:\n  members:\n    press: {}\n    release: {}\n", encoding="utf-8")

        registry = SpecRegistry.load(path)

        assert sorted(registry.members_of("Widget")) == ["press", "release"]

    def test_missing_file_raises(self, tmp_path: Path):
        """An absent specification is a ConfigError."""
        with pytest.raises(ConfigError, match="Can't locate"):
            SpecRegistry.load(tmp_path / "nope.json")

    def test_malformed_json_raises(self, tmp_path: Path):
        """Unparsable JSON is a ConfigError."""
        path = tmp_path / "api.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError, match="not parsable"):
            SpecRegistry.load(path)

    def test_invalid_utf8_raises(self, tmp_path: Path):
        """Bytes that are not UTF-8 are a ConfigError."""
        path = tmp_path / "api.json"
        path.write_bytes(b'{"Page": {"members": {"\xff\xfe": {}}}}')

        with pytest.raises(ConfigError, match="Can't read"):
            SpecRegistry.load(path)

    def test_malformed_yaml_raises(self, tmp_path: Path):
        """Unparsable YAML is a ConfigError."""
        path = tmp_path / "api.yml"
        path.write_text("invalid: yaml: content: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError):
            SpecRegistry.load(path)

    @pytest.mark.parametrize(
        "document",
        [["Widget"], {"Widget": "press"}, {"Widget": {"members": ["press"]}}],
    )
    def test_wrong_shape_raises(self, tmp_path: Path, document):
        """Documents that are not class -> {members: mapping} are rejected."""
        with pytest.raises(ConfigError):
            SpecRegistry.load(write_json(tmp_path / "api.json", document))

    def test_class_without_members(self):
        """A class with no (or null) members exposes nothing."""
        registry = SpecRegistry.from_document({"Empty": {}, "Null": {"members": None}})

        assert dict(registry.members_of("Empty")) == {}
        assert dict(registry.members_of("Null")) == {}


class TestLookup:
    """Tests for member lookups."""

    def test_unknown_class_has_no_members(self, spec):
        """Unknown classes are legal and expose an empty mapping."""
        assert dict(spec.members_of("Nope")) == {}
        assert "Nope" not in spec

    def test_lookup_is_case_sensitive(self, spec):
        """Member and class names match exactly."""
        assert spec.has_member("Widget", "press")
        assert not spec.has_member("Widget", "Press")
        assert not spec.has_member("widget", "press")

    def test_members_are_read_only(self, spec):
        """Loaded member tables cannot be mutated."""
        members = spec.members_of("Widget")

        with pytest.raises(TypeError):
            members["hack"] = {}  # type: ignore[index]

    def test_get_returns_class_spec(self, spec):
        """get() returns the ClassSpec with its name."""
        class_spec = spec.get("Page")

        assert class_spec is not None
        assert class_spec.name == "Page"
        assert "goto" in class_spec.members


class TestDefaultRegistry:
    """Tests for the packaged specification and the per-path cache."""

    def test_packaged_spec_loads(self, monkeypatch):
        """The bundled api.json describes the core Playwright classes."""
        monkeypatch.delenv(SPEC_ENV_VAR, raising=False)

        registry = get_default_registry()

        for name in ("Browser", "BrowserContext", "Page", "Mouse", "Keyboard", "Video"):
            assert name in registry
        assert registry.has_member("Page", "goto")
        assert registry.has_member("Mouse", "click")

    def test_env_override(self, tmp_path: Path, monkeypatch):
        """PWPROXY_SPEC points the default registry at another document."""
        path = write_json(tmp_path / "custom.json", {"Gadget": {"members": {"spin": {}}}})
        monkeypatch.setenv(SPEC_ENV_VAR, str(path))

        registry = get_default_registry()

        assert registry.class_names() == ["Gadget"]

    def test_loaded_once_per_path(self, tmp_path: Path, monkeypatch):
        """The same path is parsed only once per process."""
        path = write_json(tmp_path / "api.json", SPEC_DOCUMENT)
        calls = []
        original = SpecRegistry.load.__func__

        def counting_load(cls, source):
            calls.append(source)
            return original(cls, source)

        spec_registry._load_cached.cache_clear()
        monkeypatch.setattr(SpecRegistry, "load", classmethod(counting_load))

        first = get_default_registry(path)
        second = get_default_registry(str(path))

        assert first is second
        assert len(calls) == 1
