"""Tests for the result transmogrifier."""

import base64

import pytest

from pwproxy._internal.remote_handle import RemoteHandle
from pwproxy._internal.transmogrify import Transmogrifier, handle_factory
from pwproxy.client import Browser


@pytest.fixture
def session(recording_session):
    return recording_session[0]


class TestRecognizedTags:
    """Values carrying a known _type become proxies."""

    def test_page_tag_becomes_handle(self, session):
        """{_guid: Page@7, _type: Page} turns into a Page proxy with that guid."""
        result = session.transmogrifier.transmogrify(session, {"_guid": "Page@7", "_type": "Page"})

        assert isinstance(result, RemoteHandle)
        assert result.class_name == "Page"
        assert result.guid == "Page@7"

    @pytest.mark.parametrize("guid", ["Widget@1", "page@abc123", "Video@0b9c"])
    def test_guid_round_trip(self, session, guid):
        """Building a proxy then reading its guid returns the original value."""
        tag = guid.split("@")[0].capitalize()
        result = session.transmogrifier.transmogrify(session, {"_guid": guid, "_type": tag})

        assert result.guid == guid

    def test_video_tag_recognized(self, session):
        """Video is recognized even though the engine never assigns it a guid."""
        assert session.transmogrifier.has_handler("Video")

    def test_browser_tag_uses_root_type(self, session):
        """The Browser tag builds the Browser handle subclass."""
        result = session.transmogrifier.transmogrify(session, {"_guid": "Browser@1", "_type": "Browser"})

        assert isinstance(result, Browser)

    def test_list_elements_transmogrified(self, session):
        """Every tagged element of a list becomes a proxy."""
        result = session.transmogrifier.transmogrify(
            session,
            [{"_guid": "Frame@1", "_type": "Frame"}, {"_guid": "Frame@2", "_type": "Frame"}, 3],
        )

        assert [item.guid for item in result[:2]] == ["Frame@1", "Frame@2"]
        assert result[2] == 3

    def test_mapping_values_transmogrified(self, session):
        """Handles nested in an untagged mapping, directly or in a list, become proxies."""
        result = session.transmogrifier.transmogrify(
            session,
            {
                "page": {"_guid": "Page@7", "_type": "Page"},
                "all": [{"_guid": "Page@8", "_type": "Page"}],
                "count": 2,
            },
        )

        assert isinstance(result["page"], RemoteHandle)
        assert result["page"].guid == "Page@7"
        assert [item.guid for item in result["all"]] == ["Page@8"]
        assert result["count"] == 2

    def test_bytes_decoded(self, session):
        """Binary payloads come back as bytes."""
        payload = {"_type": "bytes", "data": base64.b64encode(b"\x89PNG").decode("ascii")}

        assert session.transmogrifier.transmogrify(session, payload) == b"\x89PNG"


class TestFallThrough:
    """Everything else is returned unchanged."""

    @pytest.mark.parametrize("value", [True, 42, "text", None, [1, 2], {"plain": "data"}])
    def test_plain_values_unchanged(self, session, value):
        """Primitives, arrays and untagged mappings pass through."""
        assert session.transmogrifier.transmogrify(session, value) == value

    def test_unrecognized_tag_unchanged(self, session):
        """Unknown type tags are returned as raw values."""
        value = {"_guid": "Gizmo@1", "_type": "Gizmo"}

        assert session.transmogrifier.transmogrify(session, value) == value

    def test_tag_without_guid_unchanged(self, session):
        """A class tag without a guid cannot be addressed and stays raw."""
        value = {"_type": "Page"}

        assert session.transmogrifier.transmogrify(session, value) == value


class TestExtensibility:
    """The tag table can be extended."""

    def test_register_custom_factory(self, session):
        """A registered factory handles its tag."""
        table = Transmogrifier()
        table.register("Point", lambda _session, value: (value["x"], value["y"]))

        assert table.transmogrify(session, {"_type": "Point", "x": 1, "y": 2}) == (1, 2)

    def test_custom_handle_type(self, session):
        """handle_factory builds the requested handle subclass."""

        class PageHandle(RemoteHandle):
            pass

        table = Transmogrifier()
        table.register("Page", handle_factory(PageHandle))
        result = table.transmogrify(session, {"_guid": "Page@1", "_type": "Page"})

        assert isinstance(result, PageHandle)

    def test_for_classes_covers_spec(self, spec):
        """The default table recognizes every class in the specification."""
        table = Transmogrifier.for_classes(spec.class_names())

        for name in spec.class_names():
            assert table.has_handler(name)
        assert table.get_factory("Gizmo") is None
