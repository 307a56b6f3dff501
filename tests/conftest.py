"""
Pytest configuration and fixtures.

Add any shared fixtures or pytest configuration here.
"""

import logging
import sys

import pytest
from fastapi.testclient import TestClient

from pwproxy._internal.server import BridgeServer, create_app
from pwproxy._internal.spec_registry import SpecRegistry
from pwproxy.client import Session

from .fixtures.fake_engine import SPEC_DOCUMENT, FakeLauncher, RecordingTransport


def pytest_configure(config):
    """Configure pytest with custom settings."""
    log_level = logging.DEBUG if config.getoption("--debug-pwproxy") else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("pwproxy").setLevel(log_level)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--debug-pwproxy",
        action="store_true",
        default=False,
        help="Enable debug logging for pwproxy (shows every dispatched command)",
    )


@pytest.fixture
def spec() -> SpecRegistry:
    return SpecRegistry.from_document(SPEC_DOCUMENT)


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def shutdown_calls() -> list[bool]:
    return []


@pytest.fixture
def bridge(spec, launcher, shutdown_calls) -> BridgeServer:
    return BridgeServer(spec, launcher, debug=True, on_shutdown=lambda: shutdown_calls.append(True))


@pytest.fixture
def test_client(bridge) -> TestClient:
    return TestClient(create_app(bridge))


@pytest.fixture
def recording_session(spec):
    """Session whose transport records envelopes instead of sending them."""
    transport = RecordingTransport()
    return Session(transport, spec), transport
