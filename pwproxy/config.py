from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TypedDict

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6969
STARTUP_TIMEOUT = 30.0
SHUTDOWN_TIMEOUT = 10.0
BIND_RETRIES = 3

SPEC_ENV_VAR = "PWPROXY_SPEC"

SUPPORTED_TARGETS = frozenset({"chrome", "firefox", "webkit"})

_PACKAGED_SPEC = Path(__file__).resolve().parent / "data" / "api.json"


def default_spec_path() -> Path:
    """Return the specification path used when none is given explicitly.

    ``PWPROXY_SPEC`` wins over the copy of the Playwright API description
    that ships inside the package.
    """
    override = os.environ.get(SPEC_ENV_VAR)
    if override:
        logger.debug("Using specification from %s=%s", SPEC_ENV_VAR, override)
        return Path(override)
    return _PACKAGED_SPEC


class SessionConfig(TypedDict, total=False):
    """Options accepted by :func:`pwproxy.launch`."""

    browser: str
    """Root target to launch: one of ``chrome``, ``firefox`` or ``webkit``."""

    visible: bool
    """Run the browser headed instead of headless."""

    debug: bool
    """Have the server process log every dispatched command."""

    port: int | None
    """Fixed port for the server; ``None`` picks a free one."""

    spec_path: str | None
    """Specification document to use instead of :func:`default_spec_path`."""


class ServerConfig(TypedDict):
    """Runtime configuration of a bridge server process."""

    target: str
    host: str
    port: int
    visible: bool
    debug: bool
    spec_path: str
