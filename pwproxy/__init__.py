"""
pwproxy - Drive a remote Playwright object graph through specification-driven proxies.

pwproxy runs the automation engine in a separate server process and exposes
every object it produces as a lightweight local handle. The methods of each
handle are synthesized from a machine-readable description of the remote
classes (Playwright's ``api.json``), so chained calls work without any
hand-written bindings.

Key Features:
    - Proxy methods generated from the class/member specification
    - Remote object identity tracked by guid across calls
    - Results re-enter the proxy system as typed handles
    - Supervised server process with bounded startup and clean shutdown

Basic Usage:
    >>> import pwproxy
    >>> browser = pwproxy.launch(browser="chrome")
    >>> page = browser.newPage()
    >>> page.goto("https://example.com")
    >>> title = page.title()
    >>> page.mouse().click(10, 10)
    >>> browser.quit()
"""

from .client import Browser, Session, launch
from .config import SessionConfig
from .errors import (
    BridgeError,
    ConfigError,
    InvalidTargetError,
    RemoteCommandError,
    StartupTimeoutError,
    TransportError,
    UnknownObjectError,
    UnsupportedCommandError,
    UnsupportedTargetError,
)
from ._internal.remote_handle import RemoteHandle
from ._internal.spec_registry import ClassSpec, SpecRegistry

__version__ = "0.1.0"

__all__ = [
    "launch",
    "Session",
    "Browser",
    "RemoteHandle",
    "SessionConfig",
    "SpecRegistry",
    "ClassSpec",
    "BridgeError",
    "ConfigError",
    "InvalidTargetError",
    "UnsupportedTargetError",
    "StartupTimeoutError",
    "UnknownObjectError",
    "UnsupportedCommandError",
    "TransportError",
    "RemoteCommandError",
]
