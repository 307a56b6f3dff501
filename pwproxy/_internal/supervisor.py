"""Process supervisor for the bridge server.

Spawns ``python -m pwproxy._internal.server`` on a loopback port, waits for
it to accept connections and, on stop, asks it to shut down and reaps it.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Optional

from ..config import (
    BIND_RETRIES,
    DEFAULT_HOST,
    SHUTDOWN_TIMEOUT,
    STARTUP_TIMEOUT,
    SUPPORTED_TARGETS,
)
from ..errors import InvalidTargetError, RemoteCommandError, StartupTimeoutError, TransportError
from ..interfaces import CommandTransport
from .socket_utils import find_free_port, port_is_open

__all__ = ["ServerProcess", "start", "stop"]

logger = logging.getLogger(__name__)

SERVER_MODULE = "pwproxy._internal.server"


@dataclass
class ServerProcess:
    """A running bridge server."""

    proc: subprocess.Popen
    target: str
    port: int
    host: str = DEFAULT_HOST

    @property
    def pid(self) -> int:
        return self.proc.pid

    def is_running(self) -> bool:
        return self.proc.poll() is None


def build_command(
    target: str,
    port: int,
    visible: bool,
    debug: bool,
    host: str = DEFAULT_HOST,
    spec_path: Optional[str] = None,
) -> list[str]:
    cmd = [sys.executable, "-m", SERVER_MODULE, target, "-p", str(port), "--host", host]
    if visible:
        cmd.append("-v")
    if debug:
        cmd.append("-d")
    if spec_path:
        cmd.extend(["--spec", spec_path])
    return cmd


def _spawn(cmd: list[str], debug: bool) -> subprocess.Popen:
    env = os.environ.copy()
    if debug:
        env["DEBUG"] = "pw:api"
    # Inherit stdout/stderr so server logs stay visible
    return subprocess.Popen(cmd, env=env, stdout=None, stderr=None, close_fds=True)


def _wait_ready(proc: subprocess.Popen, port: int, host: str, deadline: float) -> str:
    """Return ``"ready"``, ``"exited"`` or ``"timeout"``."""
    while True:
        if proc.poll() is not None:
            return "exited"
        if port_is_open(port, host):
            # Something else may own the port if our child lost the bind race
            return "ready" if proc.poll() is None else "exited"
        if time.monotonic() >= deadline:
            return "timeout"
        time.sleep(0.1)


def _reap(proc: subprocess.Popen, timeout: float = 5.0) -> None:
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def start(
    target_name: str,
    visible: bool = False,
    port: Optional[int] = None,
    debug: bool = False,
    *,
    host: str = DEFAULT_HOST,
    spec_path: Optional[str] = None,
    startup_timeout: float = STARTUP_TIMEOUT,
    bind_retries: int = BIND_RETRIES,
) -> ServerProcess:
    """Start a bridge server for *target_name* and wait until it is reachable.

    When *port* is None a free port is picked; if the server dies before
    listening (typically because the port was taken in the meantime) a new
    port is picked and the spawn retried, up to *bind_retries* attempts.

    Raises:
        InvalidTargetError: If *target_name* is not a supported browser.
        StartupTimeoutError: If the server never became reachable.
    """
    if target_name not in SUPPORTED_TARGETS:
        raise InvalidTargetError(f"Invalid browser '{target_name}'")

    attempts = 1 if port is not None else max(1, bind_retries)
    deadline = time.monotonic() + startup_timeout

    for attempt in range(1, attempts + 1):
        chosen = port if port is not None else find_free_port(host)
        cmd = build_command(target_name, chosen, visible, debug, host, spec_path)
        logger.debug("Starting bridge server (attempt %d/%d): %s", attempt, attempts, cmd)
        proc = _spawn(cmd, debug)

        state = _wait_ready(proc, chosen, host, deadline)
        if state == "ready":
            logger.debug("Bridge server %s up on port %d", proc.pid, chosen)
            return ServerProcess(proc=proc, target=target_name, port=chosen, host=host)
        if state == "timeout":
            _reap(proc)
            raise StartupTimeoutError(f"Server never came up after {startup_timeout}s!")
        logger.warning(
            "Bridge server exited with code %s before listening on port %d", proc.returncode, chosen
        )

    raise StartupTimeoutError(f"Server exited before becoming reachable ({attempts} attempts)")


def stop(
    server: ServerProcess,
    transport: Optional[CommandTransport] = None,
    timeout: float = SHUTDOWN_TIMEOUT,
) -> Optional[int]:
    """Ask *server* to shut down and block until its process has exited.

    Returns the exit code. Falls back to terminate/kill if the process does
    not exit within *timeout* seconds.
    """
    if server.is_running():
        owned = transport is None
        if transport is None:
            from .rpc_transports import HTTPTransport

            transport = HTTPTransport(server.port, server.host, timeout=timeout)
        try:
            transport.shutdown()
        except (TransportError, RemoteCommandError) as exc:
            logger.warning("Shutdown request to bridge server %s failed: %s", server.pid, exc)
        finally:
            if owned:
                transport.close()

        try:
            server.proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Bridge server %s ignored shutdown; terminating", server.pid)
            _reap(server.proc)
    return server.proc.returncode
