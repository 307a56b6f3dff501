"""Bridge server process.

Invoked by the supervisor as ``python -m pwproxy._internal.server``. Exposes
three endpoints over HTTP on the loopback interface:

- ``POST /session``  launch a root object and register it
- ``POST /command``  dispatch one command against the remote object table
- ``GET /shutdown``  acknowledge, release the engine, then exit

All state (specification, object table, engine) lives on a
:class:`BridgeServer` instance attached to the FastAPI app.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Callable
from typing import Any, Optional

import uvicorn
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import DEFAULT_HOST, DEFAULT_PORT, ServerConfig, default_spec_path
from ..errors import ConfigError, UnsupportedTargetError
from ..interfaces import RootLauncher
from .launchers import PlaywrightLauncher
from .object_registry import CommandDispatcher, RemoteObjectTable
from .rpc_serialization import CommandRequest, Response, fail, ok
from .spec_registry import SpecRegistry

logger = logging.getLogger(__name__)


class SessionBody(BaseModel):
    type: Optional[str] = None
    args: list[Any] = Field(default_factory=list)
    kwargs: dict[str, Any] = Field(default_factory=dict)


class CommandBody(BaseModel):
    type: str = ""
    object: Optional[str] = None
    command: str = ""
    args: list[Any] = Field(default_factory=list)
    kwargs: dict[str, Any] = Field(default_factory=dict)


class BridgeServer:
    """Owns the per-process state behind the HTTP endpoints."""

    def __init__(
        self,
        spec: SpecRegistry,
        launcher: RootLauncher,
        *,
        debug: bool = False,
        on_shutdown: Callable[[], None] | None = None,
    ) -> None:
        self.spec = spec
        self.launcher = launcher
        self.dispatcher = CommandDispatcher(spec, debug=debug)
        self.debug = debug
        self.on_shutdown = on_shutdown

    @property
    def table(self) -> RemoteObjectTable:
        return self.dispatcher.table

    async def open_session(self, body: SessionBody) -> Response:
        target = body.type
        try:
            if not target or not self.launcher.supports(target):
                raise UnsupportedTargetError("Please select a supported browser")
            root = await self.launcher.launch(target, list(body.args), dict(body.kwargs))
            message = self.dispatcher.register_root(root)
        except UnsupportedTargetError as exc:
            logger.warning("Rejected session for %r: %s", target, exc)
            return fail(str(exc))
        except Exception as exc:
            logger.exception("Could not launch %s", target)
            return fail(str(exc) or type(exc).__name__)
        logger.info("Session opened for %s: %s", target, message)
        return ok(message)

    async def command(self, body: CommandBody) -> Response:
        request = CommandRequest(
            type=body.type,
            object=body.object,
            command=body.command,
            args=list(body.args),
            kwargs=dict(body.kwargs),
        )
        return await self.dispatcher.dispatch(request)

    async def shutdown(self) -> None:
        try:
            await self.launcher.close()
        finally:
            if self.on_shutdown is not None:
                self.on_shutdown()


def create_app(server: BridgeServer) -> FastAPI:
    app = FastAPI(title="pwproxy bridge", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.bridge = server

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Malformed %s body: %s", request.url.path, exc.errors())
        return JSONResponse(content=fail(f"Malformed request: {exc.errors()}"))

    @app.post("/session")
    async def session(body: SessionBody) -> dict[str, Any]:
        return dict(await server.open_session(body))

    @app.post("/command")
    async def command(body: CommandBody) -> dict[str, Any]:
        return dict(await server.command(body))

    @app.get("/shutdown")
    async def shutdown(background_tasks: BackgroundTasks) -> dict[str, Any]:
        logger.info("Shutdown requested")
        background_tasks.add_task(server.shutdown)
        return dict(ok("Sent kill signal to browser"))

    return app


def parse_args(argv: list[str] | None = None) -> ServerConfig:
    parser = argparse.ArgumentParser(prog="pwproxy-server", description="pwproxy bridge server")
    parser.add_argument("target", nargs="?", default="chrome", help="browser to serve")
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("-v", "--visible", action="store_true", help="run the browser headed")
    parser.add_argument("-d", "--debug", action="store_true", help="log every dispatched command")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--spec", default=None, help="specification document")
    ns = parser.parse_args(argv)
    return ServerConfig(
        target=ns.target,
        host=ns.host,
        port=ns.port,
        visible=ns.visible,
        debug=ns.debug,
        spec_path=ns.spec or str(default_spec_path()),
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the bridge server process."""
    config = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if config["debug"] else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        spec = SpecRegistry.load(config["spec_path"])
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    uv_server: uvicorn.Server | None = None

    def request_exit() -> None:
        if uv_server is not None:
            uv_server.should_exit = True

    bridge = BridgeServer(
        spec,
        PlaywrightLauncher(visible=config["visible"]),
        debug=config["debug"],
        on_shutdown=request_exit,
    )
    uv_config = uvicorn.Config(
        create_app(bridge),
        host=config["host"],
        port=config["port"],
        log_level="debug" if config["debug"] else "warning",
        access_log=config["debug"],
    )
    uv_server = uvicorn.Server(uv_config)
    logger.debug("Listening on %s:%s (pid %s)", config["host"], config["port"], os.getpid())
    uv_server.run()
    # uvicorn returns normally when the socket could not be bound
    return 0 if uv_server.started else 1


if __name__ == "__main__":
    sys.exit(main())
