"""
namespace_provisioner.api.app

FastAPI app factory for the controller's health endpoints.

Responsibilities:
- Build the FastAPI application around a running `ControlLoop`.
- Build the uvicorn server that runs it next to the loop.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import uvicorn
from fastapi import FastAPI

from namespace_provisioner import __version__
from namespace_provisioner.api.routers.health import router as health_router
from namespace_provisioner.controller.loop import ControlLoop
from namespace_provisioner.settings import Settings


class HealthServer(uvicorn.Server):
    """
    uvicorn server that leaves SIGINT/SIGTERM to the entrypoint, which stops the
    control loop first and then sets `should_exit`.
    """

    def install_signal_handlers(self) -> None:
        pass

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def create_app(*, loop: ControlLoop) -> FastAPI:
    app = FastAPI(
        title="Namespace Provisioner",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.control_loop = loop
    app.include_router(health_router, tags=["health"])
    return app


def create_server(*, app: FastAPI, settings: Settings) -> HealthServer:
    config = uvicorn.Config(
        app,
        host=settings.health_host,
        port=settings.health_port,
        log_config=None,  # structlog
        access_log=False,
    )
    return HealthServer(config)


# --- Module Notes -----------------------------------------------------------
# Health endpoints carry no business logic; they only read `ControlLoop.state`.
