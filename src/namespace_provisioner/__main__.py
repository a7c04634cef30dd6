"""
namespace_provisioner.__main__

Entrypoint for running the controller via `python -m namespace_provisioner`.

Responsibilities:
- Load settings and configure logging.
- Compose the http client, gateway, observer, reconciler and control loop.
- Translate SIGINT/SIGTERM into a cooperative stop.
- Exit 1 on missing cluster config, failed startup sync, or a crashed observer.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from namespace_provisioner.api.app import create_app, create_server
from namespace_provisioner.controller.errors import StartupError
from namespace_provisioner.controller.loop import ControlLoop
from namespace_provisioner.gateway.client import build_http_client
from namespace_provisioner.gateway.errors import ClusterConfigError
from namespace_provisioner.gateway.openshift import OpenShiftGateway
from namespace_provisioner.observability.logging import configure_logging, get_logger
from namespace_provisioner.observer.base import ObserverFailed
from namespace_provisioner.observer.openshift import OpenShiftGroupObserver
from namespace_provisioner.services.reconciler import Reconciler
from namespace_provisioner.settings import Settings, get_settings

log = get_logger(__name__)


async def run(settings: Settings) -> None:
    stop = asyncio.Event()
    event_loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        event_loop.add_signal_handler(sig, _request_stop, stop, sig)

    async with build_http_client(settings) as http:
        observer = OpenShiftGroupObserver(
            http=http,
            queue_size=settings.event_queue_size,
            resync_period=settings.resync_period_seconds,
            retry_delay=settings.watch_retry_delay_seconds,
        )
        loop = ControlLoop(
            group_name=settings.target_group_name,
            observer=observer,
            reconciler=Reconciler(gateway=OpenShiftGateway(http=http)),
            sync_timeout=settings.sync_timeout_seconds,
        )

        server = None
        server_task = None
        if settings.health_enabled:
            server = create_server(app=create_app(loop=loop), settings=settings)
            server_task = asyncio.create_task(server.serve(), name="health-server")

        try:
            await loop.run(stop)
        finally:
            if server is not None and server_task is not None:
                server.should_exit = True
                await server_task


def _request_stop(stop: asyncio.Event, sig: signal.Signals) -> None:
    log.info("shutdown_signal_received", signal=sig.name)
    stop.set()


def main() -> None:
    settings = get_settings()
    configure_logging(service_name=settings.service_name, level=settings.log_level)
    log.info("startup", group=settings.target_group_name, env=settings.env)

    try:
        asyncio.run(run(settings))
    except (StartupError, ClusterConfigError, ObserverFailed) as e:
        log.error("controller_failed", error=str(e))
        sys.exit(1)

    log.info("controller_shut_down_gracefully")


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# In a cluster this runs as a single-replica Deployment with a service account that
# can watch groups and manage projects and role bindings.
