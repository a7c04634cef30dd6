"""
namespace_provisioner.controller.loop

Control loop wiring the group observer to the membership differencer and reconciler.

Responsibilities:
- Subscribe to exactly one group and wait for the initial sync.
- Consume group events one at a time (FIFO, never overlapping).
- Honour the stop signal between steps and release the observer on exit.
"""

from __future__ import annotations

import asyncio
import enum

from namespace_provisioner.controller.errors import StartupError
from namespace_provisioner.domain.membership import diff_members
from namespace_provisioner.domain.models import GroupEvent, GroupEventType
from namespace_provisioner.observability.logging import bound_context, get_logger
from namespace_provisioner.observer.base import GroupEventStream, GroupObserver
from namespace_provisioner.services.reconciler import Reconciler, ReconcileReport

log = get_logger(__name__)


class LoopState(str, enum.Enum):
    initializing = "Initializing"
    syncing = "Syncing"
    watching = "Watching"
    shutting_down = "ShuttingDown"
    stopped = "Stopped"


class ControlLoop:
    """
    Single consumer of the observer's event stream.

    Initializing -> Syncing -> Watching -> ShuttingDown -> Stopped. A stop request is
    only observed between steps; a reconciliation pass in flight always completes.
    """

    def __init__(
        self,
        *,
        group_name: str,
        observer: GroupObserver,
        reconciler: Reconciler,
        sync_timeout: float | None = None,
    ) -> None:
        self._group_name = group_name
        self._observer = observer
        self._reconciler = reconciler
        self._sync_timeout = sync_timeout
        self.state = LoopState.initializing
        self.events_handled = 0

    @property
    def group_name(self) -> str:
        return self._group_name

    async def run(self, stop: asyncio.Event) -> None:
        self._set_state(LoopState.initializing)
        try:
            stream = self._observer.subscribe(self._group_name)
        except Exception as e:
            self._set_state(LoopState.stopped)
            raise StartupError(f"cannot subscribe to group {self._group_name}: {e}") from e

        try:
            self._set_state(LoopState.syncing)
            await self._observer.start()
            if stop.is_set():
                return

            synced = await self._wait_for_sync(stop)
            if stop.is_set():
                return
            if not synced:
                raise StartupError(f"failed to wait for group {self._group_name} cache to sync")

            self._set_state(LoopState.watching)
            log.info("controller_started", group=self._group_name)
            await self._consume(stream, stop)
        finally:
            self._set_state(LoopState.shutting_down)
            await self._observer.close()
            self._set_state(LoopState.stopped)

    async def handle_event(self, event: GroupEvent) -> ReconcileReport | None:
        group = event.new
        with bound_context(group=group.name, event=event.type.value):
            if event.type is GroupEventType.deleted:
                log.info("group_deleted_ignored")
                return None

            if event.type is GroupEventType.created:
                log.info("group_created", resource_version=group.resource_version)
                delta = diff_members(None, group.members)
            else:
                old = event.old or group
                log.info("group_updated")
                log.debug(
                    "group_versions",
                    old_resource_version=old.resource_version,
                    new_resource_version=group.resource_version,
                )
                delta = diff_members(old.members, group.members)

            if delta.is_empty:
                log.debug("group_no_member_changes")
                return None

            if delta.added:
                log.info("users_added", users=sorted(delta.added))
            if delta.removed:
                log.info("users_removed", users=sorted(delta.removed))
            return await self._reconciler.reconcile(delta)

    async def _wait_for_sync(self, stop: asyncio.Event) -> bool:
        sync_task = asyncio.ensure_future(
            self._observer.wait_for_initial_sync(self._sync_timeout)
        )
        stop_task = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait({sync_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_task.cancel()
        if not sync_task.done():
            sync_task.cancel()
            return False
        return sync_task.result()

    async def _consume(self, stream: GroupEventStream, stop: asyncio.Event) -> None:
        stop_task = asyncio.ensure_future(stop.wait())
        try:
            while not stop.is_set():
                get_task = asyncio.ensure_future(stream.get())
                await asyncio.wait({get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
                if not get_task.done():
                    get_task.cancel()
                    break
                await self.handle_event(get_task.result())
                self.events_handled += 1
        finally:
            stop_task.cancel()

    def _set_state(self, state: LoopState) -> None:
        if state is not self.state:
            log.debug("controller_state", group=self._group_name, state=state.value)
        self.state = state


# --- Module Notes -----------------------------------------------------------
# Events for other groups never reach `handle_event`: the subscription is scoped by
# name at the observer, so there is no runtime name check here.
