"""
namespace_provisioner.observer.openshift

List + watch observer for a single `user.openshift.io/v1` Group.

Responsibilities:
- List the group (field-selected by name) and mark the subscription synced.
- Watch for changes from the listed resource version; relist on expiry.
- Periodically redeliver the cached state (resync).
- Translate API watch events into `GroupEvent`s on the bounded stream.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

from namespace_provisioner.domain.models import Group, GroupEvent
from namespace_provisioner.gateway.errors import GatewayError
from namespace_provisioner.gateway.openshift import raise_for_api_status
from namespace_provisioner.observability.logging import get_logger
from namespace_provisioner.observer.base import GroupEventStream

log = get_logger(__name__)

GROUPS_PATH = "/apis/user.openshift.io/v1/groups"
WATCH_TIMEOUT_SECONDS = 300


class _RelistRequired(Exception):
    pass


class OpenShiftGroupObserver:
    """
    Informer-style observer with a one-entry cache.

    Event mapping:
    - initial list / relist: Created (not cached), Updated (cached), Deleted (vanished)
    - watch ADDED/MODIFIED: Created or Updated depending on the cache
    - watch DELETED: Deleted
    - resync tick: Updated(cached, cached)
    """

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        queue_size: int = 64,
        resync_period: float = 600.0,
        retry_delay: float = 5.0,
    ) -> None:
        self._http = http
        self._queue_size = queue_size
        self._resync_period = resync_period
        self._retry_delay = retry_delay

        self._stream: GroupEventStream | None = None
        self._cache: Group | None = None
        self._resource_version = ""
        self._synced = asyncio.Event()
        self._crashed = asyncio.Event()
        self._lock = asyncio.Lock()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def group_name(self) -> str:
        if self._stream is None:
            raise RuntimeError("observer has no subscription")
        return self._stream.group_name

    def subscribe(self, group_name: str) -> GroupEventStream:
        if self._stream is not None:
            raise RuntimeError(f"observer already subscribed to group {self._stream.group_name}")
        if not group_name:
            raise ValueError("group_name must be non-empty")
        self._stream = GroupEventStream(group_name=group_name, maxsize=self._queue_size)
        return self._stream

    async def start(self) -> None:
        if self._stream is None:
            raise RuntimeError("subscribe() must be called before start()")
        if self._tasks:
            return
        self._tasks.append(asyncio.create_task(self._run(), name="group-watch"))
        if self._resync_period > 0:
            self._tasks.append(asyncio.create_task(self._resync(), name="group-resync"))
        for task in self._tasks:
            task.add_done_callback(self._on_task_done)

    async def wait_for_initial_sync(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._synced_or_crashed(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return self._synced.is_set()

    async def _synced_or_crashed(self) -> None:
        waiters = {
            asyncio.ensure_future(self._synced.wait()),
            asyncio.ensure_future(self._crashed.wait()),
        }
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

    async def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        error = task.exception()
        log.error(
            "group_observer_crashed",
            group=self.group_name,
            task=task.get_name(),
            exc_info=error,
        )
        self._crashed.set()
        # Wakes the consumer; the control loop shuts down instead of idling in Watching.
        if self._stream is not None:
            self._stream.fail(error)

    async def _run(self) -> None:
        while True:
            try:
                await self._list()
            except (httpx.HTTPError, GatewayError, ValueError) as e:
                log.warning("group_list_failed", group=self.group_name, error=str(e))
                await asyncio.sleep(self._retry_delay)
                continue

            self._synced.set()
            try:
                await self._watch_until_relist()
            except _RelistRequired:
                log.info("group_watch_expired", group=self.group_name)

    async def _watch_until_relist(self) -> None:
        # Re-watch from the last seen resource version until the server says it expired.
        while True:
            try:
                await self._watch()
            except (httpx.HTTPError, GatewayError, ValueError) as e:
                log.warning("group_watch_interrupted", group=self.group_name, error=str(e))
                await asyncio.sleep(self._retry_delay)

    def _selector(self) -> str:
        return f"metadata.name={self.group_name}"

    async def _list(self) -> None:
        r = await self._http.get(GROUPS_PATH, params={"fieldSelector": self._selector()})
        raise_for_api_status(r, what=f"groups {self.group_name}")
        payload = r.json()

        current = None
        for item in payload.get("items") or []:
            group = Group.from_api(item)
            if group.name == self.group_name:
                current = group
        self._resource_version = str((payload.get("metadata") or {}).get("resourceVersion", ""))
        log.debug("group_listed", group=self.group_name, resource_version=self._resource_version)

        async with self._lock:
            cached, self._cache = self._cache, current
            if current is not None and cached is None:
                await self._emit(GroupEvent.created(current))
            elif current is not None and cached is not None:
                await self._emit(GroupEvent.updated(cached, current))
            elif current is None and cached is not None:
                await self._emit(GroupEvent.deleted(cached))

    async def _watch(self) -> None:
        params = {
            "watch": "true",
            "fieldSelector": self._selector(),
            "resourceVersion": self._resource_version,
            "allowWatchBookmarks": "true",
            "timeoutSeconds": str(WATCH_TIMEOUT_SECONDS),
        }
        async with self._http.stream("GET", GROUPS_PATH, params=params, timeout=None) as r:
            if r.status_code == 410:
                raise _RelistRequired()
            if not r.is_success:
                await r.aread()
                raise_for_api_status(r, what=f"watch groups {self.group_name}")

            async for line in r.aiter_lines():
                if line.strip():
                    await self._handle_watch_event(json.loads(line))

    async def _handle_watch_event(self, event: dict[str, Any]) -> None:
        kind = event.get("type")
        obj = event.get("object") or {}

        if kind == "ERROR":
            # The object is a `Status`; 410 Gone means our resource version is too old.
            if obj.get("code") == 410:
                raise _RelistRequired()
            raise GatewayError(
                f"watch error for group {self.group_name}",
                status_code=obj.get("code"),
                detail=str(obj.get("message", "")),
            )

        version = (obj.get("metadata") or {}).get("resourceVersion")
        if version:
            self._resource_version = str(version)
        if kind == "BOOKMARK":
            return

        group = Group.from_api(obj)
        if group.name != self.group_name:
            return

        async with self._lock:
            cached = self._cache
            if kind in ("ADDED", "MODIFIED"):
                self._cache = group
                if cached is None:
                    await self._emit(GroupEvent.created(group))
                else:
                    await self._emit(GroupEvent.updated(cached, group))
            elif kind == "DELETED":
                self._cache = None
                await self._emit(GroupEvent.deleted(cached or group))
            else:
                log.debug("group_watch_event_skipped", type=kind)

    async def _resync(self) -> None:
        while True:
            await asyncio.sleep(self._resync_period)
            async with self._lock:
                if self._cache is not None:
                    await self._emit(GroupEvent.updated(self._cache, self._cache))

    async def _emit(self, event: GroupEvent) -> None:
        assert self._stream is not None
        await self._stream.put(event)


# --- Module Notes -----------------------------------------------------------
# Events are produced while holding `_lock`, so a resync can never be enqueued between
# a cache change and the event describing it.
