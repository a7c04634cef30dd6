"""
tests.test_observer_openshift

List + watch observer against a scripted API server.

Responsibilities:
- Initial list / sync signalling.
- Watch event translation, relist on expiry, and resync redelivery.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from namespace_provisioner.domain.models import Group, GroupEvent, GroupEventType
from namespace_provisioner.observer.base import GroupEventStream, ObserverFailed
from namespace_provisioner.observer.openshift import OpenShiftGroupObserver

GROUP = "devs"


def _group(*users: str, version: str) -> dict[str, Any]:
    return {
        "kind": "Group",
        "apiVersion": "user.openshift.io/v1",
        "metadata": {"name": GROUP, "resourceVersion": version},
        "users": list(users) or None,
    }


def _list(*items: dict[str, Any], version: str) -> httpx.Response:
    return httpx.Response(
        200, json={"kind": "GroupList", "metadata": {"resourceVersion": version}, "items": list(items)}
    )


def _watch(*events: tuple[str, dict[str, Any]]) -> httpx.Response:
    lines = "".join(json.dumps({"type": t, "object": o}) + "\n" for t, o in events)
    return httpx.Response(200, content=lines.encode())


class ScriptedApiServer:
    """
    Answers list requests and watch requests from two queues; once a queue is
    exhausted further requests of that kind hang until cancelled.
    """

    def __init__(self, *, lists: list[httpx.Response], watches: list[httpx.Response]) -> None:
        self.lists = list(lists)
        self.watches = list(watches)
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        pending = self.watches if request.url.params.get("watch") == "true" else self.lists
        if not pending:
            await asyncio.Event().wait()
        return pending.pop(0)


def _observer(server: ScriptedApiServer, *, resync: float = 0) -> OpenShiftGroupObserver:
    http = httpx.AsyncClient(base_url="https://api.test", transport=httpx.MockTransport(server))
    return OpenShiftGroupObserver(http=http, resync_period=resync, retry_delay=0.01)


async def _next(stream) -> Any:
    return await asyncio.wait_for(stream.get(), timeout=2.0)


@pytest.mark.asyncio
async def test_initial_list_delivers_created_and_syncs() -> None:
    server = ScriptedApiServer(lists=[_list(_group("alice", version="7"), version="7")], watches=[])
    observer = _observer(server)
    stream = observer.subscribe(GROUP)
    try:
        await observer.start()
        assert await observer.wait_for_initial_sync(timeout=2.0)

        event = await _next(stream)
        assert event.type is GroupEventType.created
        assert event.new.users == ("alice",)
        assert event.old is None
    finally:
        await observer.close()

    assert server.requests[0].url.params["fieldSelector"] == f"metadata.name={GROUP}"


@pytest.mark.asyncio
async def test_watch_events_become_group_events(wait_until) -> None:
    server = ScriptedApiServer(
        lists=[_list(version="1")],
        watches=[
            _watch(
                ("ADDED", _group("alice", version="2")),
                ("BOOKMARK", {"metadata": {"resourceVersion": "3"}}),
                ("MODIFIED", _group("alice", "bob", version="4")),
                ("DELETED", _group("alice", "bob", version="5")),
            )
        ],
    )
    observer = _observer(server)
    stream = observer.subscribe(GROUP)
    try:
        await observer.start()
        assert await observer.wait_for_initial_sync(timeout=2.0)

        created = await _next(stream)
        updated = await _next(stream)
        deleted = await _next(stream)
        await wait_until(lambda: len(server.requests) >= 3)
    finally:
        await observer.close()

    assert created.type is GroupEventType.created
    assert updated.type is GroupEventType.updated
    assert updated.old.users == ("alice",)
    assert updated.new.users == ("alice", "bob")
    assert deleted.type is GroupEventType.deleted

    watch = server.requests[1]
    assert watch.url.params["resourceVersion"] == "1"
    # The stream ended, so the watch resumed from the last seen version.
    assert server.requests[2].url.params["resourceVersion"] == "5"


@pytest.mark.asyncio
async def test_expired_watch_triggers_relist() -> None:
    server = ScriptedApiServer(
        lists=[
            _list(_group("alice", version="1"), version="1"),
            _list(_group("alice", "bob", version="9"), version="9"),
        ],
        watches=[httpx.Response(410, json={"kind": "Status", "code": 410, "reason": "Expired"})],
    )
    observer = _observer(server)
    stream = observer.subscribe(GROUP)
    try:
        await observer.start()
        first = await _next(stream)
        second = await _next(stream)
    finally:
        await observer.close()

    assert first.type is GroupEventType.created
    assert second.type is GroupEventType.updated
    assert second.old.members == {"alice"}
    assert second.new.members == {"alice", "bob"}


@pytest.mark.asyncio
async def test_relist_without_group_delivers_deleted() -> None:
    server = ScriptedApiServer(
        lists=[_list(_group("alice", version="1"), version="1"), _list(version="2")],
        watches=[_watch(("ERROR", {"kind": "Status", "code": 410, "message": "too old"}))],
    )
    observer = _observer(server)
    stream = observer.subscribe(GROUP)
    try:
        await observer.start()
        await _next(stream)
        gone = await _next(stream)
    finally:
        await observer.close()

    assert gone.type is GroupEventType.deleted
    assert gone.new.users == ("alice",)


@pytest.mark.asyncio
async def test_initial_sync_times_out_when_list_keeps_failing() -> None:
    server = ScriptedApiServer(
        lists=[httpx.Response(403, json={"kind": "Status", "code": 403}) for _ in range(50)],
        watches=[],
    )
    observer = _observer(server)
    observer.subscribe(GROUP)
    try:
        await observer.start()
        assert not await observer.wait_for_initial_sync(timeout=0.1)
    finally:
        await observer.close()


@pytest.mark.asyncio
async def test_resync_redelivers_cached_group() -> None:
    server = ScriptedApiServer(lists=[_list(_group("alice", version="1"), version="1")], watches=[])
    observer = _observer(server, resync=0.01)
    stream = observer.subscribe(GROUP)
    try:
        await observer.start()
        await _next(stream)
        resync = await _next(stream)
    finally:
        await observer.close()

    assert resync.type is GroupEventType.updated
    assert resync.old == resync.new


def test_subscribe_is_single_use() -> None:
    observer = _observer(ScriptedApiServer(lists=[], watches=[]))
    observer.subscribe(GROUP)

    with pytest.raises(RuntimeError):
        observer.subscribe("other")


@pytest.mark.asyncio
async def test_crashed_watch_task_fails_the_stream() -> None:
    async def broken(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("decoder bug")

    http = httpx.AsyncClient(base_url="https://api.test", transport=httpx.MockTransport(broken))
    observer = OpenShiftGroupObserver(http=http, retry_delay=0.01)
    stream = observer.subscribe(GROUP)
    try:
        await observer.start()
        assert not await asyncio.wait_for(observer.wait_for_initial_sync(timeout=30.0), 2.0)

        with pytest.raises(ObserverFailed) as excinfo:
            await _next(stream)
    finally:
        await observer.close()

    assert stream.failed
    assert isinstance(excinfo.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_failed_stream_drains_queued_events_first() -> None:
    stream = GroupEventStream(group_name=GROUP, maxsize=4)
    await stream.put(GroupEvent.created(Group(name=GROUP, users=("alice",), resource_version="1")))
    stream.fail(RuntimeError("gone"))

    assert (await _next(stream)).new.users == ("alice",)
    with pytest.raises(ObserverFailed):
        await _next(stream)
