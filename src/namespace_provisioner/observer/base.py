"""
namespace_provisioner.observer.base

Observer contract and the bounded event stream that feeds the control loop.

Responsibilities:
- Define the `GroupObserver` interface consumed by the control loop.
- Provide `GroupEventStream`, a FIFO queue with a single consumer.
- Surface a crashed producer to the consumer (`ObserverFailed`).
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from namespace_provisioner.domain.models import GroupEvent


class ObserverFailed(Exception):
    """
    The observer stopped producing events because of an unexpected error.
    """


class GroupEventStream:
    """
    Bounded FIFO of group events for one subscription.

    Producers block when the queue is full, which throttles the watch instead of
    dropping events. Once `fail()` is called, events already queued are still
    delivered; after that `get()` raises `ObserverFailed`.
    """

    def __init__(self, *, group_name: str, maxsize: int) -> None:
        self.group_name = group_name
        self.error: BaseException | None = None
        self._queue: asyncio.Queue[GroupEvent] = asyncio.Queue(maxsize=maxsize)
        self._failed = asyncio.Event()

    async def put(self, event: GroupEvent) -> None:
        await self._queue.put(event)

    async def get(self) -> GroupEvent:
        if not self._queue.empty() or not self._failed.is_set():
            get_task = asyncio.ensure_future(self._queue.get())
            failed_task = asyncio.ensure_future(self._failed.wait())
            try:
                await asyncio.wait({get_task, failed_task}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                failed_task.cancel()
                if not get_task.done():
                    get_task.cancel()
            if get_task.done() and not get_task.cancelled():
                return get_task.result()

        raise ObserverFailed(f"observer for group {self.group_name} stopped") from self.error

    def fail(self, error: BaseException) -> None:
        self.error = error
        self._failed.set()

    @property
    def failed(self) -> bool:
        return self._failed.is_set()

    def empty(self) -> bool:
        return self._queue.empty()

    def qsize(self) -> int:
        return self._queue.qsize()


class GroupObserver(Protocol):
    def subscribe(self, group_name: str) -> GroupEventStream: ...

    async def start(self) -> None: ...

    async def wait_for_initial_sync(self, timeout: float | None = None) -> bool: ...

    async def close(self) -> None: ...


# --- Module Notes -----------------------------------------------------------
# `subscribe` is the only scoping point: whatever the observer puts on the stream is,
# by construction, about the subscribed group.
