"""
tests.conftest

Shared in-memory fakes for the gateway and the group observer.

Responsibilities:
- Record every gateway call so tests can assert on what was (not) attempted.
- Allow per-call failure injection keyed by (operation, resource name).
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from namespace_provisioner.domain.models import project_body, role_binding_body, role_binding_name
from namespace_provisioner.gateway.errors import (
    GatewayError,
    ResourceAlreadyExists,
    ResourceNotFound,
)
from namespace_provisioner.observer.base import GroupEventStream


class FakeGateway:
    def __init__(
        self,
        *,
        projects: set[str] | None = None,
        role_bindings: set[tuple[str, str]] | None = None,
    ) -> None:
        self.projects: set[str] = set(projects or ())
        self.role_bindings: set[tuple[str, str]] = set(role_bindings or ())
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        # When set, create_project waits on it, holding a pass open mid-flight.
        self.gate: asyncio.Event | None = None

    def fail(self, op: str, name: str, error: Exception | None = None) -> None:
        self.failures[(op, name)] = error or GatewayError(f"{op} {name} exploded", status_code=500)

    def calls_for(self, op: str) -> list[str]:
        return [name for called, name in self.calls if called == op]

    def _record(self, op: str, name: str) -> None:
        self.calls.append((op, name))
        error = self.failures.get((op, name))
        if error is not None:
            raise error

    async def get_project(self, name: str) -> dict[str, Any]:
        self._record("get_project", name)
        if name not in self.projects:
            raise ResourceNotFound(f"project {name} not found", status_code=404)
        return project_body(name)

    async def create_project(self, name: str) -> dict[str, Any]:
        self._record("create_project", name)
        if self.gate is not None:
            await self.gate.wait()
        if name in self.projects:
            raise ResourceAlreadyExists(f"project {name} already exists", status_code=409)
        self.projects.add(name)
        return project_body(name)

    async def delete_project(self, name: str) -> None:
        self._record("delete_project", name)
        if name not in self.projects:
            raise ResourceNotFound(f"project {name} not found", status_code=404)
        self.projects.discard(name)

    async def get_role_binding(self, project: str, name: str) -> dict[str, Any]:
        self._record("get_role_binding", project)
        if (project, name) not in self.role_bindings:
            raise ResourceNotFound(f"rolebinding {project}/{name} not found", status_code=404)
        return role_binding_body(project=project, user=project)

    async def create_role_binding(self, project: str, user: str) -> dict[str, Any]:
        self._record("create_role_binding", project)
        key = (project, role_binding_name(project))
        if key in self.role_bindings:
            raise ResourceAlreadyExists(f"rolebinding {project} already exists", status_code=409)
        self.role_bindings.add(key)
        return role_binding_body(project=project, user=user)


class FakeObserver:
    def __init__(self, *, synced: bool = True, block_sync: bool = False) -> None:
        self.synced = synced
        self.block_sync = block_sync
        self.stream: GroupEventStream | None = None
        self.subscribed_to: str | None = None
        self.started = False
        self.closed = False

    def subscribe(self, group_name: str) -> GroupEventStream:
        self.subscribed_to = group_name
        self.stream = GroupEventStream(group_name=group_name, maxsize=16)
        return self.stream

    async def start(self) -> None:
        self.started = True

    async def wait_for_initial_sync(self, timeout: float | None = None) -> bool:
        if self.block_sync:
            await asyncio.Event().wait()
        return self.synced

    async def close(self) -> None:
        self.closed = True


async def _wait_until(predicate: Callable[[], bool], *, timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    return _wait_until


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture
def make_observer() -> Callable[..., FakeObserver]:
    return FakeObserver


# --- Module Notes -----------------------------------------------------------
# FakeGateway has no namespace cascade: deleting a project leaves its role binding
# entry behind, which lets tests assert that the reconciler never deletes bindings.
