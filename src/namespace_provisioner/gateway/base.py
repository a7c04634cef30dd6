"""
namespace_provisioner.gateway.base

Interface the reconciler uses to read and mutate projects and role bindings.
"""

from __future__ import annotations

from typing import Any, Protocol


class ResourceGateway(Protocol):
    """
    Every method returns the API object on success and raises
    `ResourceNotFound`, `ResourceAlreadyExists` or `GatewayError` otherwise.
    """

    async def get_project(self, name: str) -> dict[str, Any]: ...

    async def create_project(self, name: str) -> dict[str, Any]: ...

    async def delete_project(self, name: str) -> None: ...

    async def get_role_binding(self, project: str, name: str) -> dict[str, Any]: ...

    async def create_role_binding(self, project: str, user: str) -> dict[str, Any]: ...
