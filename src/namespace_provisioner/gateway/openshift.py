"""
namespace_provisioner.gateway.openshift

OpenShift REST adapter for the resource gateway.

Responsibilities:
- Read/create/delete `project.openshift.io/v1` Projects.
- Read/create `rbac.authorization.k8s.io/v1` RoleBindings.
- Translate HTTP status codes into the gateway error taxonomy.
"""

from __future__ import annotations

from typing import Any

import httpx

from namespace_provisioner.domain.models import project_body, role_binding_body
from namespace_provisioner.gateway.errors import (
    GatewayError,
    ResourceAlreadyExists,
    ResourceNotFound,
)

PROJECTS_PATH = "/apis/project.openshift.io/v1/projects"
RBAC_PATH = "/apis/rbac.authorization.k8s.io/v1"


class OpenShiftGateway:
    """
    Thin async client over an injected `httpx.AsyncClient` (base URL + auth already set).
    """

    def __init__(self, *, http: httpx.AsyncClient) -> None:
        self._http = http

    async def get_project(self, name: str) -> dict[str, Any]:
        return await self._request("GET", f"{PROJECTS_PATH}/{name}", what=f"project {name}")

    async def create_project(self, name: str) -> dict[str, Any]:
        return await self._request(
            "POST", PROJECTS_PATH, what=f"project {name}", json=project_body(name)
        )

    async def delete_project(self, name: str) -> None:
        await self._request("DELETE", f"{PROJECTS_PATH}/{name}", what=f"project {name}")

    async def get_role_binding(self, project: str, name: str) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{_role_bindings_path(project)}/{name}",
            what=f"rolebinding {project}/{name}",
        )

    async def create_role_binding(self, project: str, user: str) -> dict[str, Any]:
        body = role_binding_body(project=project, user=user)
        return await self._request(
            "POST",
            _role_bindings_path(project),
            what=f"rolebinding {project}/{body['metadata']['name']}",
            json=body,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        what: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            r = await self._http.request(method, url, json=json)
        except httpx.HTTPError as e:
            raise GatewayError(f"{method} {what} failed: {e}", detail=str(e)) from e

        raise_for_api_status(r, what=what)
        if not r.content:
            return {}
        return r.json()


def _role_bindings_path(namespace: str) -> str:
    return f"{RBAC_PATH}/namespaces/{namespace}/rolebindings"


def raise_for_api_status(r: httpx.Response, *, what: str) -> None:
    if r.is_success:
        return
    detail = _status_message(r)
    if r.status_code == 404:
        raise ResourceNotFound(f"{what} not found", status_code=404, detail=detail)
    if r.status_code == 409:
        raise ResourceAlreadyExists(f"{what} already exists", status_code=409, detail=detail)
    raise GatewayError(
        f"{r.request.method} {what} returned {r.status_code}",
        status_code=r.status_code,
        detail=detail,
    )


def _status_message(r: httpx.Response) -> str:
    # The API server answers errors with a `Status` object; fall back to raw text.
    try:
        payload = r.json()
    except ValueError:
        return r.text
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("reason") or "")
    return r.text


# --- Module Notes -----------------------------------------------------------
# A 409 on create is how the API server reports a name collision, which the reconciler
# treats as "someone else already created it".
