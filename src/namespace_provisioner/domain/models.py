"""
namespace_provisioner.domain.models

Domain types shared by the observer, reconciler and gateway.

Responsibilities:
- Represent the watched Group and its lifecycle events.
- Represent a membership delta (added/removed users).
- Derive project / role-binding names and API bodies.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

RBAC_API_GROUP = "rbac.authorization.k8s.io"
EDIT_CLUSTER_ROLE = "edit"


@dataclass(frozen=True, slots=True)
class Group:
    """
    Observed snapshot of a user group.

    `users` preserves the API ordering (and any duplicates); `members` is the
    set view the differencer works on.
    """

    name: str
    users: tuple[str, ...] = ()
    resource_version: str = ""

    @property
    def members(self) -> frozenset[str]:
        return frozenset(self.users)

    @classmethod
    def from_api(cls, obj: dict[str, Any]) -> Group:
        # `users` is serialized as null for an empty group.
        meta = obj.get("metadata") or {}
        return cls(
            name=str(meta.get("name", "")),
            users=tuple(str(u) for u in (obj.get("users") or [])),
            resource_version=str(meta.get("resourceVersion", "")),
        )


class GroupEventType(str, enum.Enum):
    created = "Created"
    updated = "Updated"
    deleted = "Deleted"


@dataclass(frozen=True, slots=True)
class GroupEvent:
    type: GroupEventType
    new: Group
    old: Group | None = None

    @classmethod
    def created(cls, group: Group) -> GroupEvent:
        return cls(type=GroupEventType.created, new=group)

    @classmethod
    def updated(cls, old: Group, new: Group) -> GroupEvent:
        return cls(type=GroupEventType.updated, new=new, old=old)

    @classmethod
    def deleted(cls, group: Group) -> GroupEvent:
        return cls(type=GroupEventType.deleted, new=group)


@dataclass(frozen=True, slots=True)
class MembershipDelta:
    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def role_binding_name(project: str) -> str:
    return f"{project}-edit"


def project_body(name: str) -> dict[str, Any]:
    return {
        "apiVersion": "project.openshift.io/v1",
        "kind": "Project",
        "metadata": {"name": name},
    }


def role_binding_body(*, project: str, user: str) -> dict[str, Any]:
    # Grants the cluster-wide "edit" role to `user`, scoped to the project namespace.
    return {
        "apiVersion": f"{RBAC_API_GROUP}/v1",
        "kind": "RoleBinding",
        "metadata": {"name": role_binding_name(project), "namespace": project},
        "subjects": [{"kind": "User", "apiGroup": RBAC_API_GROUP, "name": user}],
        "roleRef": {"apiGroup": RBAC_API_GROUP, "kind": "ClusterRole", "name": EDIT_CLUSTER_ROLE},
    }


# --- Module Notes -----------------------------------------------------------
# A project is named after its user by convention; callers pass the username as the
# project name and `role_binding_name` derives the binding from it.
