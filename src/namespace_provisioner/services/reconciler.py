"""
namespace_provisioner.services.reconciler

Drives projects and role bindings toward the state implied by a membership delta.

Responsibilities:
- Provision added members: project (create-if-absent) then edit role binding.
- Deprovision removed members: delete the project if it exists.
- Isolate failures per member and summarise each pass in a `ReconcileReport`.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from namespace_provisioner.domain.models import MembershipDelta, role_binding_name
from namespace_provisioner.gateway.base import ResourceGateway
from namespace_provisioner.gateway.errors import (
    GatewayError,
    ResourceAlreadyExists,
    ResourceNotFound,
)
from namespace_provisioner.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(slots=True)
class ReconcileReport:
    projects_created: int = 0
    projects_deleted: int = 0
    role_bindings_created: int = 0
    provisioned: list[str] = field(default_factory=list)
    deprovisioned: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed


class Reconciler:
    """
    Each step is idempotent: "not found" before create/delete and "already exists"
    on create are expected outcomes. Any other gateway error aborts the current
    member only; there is no retry within a pass.
    """

    def __init__(self, *, gateway: ResourceGateway) -> None:
        self._gateway = gateway

    async def reconcile(self, delta: MembershipDelta) -> ReconcileReport:
        report = ReconcileReport()
        started = time.monotonic()
        try:
            # Sorted only to make logs stable; the end state does not depend on order.
            for user in sorted(delta.added):
                if await self._isolated(self.ensure_member_provisioned, user, report):
                    report.provisioned.append(user)
                else:
                    report.failed.append(user)

            for user in sorted(delta.removed):
                if await self._isolated(self.ensure_member_deprovisioned, user, report):
                    report.deprovisioned.append(user)
                else:
                    report.failed.append(user)
        finally:
            report.duration_seconds = time.monotonic() - started

        log.info(
            "reconcile_pass_complete",
            added=len(delta.added),
            removed=len(delta.removed),
            projects_created=report.projects_created,
            projects_deleted=report.projects_deleted,
            role_bindings_created=report.role_bindings_created,
            failed=report.failed,
            duration_seconds=round(report.duration_seconds, 3),
        )
        return report

    async def ensure_member_provisioned(
        self, user: str, report: ReconcileReport | None = None
    ) -> bool:
        report = report if report is not None else ReconcileReport()
        if not await self._ensure_project(user, report):
            return False
        return await self._ensure_role_binding(project=user, user=user, report=report)

    async def ensure_member_deprovisioned(
        self, user: str, report: ReconcileReport | None = None
    ) -> bool:
        report = report if report is not None else ReconcileReport()
        try:
            await self._gateway.get_project(user)
        except ResourceNotFound:
            log.debug("project_absent", user=user, project=user)
            return True
        except GatewayError as e:
            log.error("project_lookup_failed", user=user, project=user, error=str(e))
            return False

        try:
            await self._gateway.delete_project(user)
        except ResourceNotFound:
            # Deleted by someone else between lookup and delete.
            log.debug("project_absent", user=user, project=user)
            return True
        except GatewayError as e:
            log.error("project_delete_failed", user=user, project=user, error=str(e))
            return False

        log.info("project_deleted", user=user, project=user)
        report.projects_deleted += 1
        return True

    async def _ensure_project(self, user: str, report: ReconcileReport) -> bool:
        try:
            await self._gateway.get_project(user)
        except ResourceNotFound:
            log.info("project_not_found", user=user, project=user)
        except GatewayError as e:
            log.error("project_lookup_failed", user=user, project=user, error=str(e))
            return False
        else:
            # Still fall through to the role binding: a previous pass may have stopped
            # after creating the project.
            log.info("project_exists", user=user, project=user)
            return True

        try:
            await self._gateway.create_project(user)
        except ResourceAlreadyExists:
            log.info("project_exists", user=user, project=user)
            return True
        except GatewayError as e:
            log.error("project_create_failed", user=user, project=user, error=str(e))
            return False

        log.info("project_created", user=user, project=user)
        report.projects_created += 1
        return True

    async def _ensure_role_binding(
        self, *, project: str, user: str, report: ReconcileReport
    ) -> bool:
        name = role_binding_name(project)
        try:
            await self._gateway.get_role_binding(project, name)
        except ResourceNotFound:
            log.info("role_binding_not_found", user=user, project=project, role_binding=name)
        except GatewayError as e:
            log.error(
                "role_binding_lookup_failed",
                user=user,
                project=project,
                role_binding=name,
                error=str(e),
            )
            return False
        else:
            log.info("role_binding_exists", user=user, project=project, role_binding=name)
            return True

        try:
            await self._gateway.create_role_binding(project, user)
        except ResourceAlreadyExists:
            log.info("role_binding_exists", user=user, project=project, role_binding=name)
            return True
        except GatewayError as e:
            log.error(
                "role_binding_create_failed",
                user=user,
                project=project,
                role_binding=name,
                error=str(e),
            )
            return False

        log.info("role_binding_created", user=user, project=project, role_binding=name)
        report.role_bindings_created += 1
        return True

    async def _isolated(
        self,
        step: Callable[[str, ReconcileReport], Awaitable[bool]],
        user: str,
        report: ReconcileReport,
    ) -> bool:
        # Gateway errors are handled inside the steps; this guards the rest of the pass
        # against anything a gateway implementation raises outside that taxonomy.
        try:
            return await step(user, report)
        except Exception:
            log.exception("member_reconcile_crashed", user=user)
            return False


# --- Module Notes -----------------------------------------------------------
# Role bindings are never deleted here: they live inside the project namespace and go
# away with it. Deprovisioning therefore only deletes the project.
