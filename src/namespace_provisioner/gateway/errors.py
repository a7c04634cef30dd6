"""
namespace_provisioner.gateway.errors

Gateway error taxonomy.

Responsibilities:
- Distinguish "not found" and "already exists" from other gateway failures.
"""

from __future__ import annotations


class GatewayError(Exception):
    """
    Any failure talking to the resource store.
    """

    def __init__(self, message: str, *, status_code: int | None = None, detail: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class ResourceNotFound(GatewayError):
    pass


class ResourceAlreadyExists(GatewayError):
    pass


class ClusterConfigError(Exception):
    """
    Neither in-cluster credentials nor a usable kubeconfig were found.
    """


# --- Module Notes -----------------------------------------------------------
# NotFound / AlreadyExists are idempotency signals for the reconciler, not failures;
# callers catch them before the generic `GatewayError`.
