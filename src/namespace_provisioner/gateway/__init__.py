"""
namespace_provisioner.gateway

Resource gateway package.

Responsibilities:
- Define the project / role-binding client interface used by the reconciler.
- Provide the OpenShift REST adapter and its error taxonomy.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The reconciler should depend on `gateway.base.ResourceGateway` (not on httpx directly).
