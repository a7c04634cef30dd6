"""
namespace_provisioner.services

Service-layer package.

Responsibilities:
- Converge cluster resources (projects, role bindings) toward group membership.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with fake gateways.
