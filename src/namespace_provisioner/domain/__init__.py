"""
namespace_provisioner.domain

Domain package: group/project/role-binding types and the membership differencer.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package performs I/O; it is safe to import from any layer.
