"""
namespace_provisioner.controller

Control loop package.

Responsibilities:
- Startup synchronisation, serialized event consumption and shutdown.
"""

# Package marker.
