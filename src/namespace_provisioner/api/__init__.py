"""
namespace_provisioner.api

Health API package (liveness/readiness for the controller deployment).
"""

# Package marker.
