"""
namespace_provisioner.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Per-pass context propagation for consistent log enrichment.
"""

# Package marker.
