"""
namespace_provisioner.observer

Group observer package.

Responsibilities:
- Deliver ordered lifecycle events for exactly one named group.
- Report when the initial state delivery ("cache sync") is complete.
"""

# Package marker.
