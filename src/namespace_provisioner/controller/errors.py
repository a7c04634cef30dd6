"""
namespace_provisioner.controller.errors

Fatal controller errors.
"""

from __future__ import annotations


class StartupError(Exception):
    """
    The watch could not be established or the initial sync did not complete.
    The entrypoint exits non-zero on this error.
    """
