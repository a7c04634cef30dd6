"""
namespace_provisioner.api.deps

FastAPI dependency wiring for the health API.

Responsibilities:
- Encapsulate app.state access to the running control loop.
"""

from __future__ import annotations

from fastapi import Request

from namespace_provisioner.controller.loop import ControlLoop


def control_loop(request: Request) -> ControlLoop:
    # The loop is attached in `namespace_provisioner.api.app.create_app`.
    return request.app.state.control_loop  # type: ignore[attr-defined]
