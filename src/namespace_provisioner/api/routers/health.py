"""
namespace_provisioner.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide the liveness endpoint (`/healthz`).
- Provide the readiness endpoint (`/readyz`): ready once the control loop is watching.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from namespace_provisioner.api.deps import control_loop
from namespace_provisioner.controller.loop import ControlLoop, LoopState

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(loop: ControlLoop = Depends(control_loop)) -> JSONResponse:
    # Not ready until the initial group sync is done, and again once shutdown starts.
    if loop.state is LoopState.watching:
        return JSONResponse({"status": "ready", "group": loop.group_name})
    return JSONResponse(
        {"status": "not_ready", "state": loop.state.value, "group": loop.group_name},
        status_code=503,
    )


# --- Module Notes -----------------------------------------------------------
# Kubernetes typically uses /healthz for liveness and /readyz for readiness gating.
