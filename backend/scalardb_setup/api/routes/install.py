"""Installation pipeline endpoints."""

from typing import Any

from fastapi import APIRouter, Body, HTTPException

from scalardb_setup.api.dependencies import Orchestrator

router = APIRouter()


@router.post("/start")
async def start_installation(
    orchestrator: Orchestrator,
    config: dict[str, Any] = Body(default_factory=dict),
) -> dict:
    """Start the pipeline in the background and return its id.

    Clients follow it by joining the id's room over ``/ws`` or by polling
    ``/progress/{id}``.
    """
    installation_id = orchestrator.start(config)
    return {
        "success": True,
        "installationId": installation_id,
        "message": "Installation started",
    }


@router.get("/progress/{installation_id}")
async def get_progress(installation_id: str, orchestrator: Orchestrator) -> dict:
    state = orchestrator.get_progress(installation_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Installation not found")
    return {"success": True, "progress": state.to_wire()}
