"""Wizard step validation endpoint."""

from fastapi import APIRouter

from scalardb_setup.core.wizard import validate_step
from scalardb_setup.models.requests import WizardValidateRequest

router = APIRouter()


@router.post("/validate")
async def validate(body: WizardValidateRequest) -> dict:
    valid, errors = validate_step(body.step, body.config)
    return {"success": True, "step": body.step, "valid": valid, "errors": errors}
