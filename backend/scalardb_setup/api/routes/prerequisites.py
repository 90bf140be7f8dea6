"""Prerequisite tool endpoints (Homebrew, Docker, Maven, Gradle)."""

import logging
from typing import Literal

from fastapi import APIRouter, HTTPException

from scalardb_setup.models.requests import PrerequisitesInstallRequest
from scalardb_setup.services.prerequisites_installer import PrerequisitesInstaller

logger = logging.getLogger(__name__)

router = APIRouter()

prerequisites_installer = PrerequisitesInstaller()

Tool = Literal["homebrew", "docker", "maven", "gradle"]


@router.get("/check")
async def check_all() -> dict:
    results = await prerequisites_installer.check_all_prerequisites()
    return {"success": True, "results": results}


@router.post("/install")
async def install_missing(body: PrerequisitesInstallRequest) -> dict:
    if not isinstance(body.tools, list):
        raise HTTPException(status_code=400, detail="Tools array is required")
    results = await prerequisites_installer.install_missing_prerequisites(body.tools)
    return {"success": True, "results": results}


@router.get("/{tool}/check")
async def check_tool(tool: Tool) -> dict:
    result = await getattr(prerequisites_installer, f"check_{tool}")()
    return {"success": True, "result": result}


@router.post("/{tool}/install")
async def install_tool(tool: Tool) -> dict:
    logger.info("Installing %s", tool)
    result = await getattr(prerequisites_installer, f"install_{tool}")()
    return {"success": True, "result": result}
