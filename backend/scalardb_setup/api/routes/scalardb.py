"""ScalarDB artifact endpoints: installation checks, versions and downloads."""

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from scalardb_setup.core.progress_relay import progress_relay
from scalardb_setup.models.requests import DownloadRequest, VerifyRequest
from scalardb_setup.services.scalardb_downloader import ScalarDBDownloader
from scalardb_setup.services.scalardb_installer import ScalarDBInstaller

logger = logging.getLogger(__name__)

router = APIRouter()

scalardb_installer = ScalarDBInstaller()
scalardb_downloader = ScalarDBDownloader()

DOWNLOAD_ROOM_ID = "scalardb-download"


@router.get("/check")
async def check_installation() -> dict:
    return {"success": True, "result": await scalardb_installer.check_scalardb_installation()}


@router.get("/versions")
async def list_versions() -> dict:
    """Released versions from Maven Central, newest first, plus the latest release."""
    versions = await scalardb_downloader.get_available_versions()
    latest = await scalardb_downloader.get_latest_version()
    return {"success": True, "versions": versions, "latest": latest}


@router.get("/downloaded")
async def list_downloaded() -> dict:
    return {"success": True, "versions": scalardb_downloader.get_downloaded_versions()}


@router.post("/download")
async def download(body: DownloadRequest) -> dict:
    if not body.version:
        raise HTTPException(status_code=400, detail="Version is required")

    if scalardb_downloader.is_version_downloaded(body.version):
        return {
            "success": True,
            "message": "Already downloaded",
            "version": body.version,
            "downloaded": True,
        }

    def on_progress(event: dict[str, Any]) -> None:
        progress_relay.send_log(DOWNLOAD_ROOM_ID, f"Download progress: {event['progress']}%")

    result = await scalardb_downloader.download_version(body.version, on_progress)
    return {"success": True, "result": result}


@router.post("/install")
async def install(config: dict[str, Any] = Body(default_factory=dict)) -> dict:
    return {"success": True, "result": await scalardb_installer.install_scalardb(config)}


@router.post("/verify")
async def verify(body: VerifyRequest) -> dict:
    return {"success": True, "result": await scalardb_installer.verify_installation(body.type, body.location)}
