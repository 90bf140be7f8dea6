"""Java runtime endpoints."""

from fastapi import APIRouter

from scalardb_setup.models.requests import JavaInstallRequest
from scalardb_setup.services.java_installer import JavaInstaller

router = APIRouter()

java_installer = JavaInstaller()


@router.get("/check")
async def check_java() -> dict:
    return {"success": True, "result": await java_installer.check_java_version()}


@router.post("/install")
async def install_java(body: JavaInstallRequest | None = None) -> dict:
    """Install a Temurin JDK (17 unless another version is requested)."""
    body = body or JavaInstallRequest()
    return {"success": True, "result": await java_installer.install_java(body.version)}
