"""Docker deployment endpoints."""

import asyncio
from pathlib import Path

from fastapi import APIRouter, HTTPException

from scalardb_setup.config import settings
from scalardb_setup.models.requests import DockerDeployRequest
from scalardb_setup.services.docker_deployer import DockerDeployer

router = APIRouter()

docker_deployer = DockerDeployer()


@router.post("/deploy")
async def deploy(body: DockerDeployRequest) -> dict:
    """Deploy with Compose when the config asks for Docker, else start a single server container."""
    docker = await docker_deployer.check_docker_installed()
    if not docker["installed"]:
        raise HTTPException(status_code=400, detail="Docker is not installed")
    if not docker["running"]:
        raise HTTPException(status_code=400, detail="The Docker daemon is not running")

    config = body.config
    if body.use_compose and config.get("deployment") == "docker":
        compose = await docker_deployer.generate_docker_compose(config)
        project_path = Path(config.get("projectPath") or settings.docker_project_dir)
        await asyncio.to_thread(docker_deployer.save_compose, compose, project_path)
        result = await docker_deployer.deploy_with_docker_compose(project_path)
    else:
        result = await docker_deployer.deploy_scalardb_container(config)
    return {"success": result["success"], "result": result}


@router.get("/status/{container_name}")
async def container_status(container_name: str) -> dict:
    return {"success": True, "health": await docker_deployer.check_container_health(container_name)}


@router.get("/logs/{container_name}")
async def container_logs(container_name: str, lines: int = 100) -> dict:
    result = await docker_deployer.get_container_logs(container_name, lines)
    if not result["success"]:
        raise HTTPException(status_code=500, detail=result["error"])
    return {"success": True, "logs": result["logs"]}


@router.post("/stop-all")
async def stop_all() -> dict:
    result = await docker_deployer.stop_all_containers()
    return {"success": result["success"], "result": result}
