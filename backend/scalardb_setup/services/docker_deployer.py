"""Docker CLI driver: compose deployments, the ScalarDB server container and container primitives."""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from scalardb_setup.config import settings
from scalardb_setup.core.compose import CONTAINER_PREFIX, build_compose
from scalardb_setup.core.errors import CommandError, InstallerError
from scalardb_setup.utils.shell import run_command

logger = logging.getLogger(__name__)

SERVER_CONTAINER = f"{CONTAINER_PREFIX}-server"


class DockerDeployer:
    """Thin async wrapper over ``docker`` / ``docker compose``."""

    def __init__(self, compose_command: tuple[str, ...] = ("docker", "compose")) -> None:
        self.compose_command = compose_command

    # ------------------------------------------------------------------
    # Daemon
    # ------------------------------------------------------------------

    async def check_docker_installed(self) -> dict[str, Any]:
        try:
            result = await run_command(["docker", "--version"], timeout=30)
        except InstallerError:
            return {"installed": False, "version": None, "running": False}
        return {
            "installed": True,
            "version": result.stdout.strip(),
            "running": await self.check_docker_running(),
        }

    async def check_docker_running(self) -> bool:
        try:
            result = await run_command(["docker", "info"], timeout=30, check=False)
        except InstallerError:
            return False
        return result.ok

    # ------------------------------------------------------------------
    # Compose
    # ------------------------------------------------------------------

    async def generate_docker_compose(self, config: dict[str, Any]) -> dict[str, Any]:
        return build_compose(config)

    def save_compose(self, compose: dict[str, Any], project_path: str | Path) -> Path:
        path = Path(project_path)
        path.mkdir(parents=True, exist_ok=True)
        compose_file = path / "docker-compose.yml"
        compose_file.write_text(yaml.safe_dump(compose, sort_keys=False, default_flow_style=False))
        return compose_file

    def _compose(self, project_path: Path, *args: str) -> list[str]:
        return [*self.compose_command, "-f", str(project_path / "docker-compose.yml"), *args]

    async def deploy_with_docker_compose(self, project_path: str | Path) -> dict[str, Any]:
        path = Path(project_path)
        if not (path / "docker-compose.yml").exists():
            return {
                "success": False,
                "message": "Docker deployment failed",
                "error": f"docker-compose.yml not found in {path}",
            }

        try:
            # Nothing to stop on a first deploy
            await run_command(self._compose(path, "down"), cwd=str(path), check=False)
            result = await run_command(
                self._compose(path, "up", "-d"),
                cwd=str(path),
                timeout=settings.install_command_timeout,
            )
        except InstallerError as e:
            logger.error("docker compose up failed: %s", e)
            return {"success": False, "message": "Docker deployment failed", "error": str(e)}

        return {
            "success": True,
            "message": "Docker containers started",
            "output": result.output,
            "containers": await self.check_container_status(path),
        }

    async def check_container_status(self, project_path: str | Path) -> list[dict[str, Any]] | dict[str, Any]:
        """Parsed ``compose ps`` output, falling back to raw text on older Compose versions."""
        path = Path(project_path)
        try:
            result = await run_command(self._compose(path, "ps", "--format", "json"), cwd=str(path))
            return parse_compose_ps(result.stdout)
        except (InstallerError, ValueError):
            try:
                result = await run_command(self._compose(path, "ps"), cwd=str(path))
            except InstallerError:
                return []
            return {"raw": result.stdout, "parsed": False}

    # ------------------------------------------------------------------
    # Single-container deployment
    # ------------------------------------------------------------------

    async def deploy_scalardb_container(self, config: dict[str, Any]) -> dict[str, Any]:
        properties = Path(config.get("installPath") or settings.config_output_dir) / "database.properties"
        argv = [
            "docker", "run", "-d",
            "--name", SERVER_CONTAINER,
            "-p", "60051:60051",
            "-p", "60052:60052",
            "-v", f"{properties}:/scalardb/conf/database.properties:ro",
            "--restart", "unless-stopped",
            settings.scalardb_server_image,
        ]
        try:
            await run_command(["docker", "rm", "-f", SERVER_CONTAINER], check=False)
            result = await run_command(argv, timeout=settings.install_command_timeout)
        except InstallerError as e:
            logger.error("Failed to start %s: %s", SERVER_CONTAINER, e)
            return {"success": False, "message": "Failed to start container", "error": str(e)}

        return {
            "success": True,
            "container_id": result.stdout.strip(),
            "container_name": SERVER_CONTAINER,
            "message": "ScalarDB server container started",
        }

    async def get_container_logs(self, name: str, lines: int = 100) -> dict[str, Any]:
        try:
            result = await run_command(["docker", "logs", "--tail", str(lines), name])
        except InstallerError as e:
            return {"success": False, "error": str(e)}
        return {"success": True, "logs": result.output}

    async def stop_all_containers(self) -> dict[str, Any]:
        try:
            result = await run_command([
                "docker", "ps", "-a",
                "--filter", f"name={CONTAINER_PREFIX}",
                "--format", "{{.Names}}",
            ])
        except InstallerError as e:
            return {"success": False, "error": str(e)}

        stopped = []
        for name in filter(None, (line.strip() for line in result.stdout.splitlines())):
            try:
                await run_command(["docker", "stop", name])
                await run_command(["docker", "rm", name])
                stopped.append(name)
            except InstallerError as e:
                logger.warning("Could not stop %s: %s", name, e)

        return {"success": True, "stopped": stopped, "message": f"Stopped {len(stopped)} containers"}

    async def check_container_health(self, name: str) -> dict[str, Any]:
        info = await self.get_container_info(name)
        if info is None:
            return {"healthy": False, "status": "unknown"}

        state = info.get("State") or {}
        health = (state.get("Health") or {}).get("Status")
        if health:
            return {"healthy": health == "healthy", "status": health}
        running = bool(state.get("Running"))
        return {"healthy": running, "status": "running" if running else "stopped"}

    # ------------------------------------------------------------------
    # Container primitives
    # ------------------------------------------------------------------

    async def get_container_info(self, name: str) -> dict[str, Any] | None:
        """``docker inspect`` as a dict, or None when the container does not exist."""
        try:
            result = await run_command(["docker", "inspect", "--type", "container", name])
        except CommandError:
            return None
        data = json.loads(result.stdout or "[]")
        return data[0] if data else None

    async def pull_image(self, image: str, progress_callback: Callable[[int], None] | None = None) -> None:
        if progress_callback is not None:
            progress_callback(0)
        await run_command(["docker", "pull", image], timeout=settings.install_command_timeout)
        if progress_callback is not None:
            progress_callback(100)

    async def create_container(
        self,
        name: str,
        image: str,
        *,
        env: dict[str, str] | None = None,
        ports: dict[int, int] | None = None,
        volumes: dict[str, str] | None = None,
        command: list[str] | None = None,
        restart: str = "unless-stopped",
    ) -> str:
        argv = ["docker", "create", "--name", name, "--restart", restart]
        for key, value in (env or {}).items():
            argv += ["-e", f"{key}={value}"]
        for host_port, container_port in (ports or {}).items():
            argv += ["-p", f"{host_port}:{container_port}"]
        for volume, mount in (volumes or {}).items():
            argv += ["-v", f"{volume}:{mount}"]
        argv.append(image)
        argv += command or []
        result = await run_command(argv)
        return result.stdout.strip()

    async def start_container(self, container: str) -> None:
        await run_command(["docker", "start", container])

    async def stop_container(self, container: str) -> None:
        await run_command(["docker", "stop", container])

    async def remove_container(self, container: str, force: bool = True, remove_volumes: bool = False) -> None:
        argv = ["docker", "rm"]
        if force:
            argv.append("-f")
        if remove_volumes:
            argv.append("-v")
        argv.append(container)
        await run_command(argv)

    async def remove_volume(self, volume: str) -> None:
        await run_command(["docker", "volume", "rm", "-f", volume], check=False)

    async def exec_command(self, container: str, argv: list[str]) -> dict[str, Any]:
        result = await run_command(["docker", "exec", container, *argv], check=False)
        return {"exit_code": result.returncode, "stdout": result.stdout, "stderr": result.stderr}


def parse_compose_ps(output: str) -> list[dict[str, Any]]:
    """Parse ``compose ps --format json``: a JSON array (v2.0-2.20) or one object per line."""
    text = output.strip()
    if not text:
        return []
    if text.startswith("["):
        return json.loads(text)
    containers = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            containers.append(json.loads(line))
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable compose ps line: %s", line)
    return containers
