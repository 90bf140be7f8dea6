"""One-click PostgreSQL / MySQL provisioning in a local Docker container.

Both installers walk the same steps and report each one through a
``progress_callback({"step", "progress", "message"})``. The pull step is
scaled into the 40-70 range:

    docker-check 10 -> existing-check 20 -> [reuse 90 -> complete 100]
                                         -> remove-existing 25 -> port-check 30
    -> pull-image 40..70 -> create-container 75 -> start-container 85
    -> wait-ready 90 -> complete 100

Failures come back as ``PrerequisiteError`` with a plain-language message.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from scalardb_setup.core.errors import InstallerError, PrerequisiteError
from scalardb_setup.services.docker_deployer import DockerDeployer
from scalardb_setup.utils.system import find_available_port, generate_secure_password

logger = logging.getLogger(__name__)

DOCKER_DESKTOP_URL = "https://www.docker.com/products/docker-desktop"
EXISTING_PASSWORD_PLACEHOLDER = "Use the password set when the container was created"

ProgressCallback = Callable[[dict[str, Any]], None]


def _noop(_event: dict[str, Any]) -> None:
    pass


class DatabaseAutoInstaller:
    """Shared container lifecycle; subclasses supply image, env and readiness probe."""

    label = ""
    container_name = ""
    image = ""
    default_port = 0
    data_volume = ""
    data_path = ""
    ready_retries = 30
    ready_interval = 1.0
    restart_grace = 0.0
    database_name = "scalardb"
    username = "scalardb"

    def __init__(self, docker: DockerDeployer | None = None) -> None:
        self.docker = docker or DockerDeployer()

    # Subclass hooks ---------------------------------------------------

    def container_env(self, password: str, root_password: str | None) -> dict[str, str]:
        raise NotImplementedError

    def container_command(self) -> list[str]:
        return []

    def ready_probe(self) -> list[str]:
        raise NotImplementedError

    def is_ready(self, result: dict[str, Any]) -> bool:
        return result["exit_code"] == 0

    def extra_credentials(self, root_password: str | None) -> dict[str, Any]:
        return {}

    def wants_root_password(self) -> bool:
        return False

    # Lifecycle --------------------------------------------------------

    async def check_prerequisites(self) -> None:
        status = await self.docker.check_docker_installed()
        if not status["installed"]:
            raise PrerequisiteError(
                "Docker is not installed",
                user_message="Install Docker Desktop and try again.",
                action_link=DOCKER_DESKTOP_URL,
            )
        if not status["running"]:
            raise PrerequisiteError(
                "Docker is not running",
                user_message="Start Docker Desktop and try again.",
            )

    async def check_existing_container(self) -> dict[str, Any]:
        try:
            info = await self.docker.get_container_info(self.container_name)
        except (InstallerError, ValueError):
            logger.debug("Inspect of %s failed", self.container_name, exc_info=True)
            return {"exists": False}
        if info is None:
            return {"exists": False}

        port = self.default_port
        bindings = ((info.get("HostConfig") or {}).get("PortBindings") or {}).get(f"{self.default_port}/tcp")
        if bindings and bindings[0].get("HostPort"):
            port = int(bindings[0]["HostPort"])
        return {
            "exists": True,
            "running": bool((info.get("State") or {}).get("Running")),
            "id": info.get("Id"),
            "port": port,
        }

    async def wait_for_ready(self, container: str) -> None:
        for _ in range(self.ready_retries):
            try:
                if self.is_ready(await self.docker.exec_command(container, self.ready_probe())):
                    return
            except InstallerError:
                logger.debug("%s readiness probe failed", self.label, exc_info=True)
            await asyncio.sleep(self.ready_interval)
        raise InstallerError(f"Timed out waiting for {self.label} to start")

    async def install(
        self,
        progress_callback: ProgressCallback | None = None,
        reuse_existing: bool = False,
    ) -> dict[str, Any]:
        report = progress_callback or _noop
        try:
            report({"step": "docker-check", "progress": 10, "message": "Checking Docker..."})
            await self.check_prerequisites()

            report({"step": "existing-check", "progress": 20, "message": f"Looking for an existing {self.label}..."})
            existing = await self.check_existing_container()

            if existing["exists"] and reuse_existing:
                return await self._reuse(existing, report)

            if existing["exists"]:
                report({"step": "remove-existing", "progress": 25, "message": "Removing the existing container..."})
                await self.docker.remove_container(self.container_name, force=True)

            report({"step": "port-check", "progress": 30, "message": "Finding a free port..."})
            port = find_available_port(self.default_port)

            password = generate_secure_password()
            root_password = generate_secure_password() if self.wants_root_password() else None

            report({"step": "pull-image", "progress": 40, "message": f"Downloading the {self.label} image..."})

            def on_pull(percent: int) -> None:
                report({
                    "step": "pull-image",
                    "progress": 40 + round(percent * 0.3),
                    "message": f"Downloading the {self.label} image... {percent}%",
                })

            await self.docker.pull_image(self.image, on_pull)

            report({"step": "create-container", "progress": 75, "message": f"Creating the {self.label} container..."})
            container_id = await self.docker.create_container(
                self.container_name,
                self.image,
                env=self.container_env(password, root_password),
                ports={port: self.default_port},
                volumes={self.data_volume: self.data_path},
                command=self.container_command(),
            )

            report({"step": "start-container", "progress": 85, "message": f"Starting {self.label}..."})
            await self.docker.start_container(container_id)

            report({"step": "wait-ready", "progress": 90, "message": f"Waiting for {self.label} to accept connections..."})
            await self.wait_for_ready(container_id)

            report({"step": "complete", "progress": 100, "message": f"{self.label} is installed"})
            return {
                "success": True,
                "host": "localhost",
                "port": port,
                "database": self.database_name,
                "username": self.username,
                "password": password,
                **self.extra_credentials(root_password),
                "container_id": container_id,
                "container_name": self.container_name,
            }
        except PrerequisiteError:
            raise
        except InstallerError as e:
            raise PrerequisiteError(str(e), user_message=self.get_user_friendly_error(e)) from e

    async def _reuse(self, existing: dict[str, Any], report: ProgressCallback) -> dict[str, Any]:
        report({"step": "reuse", "progress": 90, "message": f"Reusing the existing {self.label}"})
        if not existing["running"]:
            await self.docker.start_container(existing["id"])
            if self.restart_grace:
                await asyncio.sleep(self.restart_grace)
            await self.wait_for_ready(existing["id"])
        report({"step": "complete", "progress": 100, "message": f"{self.label} is ready"})
        return {
            "success": True,
            "reused": True,
            "host": "localhost",
            "port": existing["port"],
            "database": self.database_name,
            "username": self.username,
            "password": EXISTING_PASSWORD_PLACEHOLDER,
            "container_id": existing["id"],
        }

    async def stop(self) -> dict[str, Any]:
        try:
            existing = await self.check_existing_container()
            if existing["exists"] and existing["running"]:
                await self.docker.stop_container(existing["id"])
                return {"success": True, "message": f"{self.label} stopped"}
            return {"success": True, "message": f"{self.label} is already stopped"}
        except InstallerError as e:
            raise PrerequisiteError(str(e), user_message=self.get_user_friendly_error(e)) from e

    async def remove(self) -> dict[str, Any]:
        try:
            await self.docker.remove_container(self.container_name, force=True, remove_volumes=True)
            await self.docker.remove_volume(self.data_volume)
            return {"success": True, "message": f"{self.label} removed"}
        except InstallerError as e:
            raise PrerequisiteError(str(e), user_message=self.get_user_friendly_error(e)) from e

    async def status(self) -> dict[str, Any]:
        existing = await self.check_existing_container()
        if not existing["exists"]:
            return {"installed": False, "running": False}
        return {
            "installed": True,
            "running": existing["running"],
            "port": existing["port"],
            "container_id": existing["id"],
            "container_name": self.container_name,
        }

    def get_user_friendly_error(self, error: Exception) -> str:
        message = str(error)
        lowered = message.lower()
        if "cannot connect to the docker daemon" in lowered:
            return "Docker is not running. Please start Docker Desktop."
        if any(s in lowered for s in ("pull access denied", "manifest unknown", "network error")):
            return f"Failed to download the {self.label} image. Please check your internet connection."
        if "port is already allocated" in lowered:
            return f"Port {self.default_port} is already in use. Another port will be tried."
        if "no such container" in lowered:
            return f"The {self.label} container was not found."
        if "no space left" in lowered or "disk space" in lowered:
            return "Not enough free disk space."
        if "permission denied" in lowered:
            return "Permission denied running Docker. Try running as an administrator."
        if "timed out" in lowered:
            return message
        return f"{self.label} setup error: {message}"


class PostgreSQLAutoInstaller(DatabaseAutoInstaller):
    label = "PostgreSQL"
    container_name = "scalardb-postgres"
    image = "postgres:15-alpine"
    default_port = 5432
    data_volume = "scalardb-postgres-data"
    data_path = "/var/lib/postgresql/data"

    def container_env(self, password: str, root_password: str | None) -> dict[str, str]:
        return {
            "POSTGRES_USER": self.username,
            "POSTGRES_PASSWORD": password,
            "POSTGRES_DB": self.database_name,
            "POSTGRES_INITDB_ARGS": "--encoding=UTF-8",
        }

    def ready_probe(self) -> list[str]:
        return ["pg_isready", "-U", self.username, "-d", self.database_name]

    def is_ready(self, result: dict[str, Any]) -> bool:
        return result["exit_code"] == 0 and "accepting connections" in result["stdout"]


class MySQLAutoInstaller(DatabaseAutoInstaller):
    label = "MySQL"
    container_name = "scalardb-mysql"
    image = "mysql:8.0"
    default_port = 3306
    data_volume = "scalardb-mysql-data"
    data_path = "/var/lib/mysql"
    ready_interval = 2.0
    restart_grace = 5.0

    def wants_root_password(self) -> bool:
        return True

    def container_env(self, password: str, root_password: str | None) -> dict[str, str]:
        return {
            "MYSQL_ROOT_PASSWORD": root_password or password,
            "MYSQL_DATABASE": self.database_name,
            "MYSQL_USER": self.username,
            "MYSQL_PASSWORD": password,
        }

    def container_command(self) -> list[str]:
        return [
            "--character-set-server=utf8mb4",
            "--collation-server=utf8mb4_unicode_ci",
            "--default-authentication-plugin=mysql_native_password",
        ]

    def ready_probe(self) -> list[str]:
        return ["mysqladmin", "ping", "-h", "localhost"]

    def is_ready(self, result: dict[str, Any]) -> bool:
        return result["exit_code"] == 0 and "mysqld is alive" in result["stdout"]

    def extra_credentials(self, root_password: str | None) -> dict[str, Any]:
        return {"root_password": root_password}
