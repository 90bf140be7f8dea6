"""Server-side installation pipeline.

``start()`` registers the installation with the progress relay and returns
its id right away. The pipeline runs as a background task after a short delay
so that clients have time to join the room. Clients that join later still get
the current state replayed.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any

from scalardb_setup.config import settings
from scalardb_setup.core.errors import InstallerError
from scalardb_setup.core.progress_relay import ProgressRelay, progress_relay
from scalardb_setup.models.installation import InstallationState
from scalardb_setup.services import config_generator
from scalardb_setup.services.database_tester import DatabaseTester
from scalardb_setup.services.docker_deployer import DockerDeployer
from scalardb_setup.services.java_installer import JavaInstaller
from scalardb_setup.services.scalardb_installer import ScalarDBInstaller
from scalardb_setup.services.schema_manager import SchemaManager, generate_default_schema

logger = logging.getLogger(__name__)

STEP_JAVA = "Java environment check"
STEP_SCALARDB = "ScalarDB installation"
STEP_PROPERTIES = "Database configuration"
STEP_CONNECTION = "Database connection check"
STEP_SCHEMA = "Schema creation"
STEP_DOCKER = "Docker container startup"


class InstallationOrchestrator:
    """Runs the fixed installation pipeline and reports through a ``ProgressRelay``."""

    def __init__(
        self,
        relay: ProgressRelay | None = None,
        java_installer: JavaInstaller | None = None,
        scalardb_installer: ScalarDBInstaller | None = None,
        database_tester: DatabaseTester | None = None,
        schema_manager: SchemaManager | None = None,
        docker_deployer: DockerDeployer | None = None,
        start_delay: float | None = None,
    ) -> None:
        self.relay = relay or progress_relay
        self.java_installer = java_installer or JavaInstaller()
        self.scalardb_installer = scalardb_installer or ScalarDBInstaller()
        self.database_tester = database_tester or DatabaseTester()
        self.schema_manager = schema_manager or SchemaManager(self.database_tester)
        self.docker_deployer = docker_deployer or DockerDeployer()
        self.start_delay = settings.installation_start_delay if start_delay is None else start_delay
        self._tasks: set[asyncio.Task] = set()

    def start(self, config: dict[str, Any]) -> str:
        installation_id = uuid.uuid4().hex
        self.relay.start_installation(installation_id, config)

        task = asyncio.create_task(self._run_after_delay(installation_id, config))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return installation_id

    def get_progress(self, installation_id: str) -> InstallationState | None:
        return self.relay.get_installation_state(installation_id)

    async def wait(self) -> None:
        """Wait for every running pipeline to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.wait()

    async def _run_after_delay(self, installation_id: str, config: dict[str, Any]) -> None:
        await asyncio.sleep(self.start_delay)
        await self.run(installation_id, config)

    async def run(self, installation_id: str, config: dict[str, Any]) -> None:
        """Execute every step; any raised failure ends the run with ``installation:error``."""
        relay = self.relay
        step = STEP_JAVA
        try:
            # 1. Java
            relay.update_progress(installation_id, step, 10)
            java = await self.java_installer.check_java_version()
            if not java["installed"]:
                raise InstallerError("Java is not installed")
            relay.update_progress(
                installation_id, step, 15, "completed", f"{java['vendor']} {java['version']} detected",
            )

            # 2. ScalarDB
            step = STEP_SCALARDB
            relay.update_progress(installation_id, step, 25)
            installed = await self.scalardb_installer.install_scalardb(config)
            if not installed.get("success"):
                relay.send_log(
                    installation_id,
                    f"ScalarDB installation reported a problem: {installed.get('error', 'unknown error')}",
                    level="warning",
                )
            relay.update_progress(installation_id, step, 40, "completed", "ScalarDB installation step finished")

            # 3. database.properties
            step = STEP_PROPERTIES
            relay.update_progress(installation_id, step, 50)
            output_dir = Path(config.get("outputDir") or settings.config_output_dir)
            saved = await asyncio.to_thread(
                config_generator.save_configuration,
                config, "database-properties", output_dir / "database.properties",
            )
            relay.update_progress(
                installation_id, step, 60, "completed", f"Wrote {saved['file_path']}",
            )

            # 4. Connection
            step = STEP_CONNECTION
            relay.update_progress(installation_id, step, 70)
            database = config.get("database") or {}
            connection = await self.database_tester.test_connection(database)
            if not connection["connected"]:
                raise InstallerError(f"Database connection failed: {connection['message']}")
            relay.update_progress(installation_id, step, 85, "completed", "Database connection verified")

            # 5. Schema (optional)
            if config.get("createSchema") is not False:
                step = STEP_SCHEMA
                relay.update_progress(installation_id, step, 90)
                schema_result = await self.schema_manager.create_schema(
                    database,
                    schema_path=config.get("schemaPath"),
                    schema=None if config.get("schemaPath") else generate_default_schema(database.get("type")),
                )
                if schema_result["success"]:
                    relay.update_progress(installation_id, step, 95, "completed", "Schema created")
                else:
                    relay.send_log(
                        installation_id, f"Schema creation skipped: {schema_result['message']}", level="warning",
                    )

            # 6. Docker (optional)
            if config.get("deployment") == "docker":
                step = STEP_DOCKER
                relay.update_progress(installation_id, step, 98)
                deployed = await self.docker_deployer.deploy_scalardb_container({"installPath": str(output_dir)})
                if deployed["success"]:
                    relay.update_progress(installation_id, step, 99, "completed", "ScalarDB container started")
                else:
                    relay.send_log(
                        installation_id,
                        f"Docker startup skipped: {deployed.get('error') or deployed['message']}",
                        level="warning",
                    )

            relay.complete_installation(installation_id, {
                "success": True,
                "installPath": config.get("installPath") or settings.default_install_path,
                "configFiles": ["database.properties"],
                "version": installed.get("version") or config.get("version") or settings.scalardb_default_version,
                "deployment": config.get("deployment"),
            })
        except asyncio.CancelledError:
            relay.send_error(installation_id, "Installation cancelled", step=step)
            raise
        except Exception as e:
            logger.error("Installation %s failed at %s", installation_id, step, exc_info=True)
            relay.send_error(installation_id, str(e), step=step, details=type(e).__name__)
