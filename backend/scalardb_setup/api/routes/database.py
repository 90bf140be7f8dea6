"""Database endpoints: connection tests, schema creation and local auto-install."""

import logging
from typing import Any, Literal

from fastapi import APIRouter

from scalardb_setup.core.progress_relay import progress_relay
from scalardb_setup.models.requests import (
    AutoInstallRequest,
    DatabaseTestRequest,
    DefaultSchemaRequest,
    SchemaCreateRequest,
)
from scalardb_setup.services.database_auto_installer import (
    DatabaseAutoInstaller,
    MySQLAutoInstaller,
    PostgreSQLAutoInstaller,
)
from scalardb_setup.services.database_tester import DatabaseTester
from scalardb_setup.services.schema_manager import SchemaManager, generate_default_schema

logger = logging.getLogger(__name__)

router = APIRouter()

database_tester = DatabaseTester()
schema_manager = SchemaManager(database_tester)
auto_installers: dict[str, DatabaseAutoInstaller] = {
    "postgresql": PostgreSQLAutoInstaller(),
    "mysql": MySQLAutoInstaller(),
}

LocalDatabase = Literal["postgresql", "mysql"]


@router.post("/test")
async def test_connection(body: DatabaseTestRequest) -> dict:
    return {"success": True, "result": await database_tester.test_connection(body.database)}


@router.post("/schema/create")
async def create_schema(body: SchemaCreateRequest) -> dict:
    """Apply a schema file, or the default sample schema when no path is given."""
    schema = None if body.schema_path else generate_default_schema(body.database.get("type"))
    result = await schema_manager.create_schema(body.database, schema_path=body.schema_path, schema=schema)
    return {"success": result["success"], "result": result}


@router.post("/schema/generate-default")
async def generate_default(body: DefaultSchemaRequest) -> dict:
    return {"success": True, "schema": generate_default_schema(body.database_type)}


# ---------------------------------------------------------------------------
# Local PostgreSQL / MySQL in Docker
# ---------------------------------------------------------------------------


@router.post("/{db_type}/install")
async def auto_install(db_type: LocalDatabase, body: AutoInstallRequest | None = None) -> dict:
    body = body or AutoInstallRequest()
    room_id = f"{db_type}-install"

    def on_progress(event: dict[str, Any]) -> None:
        progress_relay.send_log(room_id, f"[{event['progress']}%] {event['message']}")

    result = await auto_installers[db_type].install(on_progress, reuse_existing=body.reuse_existing)
    return {"success": True, "result": result}


@router.get("/{db_type}/status")
async def auto_install_status(db_type: LocalDatabase) -> dict:
    return {"success": True, "status": await auto_installers[db_type].status()}


@router.post("/{db_type}/stop")
async def auto_install_stop(db_type: LocalDatabase) -> dict:
    return {"success": True, "result": await auto_installers[db_type].stop()}


@router.post("/{db_type}/remove")
async def auto_install_remove(db_type: LocalDatabase) -> dict:
    return {"success": True, "result": await auto_installers[db_type].remove()}
