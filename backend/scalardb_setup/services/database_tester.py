"""Connectivity checks for the databases ScalarDB can sit on.

PostgreSQL and MySQL go through SQLAlchemy's async engine (asyncpg / aiomysql).
Cassandra, DynamoDB and Cosmos DB use their vendor SDKs, which are optional
(``pip install scalardb-setup[cloud]``); a missing SDK is reported as a
failed connection that names the package to install.
"""

import asyncio
import importlib.util
import logging
import time
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5

_DRIVERS = {
    "postgresql": ("asyncpg", "asyncpg"),
    "mysql": ("aiomysql", "aiomysql"),
    "cassandra": ("cassandra", "cassandra-driver"),
    "dynamodb": ("boto3", "boto3"),
    "cosmos": ("azure.cosmos", "azure-cosmos"),
}

_VERSION_QUERY = {
    "postgresql": "SELECT version()",
    "mysql": "SELECT VERSION()",
}


def build_engine(database: dict[str, Any]) -> AsyncEngine:
    """Async engine for a PostgreSQL or MySQL database block."""
    db_type = database.get("type")
    if db_type == "postgresql":
        drivername, default_port, connect_args = "postgresql+asyncpg", 5432, {"timeout": CONNECT_TIMEOUT}
    elif db_type == "mysql":
        drivername, default_port, connect_args = "mysql+aiomysql", 3306, {"connect_timeout": CONNECT_TIMEOUT}
    else:
        raise ValueError(f"No SQL engine for database type: {db_type}")

    url = URL.create(
        drivername,
        username=database.get("username"),
        password=database.get("password"),
        host=database.get("host") or "localhost",
        port=int(database.get("port") or default_port),
        database=database.get("database") or None,
    )
    return create_async_engine(url, connect_args=connect_args, pool_pre_ping=False)


def check_required_drivers(db_type: str) -> dict[str, Any]:
    driver = _DRIVERS.get(db_type)
    if driver is None:
        return {"installed": False, "driver": None, "install_command": None}
    module, package = driver
    try:
        installed = importlib.util.find_spec(module) is not None
    except ModuleNotFoundError:
        installed = False
    return {"installed": installed, "driver": package, "install_command": f"pip install {package}"}


class DatabaseTester:
    """Run a cheap round-trip against a database and time it."""

    async def test_connection(self, database: dict[str, Any]) -> dict[str, Any]:
        db_type = database.get("type")
        base = {"database_type": db_type, "timestamp": datetime.now(UTC).isoformat()}

        testers = {
            "postgresql": self._test_sql,
            "mysql": self._test_sql,
            "cassandra": self._test_cassandra,
            "dynamodb": self._test_dynamodb,
            "cosmos": self._test_cosmos,
        }
        tester = testers.get(db_type)
        if tester is None:
            return {
                **base,
                "connected": False,
                "message": f"Unsupported database type: {db_type}",
                "error": "unsupported_database",
            }

        drivers = check_required_drivers(db_type)
        if not drivers["installed"]:
            return {
                **base,
                "connected": False,
                "message": f"Driver {drivers['driver']} is not installed. Run: {drivers['install_command']}",
                "error": "driver_missing",
            }

        started = time.perf_counter()
        try:
            detail = await tester(database)
        except Exception as e:
            logger.warning("Connection test to %s failed: %s", db_type, e)
            return {**base, "connected": False, "message": f"Connection failed: {e}", "error": str(e)}

        return {
            **base,
            "connected": True,
            "message": f"Connected to {db_type}" + (f" ({detail})" if detail else ""),
            "response_time_ms": round((time.perf_counter() - started) * 1000),
        }

    async def _test_sql(self, database: dict[str, Any]) -> str:
        engine = build_engine(database)
        try:
            async with engine.connect() as conn:
                result = await conn.execute(text(_VERSION_QUERY[database["type"]]))
                return str(result.scalar_one())
        finally:
            await engine.dispose()

    async def _test_cassandra(self, database: dict[str, Any]) -> str:
        from cassandra.auth import PlainTextAuthProvider
        from cassandra.cluster import Cluster

        hosts = database.get("hosts") or ["localhost"]
        if isinstance(hosts, str):
            hosts = [h.strip() for h in hosts.split(",") if h.strip()]

        def probe() -> str:
            auth = None
            if database.get("username"):
                auth = PlainTextAuthProvider(database["username"], database.get("password", ""))
            cluster = Cluster(hosts, port=int(database.get("port") or 9042), auth_provider=auth,
                              connect_timeout=CONNECT_TIMEOUT)
            try:
                session = cluster.connect()
                row = session.execute("SELECT release_version FROM system.local").one()
                return row.release_version
            finally:
                cluster.shutdown()

        return await asyncio.to_thread(probe)

    async def _test_dynamodb(self, database: dict[str, Any]) -> str:
        import boto3

        def probe() -> str:
            client = boto3.client(
                "dynamodb",
                region_name=database.get("region") or "us-east-1",
                endpoint_url=database.get("endpointOverride") or None,
                aws_access_key_id=database.get("accessKey") or None,
                aws_secret_access_key=database.get("secretKey") or None,
            )
            tables = client.list_tables(Limit=10).get("TableNames", [])
            return f"{len(tables)} tables visible"

        return await asyncio.to_thread(probe)

    async def _test_cosmos(self, database: dict[str, Any]) -> str:
        from azure.cosmos import CosmosClient

        def probe() -> str:
            client = CosmosClient(database["endpoint"], credential=database["key"])
            names = [db["id"] for db in client.list_databases()]
            return f"{len(names)} databases visible"

        return await asyncio.to_thread(probe)
