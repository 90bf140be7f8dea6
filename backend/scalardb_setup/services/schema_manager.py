"""Create ScalarDB namespaces and tables directly in the target database.

Schema documents look like::

    {
      "namespaces": ["scalardb"],
      "tables": [{
        "namespace": "scalardb", "name": "sample_table",
        "columns": [{"name": "id", "dataType": "TEXT", "partitionKey": true}, ...]
      }]
    }

DDL is built by pure functions (easy to test) and executed per backend.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from scalardb_setup.core.errors import SchemaError
from scalardb_setup.services.database_tester import DatabaseTester, build_engine, check_required_drivers

logger = logging.getLogger(__name__)

POSTGRES_TYPES = {
    "INT": "INTEGER",
    "BIGINT": "BIGINT",
    "FLOAT": "REAL",
    "DOUBLE": "DOUBLE PRECISION",
    "TEXT": "TEXT",
    "BOOLEAN": "BOOLEAN",
    "BLOB": "BYTEA",
}
MYSQL_TYPES = {
    "INT": "INT",
    "BIGINT": "BIGINT",
    "FLOAT": "FLOAT",
    "DOUBLE": "DOUBLE",
    "TEXT": "TEXT",
    "BOOLEAN": "BOOLEAN",
    "BLOB": "BLOB",
}
CASSANDRA_TYPES = {
    "INT": "int",
    "BIGINT": "bigint",
    "FLOAT": "float",
    "DOUBLE": "double",
    "TEXT": "text",
    "BOOLEAN": "boolean",
    "BLOB": "blob",
}
DYNAMODB_TYPES = {
    "INT": "N",
    "BIGINT": "N",
    "FLOAT": "N",
    "DOUBLE": "N",
    "TEXT": "S",
    "BOOLEAN": "BOOL",
    "BLOB": "B",
}

# MySQL cannot key or index an unbounded TEXT/BLOB column
MYSQL_KEY_TYPES = {"TEXT": "VARCHAR(255)", "BLOB": "VARBINARY(255)"}


def map_type(type_map: dict[str, str], scalar_type: str | None, fallback: str) -> str:
    return type_map.get((scalar_type or "").upper(), fallback)


def _qualified(table: dict[str, Any]) -> str:
    return f"{table['namespace']}.{table['name']}" if table.get("namespace") else table["name"]


def _keys(table: dict[str, Any]) -> tuple[list[str], list[str]]:
    columns = table.get("columns") or []
    partition = [c["name"] for c in columns if c.get("partitionKey")]
    clustering = [c["name"] for c in columns if c.get("clusteringKey") and c["name"] not in partition]
    if not partition:
        raise SchemaError(f"Table {table.get('name')} has no partition key")
    return partition, clustering


def _index_columns(table: dict[str, Any], skip_keys: bool = False) -> list[str]:
    return [
        c["name"]
        for c in table.get("columns") or []
        if c.get("indexType") and not (skip_keys and (c.get("partitionKey") or c.get("clusteringKey")))
    ]


def postgres_ddl(schema: dict[str, Any]) -> list[str]:
    statements = [f"CREATE SCHEMA IF NOT EXISTS {ns}" for ns in schema.get("namespaces") or []]
    for table in schema.get("tables") or []:
        name = _qualified(table)
        partition, clustering = _keys(table)
        columns = [f"{c['name']} {map_type(POSTGRES_TYPES, c.get('dataType'), 'TEXT')}" for c in table["columns"]]
        statements.append(
            f"CREATE TABLE IF NOT EXISTS {name} ({', '.join(columns)}, "
            f"PRIMARY KEY ({', '.join(partition + clustering)}))"
        )
        for column in _index_columns(table):
            statements.append(f"CREATE INDEX IF NOT EXISTS idx_{table['name']}_{column} ON {name} ({column})")
    return statements


def mysql_ddl(schema: dict[str, Any]) -> list[str]:
    statements = [f"CREATE DATABASE IF NOT EXISTS {ns}" for ns in schema.get("namespaces") or []]
    for table in schema.get("tables") or []:
        name = _qualified(table)
        partition, clustering = _keys(table)
        keyed = set(partition + clustering + _index_columns(table))
        columns = []
        for c in table["columns"]:
            scalar_type = (c.get("dataType") or "").upper()
            if c["name"] in keyed and scalar_type in MYSQL_KEY_TYPES:
                sql_type = MYSQL_KEY_TYPES[scalar_type]
            else:
                sql_type = map_type(MYSQL_TYPES, scalar_type, "TEXT")
            columns.append(f"{c['name']} {sql_type}")
        statements.append(
            f"CREATE TABLE IF NOT EXISTS {name} ({', '.join(columns)}, "
            f"PRIMARY KEY ({', '.join(partition + clustering)})) "
            "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"
        )
        for column in _index_columns(table):
            statements.append(f"CREATE INDEX idx_{table['name']}_{column} ON {name} ({column})")
    return statements


def cassandra_cql(schema: dict[str, Any]) -> list[str]:
    statements = [
        f"CREATE KEYSPACE IF NOT EXISTS {ns} "
        "WITH replication = {'class': 'SimpleStrategy', 'replication_factor': 1}"
        for ns in schema.get("namespaces") or []
    ]
    for table in schema.get("tables") or []:
        name = _qualified(table)
        partition, clustering = _keys(table)
        columns = [f"{c['name']} {map_type(CASSANDRA_TYPES, c.get('dataType'), 'text')}" for c in table["columns"]]
        primary = ", ".join(partition)
        if clustering:
            primary = f"({primary}), {', '.join(clustering)}"
        statements.append(f"CREATE TABLE IF NOT EXISTS {name} ({', '.join(columns)}, PRIMARY KEY ({primary}))")
        for column in _index_columns(table, skip_keys=True):
            statements.append(f"CREATE INDEX IF NOT EXISTS ON {name} ({column})")
    return statements


def dynamodb_table_spec(table: dict[str, Any]) -> dict[str, Any]:
    partition, clustering = _keys(table)
    by_name = {c["name"]: c for c in table["columns"]}
    key_schema = [{"AttributeName": partition[0], "KeyType": "HASH"}]
    if clustering:
        key_schema.append({"AttributeName": clustering[0], "KeyType": "RANGE"})
    return {
        "TableName": table["name"],
        "KeySchema": key_schema,
        "AttributeDefinitions": [
            {
                "AttributeName": key["AttributeName"],
                "AttributeType": map_type(DYNAMODB_TYPES, by_name[key["AttributeName"]].get("dataType"), "S"),
            }
            for key in key_schema
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }


def cosmos_partition_path(table: dict[str, Any]) -> str:
    for column in table.get("columns") or []:
        if column.get("partitionKey"):
            return f"/{column['name']}"
    return "/id"


def generate_default_schema(database_type: str) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "namespaces": ["scalardb"],
        "tables": [
            {
                "namespace": "scalardb",
                "name": "sample_table",
                "columns": [
                    {"name": "id", "dataType": "TEXT", "partitionKey": True},
                    {"name": "name", "dataType": "TEXT"},
                    {"name": "value", "dataType": "INT"},
                    {"name": "created_at", "dataType": "BIGINT", "clusteringKey": True},
                ],
            }
        ],
    }
    if database_type == "dynamodb":
        # DynamoDB has no namespaces
        del schema["namespaces"]
        schema["tables"][0].pop("namespace")
    return schema


class SchemaManager:
    """Load a schema document and apply it to the configured database."""

    def __init__(self, tester: DatabaseTester | None = None) -> None:
        self.tester = tester or DatabaseTester()

    @staticmethod
    def load_schema(schema_path: str | Path) -> dict[str, Any]:
        try:
            return json.loads(Path(schema_path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaError(f"Cannot read schema file {schema_path}: {e}") from e

    async def create_schema(
        self,
        database: dict[str, Any],
        schema_path: str | Path | None = None,
        schema: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        db_type = database.get("type")
        try:
            if schema is None:
                if schema_path is None:
                    raise SchemaError("A schema document or schema path is required")
                schema = self.load_schema(schema_path)

            connection = await self.tester.test_connection(database)
            if not connection["connected"]:
                raise SchemaError(f"Database connection failed: {connection['message']}")

            creators = {
                "postgresql": self._create_sql,
                "mysql": self._create_sql,
                "cassandra": self._create_cassandra,
                "dynamodb": self._create_dynamodb,
                "cosmos": self._create_cosmos,
            }
            creator = creators.get(db_type)
            if creator is None:
                raise SchemaError(f"Unsupported database: {db_type}")
            tables = await creator(database, schema)
        except Exception as e:
            logger.error("Schema creation on %s failed: %s", db_type, e)
            return {"success": False, "message": f"Schema creation failed: {e}", "error": str(e)}

        logger.info("Created %d tables on %s", len(tables), db_type)
        return {"success": True, "message": f"{db_type} schema created", "tables": tables}

    async def _create_sql(self, database: dict[str, Any], schema: dict[str, Any]) -> list[str]:
        is_mysql = database["type"] == "mysql"
        statements = mysql_ddl(schema) if is_mysql else postgres_ddl(schema)
        engine = build_engine(database)
        try:
            async with engine.begin() as conn:
                for statement in statements:
                    try:
                        await conn.execute(text(statement))
                    except DBAPIError as e:
                        if is_mysql and "Duplicate key name" in str(e):
                            logger.debug("Index already exists: %s", statement)
                            continue
                        raise
        finally:
            await engine.dispose()
        return [_qualified(t) for t in schema.get("tables") or []]

    async def _create_cassandra(self, database: dict[str, Any], schema: dict[str, Any]) -> list[str]:
        self._require_driver("cassandra")
        from cassandra.auth import PlainTextAuthProvider
        from cassandra.cluster import Cluster

        statements = cassandra_cql(schema)
        hosts = database.get("hosts") or ["localhost"]
        if isinstance(hosts, str):
            hosts = [h.strip() for h in hosts.split(",") if h.strip()]

        def apply() -> None:
            auth = None
            if database.get("username"):
                auth = PlainTextAuthProvider(database["username"], database.get("password", ""))
            cluster = Cluster(hosts, port=int(database.get("port") or 9042), auth_provider=auth)
            try:
                session = cluster.connect()
                for statement in statements:
                    session.execute(statement)
            finally:
                cluster.shutdown()

        await asyncio.to_thread(apply)
        return [_qualified(t) for t in schema.get("tables") or []]

    async def _create_dynamodb(self, database: dict[str, Any], schema: dict[str, Any]) -> list[str]:
        self._require_driver("dynamodb")
        import boto3

        specs = [dynamodb_table_spec(t) for t in schema.get("tables") or []]

        def apply() -> list[str]:
            client = boto3.client(
                "dynamodb",
                region_name=database.get("region") or "us-east-1",
                endpoint_url=database.get("endpointOverride") or None,
                aws_access_key_id=database.get("accessKey") or None,
                aws_secret_access_key=database.get("secretKey") or None,
            )
            created = []
            for spec in specs:
                try:
                    client.create_table(**spec)
                    client.get_waiter("table_exists").wait(TableName=spec["TableName"])
                except client.exceptions.ResourceInUseException:
                    logger.info("Table %s already exists", spec["TableName"])
                created.append(spec["TableName"])
            return created

        return await asyncio.to_thread(apply)

    async def _create_cosmos(self, database: dict[str, Any], schema: dict[str, Any]) -> list[str]:
        self._require_driver("cosmos")
        from azure.cosmos import CosmosClient, PartitionKey

        def apply() -> list[str]:
            client = CosmosClient(database["endpoint"], credential=database["key"])
            cosmos_db = client.create_database_if_not_exists(id=database.get("database") or "scalardb")
            created = []
            for table in schema.get("tables") or []:
                cosmos_db.create_container_if_not_exists(
                    id=table["name"], partition_key=PartitionKey(path=cosmos_partition_path(table)),
                )
                created.append(table["name"])
            return created

        return await asyncio.to_thread(apply)

    @staticmethod
    def _require_driver(db_type: str) -> None:
        drivers = check_required_drivers(db_type)
        if not drivers["installed"]:
            raise SchemaError(f"{drivers['driver']} is not installed. Run: {drivers['install_command']}")
