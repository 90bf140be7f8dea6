"""Render ScalarDB configuration files: database.properties, schema JSON, docker-compose.yml."""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from scalardb_setup.core.compose import build_compose
from scalardb_setup.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_TYPES = ("database-properties", "schema", "docker-compose")
TRANSACTION_MANAGERS = ("consensus-commit", "jdbc", "grpc", "single-crud-operation")
ISOLATION_LEVELS = ("SNAPSHOT", "SERIALIZABLE", "READ_COMMITTED")

_STORAGE = {
    "postgresql": "jdbc",
    "mysql": "jdbc",
    "cassandra": "cassandra",
    "dynamodb": "dynamo",
    "cosmos": "cosmos",
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def generate_database_properties(config: dict[str, Any]) -> str:
    database = config.get("database") or {}
    transaction = config.get("transaction") or {}
    db_type = database.get("type")
    manager = transaction.get("manager") or "consensus-commit"

    lines = [
        "# ScalarDB configuration",
        f"scalar.db.transaction_manager={manager}",
    ]
    storage = _STORAGE.get(db_type)
    if storage:
        lines.append(f"scalar.db.storage={storage}")

    if db_type in ("postgresql", "mysql"):
        host = database.get("host", "localhost")
        port = database.get("port", 5432 if db_type == "postgresql" else 3306)
        lines.append(f"scalar.db.contact_points=jdbc:{db_type}://{host}:{port}/{database.get('database', '')}")
        lines.append(f"scalar.db.username={database.get('username', '')}")
        lines.append(f"scalar.db.password={database.get('password', '')}")
    elif db_type == "cassandra":
        hosts = database.get("hosts") or ["localhost"]
        if isinstance(hosts, str):
            hosts = [h.strip() for h in hosts.split(",") if h.strip()]
        lines.append(f"scalar.db.contact_points={','.join(hosts)}")
        lines.append(f"scalar.db.contact_port={database.get('port', 9042)}")
        lines.append(f"scalar.db.username={database.get('username', '')}")
        lines.append(f"scalar.db.password={database.get('password', '')}")
    elif db_type == "dynamodb":
        lines.append(f"scalar.db.contact_points={database.get('region', '')}")
        lines.append(f"scalar.db.username={database.get('accessKey', '')}")
        lines.append(f"scalar.db.password={database.get('secretKey', '')}")
        if database.get("endpointOverride"):
            lines.append(f"scalar.db.dynamo.endpoint_override={database['endpointOverride']}")
    elif db_type == "cosmos":
        lines.append(f"scalar.db.contact_points={database.get('endpoint', '')}")
        lines.append(f"scalar.db.password={database.get('key', '')}")

    if manager == "consensus-commit":
        isolation = transaction.get("isolationLevel") or "SNAPSHOT"
        lines.append(f"scalar.db.consensus_commit.isolation_level={isolation}")

    sql = config.get("sql") or {}
    if sql.get("enabled"):
        lines.append("scalar.db.sql.enabled=true")
        lines.append(f"scalar.db.sql.server.port={sql.get('port', 60052)}")

    metrics = config.get("metrics") or {}
    if metrics.get("enabled"):
        lines.append("scalar.db.metrics.enabled=true")
        lines.append(f"scalar.db.metrics.port={metrics.get('port', 8080)}")

    return "\n".join(lines) + "\n"


def generate_schema(table_config: dict[str, Any]) -> str:
    """Render one table in the schema-loader JSON format."""
    table_name = table_config.get("tableName")
    if not table_name:
        raise ConfigurationError("tableName is required")

    key = f"{table_config['namespace']}.{table_name}" if table_config.get("namespace") else table_name
    table: dict[str, Any] = {
        "transaction": bool(table_config.get("transactionEnabled", True)),
        "partition-key": list(table_config.get("partitionKeys") or []),
    }
    if table_config.get("clusteringKeys"):
        table["clustering-key"] = list(table_config["clusteringKeys"])
    table["columns"] = {c["name"]: c.get("type", "TEXT") for c in table_config.get("columns") or []}
    if table_config.get("secondaryIndexes"):
        table["secondary-index"] = list(table_config["secondaryIndexes"])

    return json.dumps({key: table}, indent=2)


def generate_docker_compose(config: dict[str, Any]) -> str:
    return yaml.safe_dump(build_compose(config), sort_keys=False, default_flow_style=False)


def render(config: dict[str, Any], config_type: str) -> str:
    if config_type == "database-properties":
        return generate_database_properties(config)
    if config_type == "schema":
        return generate_schema(config)
    if config_type == "docker-compose":
        return generate_docker_compose(config)
    raise ConfigurationError(f"Unknown configuration type: {config_type}")


def validate_database(database: dict[str, Any]) -> list[str]:
    """Field-level checks for one database block. Returns error messages."""
    errors: list[str] = []
    db_type = database.get("type")
    if _is_blank(db_type):
        return ["Database type is required"]

    if db_type in ("postgresql", "mysql", "cassandra"):
        if db_type == "cassandra":
            if not database.get("hosts"):
                errors.append("Database hosts are required")
        elif _is_blank(database.get("host")):
            errors.append("Database host is required")

        port = database.get("port")
        if _is_blank(port):
            errors.append("Database port is required")
        else:
            try:
                if not 1 <= int(port) <= 65535:
                    errors.append("Database port must be a valid number")
            except (TypeError, ValueError):
                errors.append("Database port must be a valid number")

        if _is_blank(database.get("username")):
            errors.append("Database username is required")
        if _is_blank(database.get("password")):
            errors.append("Database password is required")
        if db_type != "cassandra" and _is_blank(database.get("database")):
            errors.append("Database name is required")
    elif db_type == "dynamodb":
        if _is_blank(database.get("region")) and _is_blank(database.get("endpointOverride")):
            errors.append("DynamoDB region or endpoint override is required")
    elif db_type == "cosmos":
        if _is_blank(database.get("endpoint")):
            errors.append("Cosmos DB endpoint is required")
        if _is_blank(database.get("key")):
            errors.append("Cosmos DB key is required")
    else:
        errors.append(f"Unsupported database type: {db_type}")
    return errors


def validate_configuration(config: dict[str, Any]) -> dict[str, Any]:
    errors = validate_database(config.get("database") or {})

    transaction = config.get("transaction") or {}
    manager = transaction.get("manager")
    if manager and manager not in TRANSACTION_MANAGERS:
        errors.append(f"Unknown transaction manager: {manager}")
    isolation = transaction.get("isolationLevel")
    if isolation and isolation not in ISOLATION_LEVELS:
        errors.append(f"Unknown isolation level: {isolation}")

    return {"valid": not errors, "errors": errors}


def save_configuration(config: dict[str, Any], config_type: str, output_path: str | Path) -> dict[str, Any]:
    content = render(config, config_type)
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    logger.info("Saved %s to %s", config_type, path)
    return {"success": True, "file_path": str(path), "type": config_type}


def save_all(install_config: dict[str, Any], output_dir: str | Path) -> dict[str, Any]:
    """Write database.properties and docker-compose.yml (plus schema.json when tables are given)."""
    output = Path(output_dir)
    files = [
        save_configuration(install_config, "database-properties", output / "database.properties"),
        save_configuration(install_config, "docker-compose", output / "docker-compose.yml"),
    ]
    for table in install_config.get("tables") or []:
        files.append(save_configuration(table, "schema", output / f"schema-{table.get('tableName')}.json"))
    return {"success": True, "output_dir": str(output), "files": files}
