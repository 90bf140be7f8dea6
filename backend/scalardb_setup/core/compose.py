"""Docker Compose document for a ScalarDB server and its backing database."""

from typing import Any

from scalardb_setup.config import settings

CONTAINER_PREFIX = "scalardb"
NETWORK = "scalardb-network"
LOCAL_DATABASES = ("postgresql", "mysql", "cassandra")

_DATA_PATHS = {
    "postgresql": "/var/lib/postgresql/data",
    "mysql": "/var/lib/mysql",
    "cassandra": "/var/lib/cassandra",
}


def requires_volume(db_type: str | None) -> bool:
    return db_type in LOCAL_DATABASES


def database_service(database: dict[str, Any]) -> dict[str, Any] | None:
    """Service definition for a local database; cloud databases return None."""
    db_type = database.get("type")
    if not requires_volume(db_type):
        return None

    if db_type == "postgresql":
        image = "postgres:15"
        internal_port = 5432
        environment = {
            "POSTGRES_USER": database.get("username"),
            "POSTGRES_PASSWORD": database.get("password"),
            "POSTGRES_DB": database.get("database"),
        }
        name = "postgres"
    elif db_type == "mysql":
        image = "mysql:8.0"
        internal_port = 3306
        environment = {
            "MYSQL_ROOT_PASSWORD": database.get("rootPassword") or database.get("password"),
            "MYSQL_DATABASE": database.get("database"),
            "MYSQL_USER": database.get("username"),
            "MYSQL_PASSWORD": database.get("password"),
        }
        name = "mysql"
    else:
        image = "cassandra:4.1"
        internal_port = 9042
        environment = {
            "CASSANDRA_CLUSTER_NAME": "ScalarDB Cluster",
            "CASSANDRA_DC": "datacenter1",
            "CASSANDRA_ENDPOINT_SNITCH": "GossipingPropertyFileSnitch",
        }
        name = "cassandra"

    return {
        "image": image,
        "container_name": f"{CONTAINER_PREFIX}-{name}",
        "environment": environment,
        "ports": [f"{database.get('port') or internal_port}:{internal_port}"],
        "volumes": [f"{db_type}-data:{_DATA_PATHS[db_type]}"],
        "networks": [NETWORK],
        "restart": "unless-stopped",
    }


def monitoring_services(monitoring: dict[str, Any]) -> dict[str, Any]:
    return {
        "prometheus": {
            "image": "prom/prometheus:latest",
            "container_name": f"{CONTAINER_PREFIX}-prometheus",
            "ports": ["9090:9090"],
            "volumes": ["./prometheus.yml:/etc/prometheus/prometheus.yml:ro"],
            "networks": [NETWORK],
            "restart": "unless-stopped",
        },
        "grafana": {
            "image": "grafana/grafana:latest",
            "container_name": f"{CONTAINER_PREFIX}-grafana",
            "environment": {
                "GF_SECURITY_ADMIN_PASSWORD": monitoring.get("grafanaPassword") or "admin",
            },
            "ports": ["3000:3000"],
            "depends_on": ["prometheus"],
            "networks": [NETWORK],
            "restart": "unless-stopped",
        },
    }


def build_compose(config: dict[str, Any]) -> dict[str, Any]:
    """Build the compose document as a plain dict (YAML-serialisable)."""
    database = config.get("database") or {}
    db_type = database.get("type")
    scalardb = config.get("scalardb") or {}
    monitoring = config.get("monitoring") or {}

    services: dict[str, Any] = {}
    db_service = database_service(database)
    if db_service is not None:
        services[db_type] = db_service

    image = settings.scalardb_server_image
    if scalardb.get("version"):
        image = f"{image.rsplit(':', 1)[0]}:{scalardb['version']}"

    services["scalardb-server"] = {
        "image": image,
        "container_name": f"{CONTAINER_PREFIX}-server",
        "ports": ["60051:60051", "60052:60052"],
        "environment": {"SCALARDB_PROPERTIES": "/scalardb/conf/database.properties"},
        "volumes": ["./database.properties:/scalardb/conf/database.properties:ro"],
        "depends_on": [db_type] if db_service is not None else [],
        "restart": "unless-stopped",
        "networks": [NETWORK],
    }

    if monitoring.get("enabled"):
        services.update(monitoring_services(monitoring))

    compose: dict[str, Any] = {
        "version": "3.8",
        "services": services,
        "networks": {NETWORK: {"driver": "bridge"}},
    }
    if requires_volume(db_type):
        compose["volumes"] = {f"{db_type}-data": {}}
    return compose
