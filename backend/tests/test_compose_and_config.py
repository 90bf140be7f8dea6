"""Tests for configuration rendering, validation and the compose document."""

import json

import pytest
import yaml

from scalardb_setup.core.compose import build_compose, database_service
from scalardb_setup.core.errors import ConfigurationError
from scalardb_setup.services import config_generator

POSTGRES = {
    "type": "postgresql", "host": "db.local", "port": 5433,
    "username": "scalar", "password": "pw", "database": "scalardb",
}


class TestDatabaseProperties:
    def test_postgres(self):
        content = config_generator.generate_database_properties({"database": POSTGRES})
        lines = content.splitlines()

        assert "scalar.db.transaction_manager=consensus-commit" in lines
        assert "scalar.db.storage=jdbc" in lines
        assert "scalar.db.contact_points=jdbc:postgresql://db.local:5433/scalardb" in lines
        assert "scalar.db.username=scalar" in lines
        assert "scalar.db.consensus_commit.isolation_level=SNAPSHOT" in lines

    def test_cassandra_hosts_string(self):
        content = config_generator.generate_database_properties({
            "database": {"type": "cassandra", "hosts": "a, b", "username": "c", "password": "p"},
        })
        assert "scalar.db.contact_points=a,b" in content
        assert "scalar.db.contact_port=9042" in content

    def test_dynamodb_endpoint_override(self):
        content = config_generator.generate_database_properties({
            "database": {"type": "dynamodb", "region": "us-east-1", "endpointOverride": "http://localhost:8000"},
        })
        assert "scalar.db.storage=dynamo" in content
        assert "scalar.db.dynamo.endpoint_override=http://localhost:8000" in content

    def test_jdbc_manager_has_no_isolation_level(self):
        content = config_generator.generate_database_properties({
            "database": POSTGRES, "transaction": {"manager": "jdbc"},
        })
        assert "isolation_level" not in content

    def test_sql_and_metrics(self):
        content = config_generator.generate_database_properties({
            "database": POSTGRES,
            "sql": {"enabled": True},
            "metrics": {"enabled": True, "port": 9080},
        })
        assert "scalar.db.sql.server.port=60052" in content
        assert "scalar.db.metrics.port=9080" in content


class TestSchema:
    def test_namespaced_table(self):
        rendered = json.loads(config_generator.generate_schema({
            "namespace": "sample",
            "tableName": "customers",
            "partitionKeys": ["customer_id"],
            "clusteringKeys": ["created_at"],
            "columns": [{"name": "customer_id", "type": "INT"}, {"name": "name"}],
        }))

        table = rendered["sample.customers"]
        assert table["transaction"] is True
        assert table["partition-key"] == ["customer_id"]
        assert table["clustering-key"] == ["created_at"]
        assert table["columns"] == {"customer_id": "INT", "name": "TEXT"}

    def test_table_name_required(self):
        with pytest.raises(ConfigurationError, match="tableName"):
            config_generator.generate_schema({})


class TestRender:
    def test_unknown_type(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration type"):
            config_generator.render({}, "ini")

    def test_save_all(self, tmp_path):
        result = config_generator.save_all({
            "database": POSTGRES,
            "tables": [{"tableName": "orders", "partitionKeys": ["id"], "columns": []}],
        }, tmp_path)

        names = sorted(p.name for p in tmp_path.iterdir())
        assert names == ["database.properties", "docker-compose.yml", "schema-orders.json"]
        assert len(result["files"]) == 3
        assert result["output_dir"] == str(tmp_path)


class TestValidation:
    def test_valid_postgres(self):
        assert config_generator.validate_configuration({"database": POSTGRES}) == {"valid": True, "errors": []}

    def test_missing_type(self):
        result = config_generator.validate_configuration({"database": {}})
        assert result["errors"] == ["Database type is required"]

    def test_bad_port_and_blank_fields(self):
        errors = config_generator.validate_database({**POSTGRES, "port": "abc", "username": " ", "database": ""})
        assert "Database port must be a valid number" in errors
        assert "Database username is required" in errors
        assert "Database name is required" in errors

    def test_cosmos_requires_key(self):
        errors = config_generator.validate_database({"type": "cosmos", "endpoint": "https://x"})
        assert errors == ["Cosmos DB key is required"]

    def test_unknown_manager_and_isolation(self):
        result = config_generator.validate_configuration({
            "database": POSTGRES,
            "transaction": {"manager": "two-phase", "isolationLevel": "DIRTY"},
        })
        assert not result["valid"]
        assert "Unknown transaction manager: two-phase" in result["errors"]
        assert "Unknown isolation level: DIRTY" in result["errors"]


class TestCompose:
    def test_postgres_service_and_volume(self):
        compose = build_compose({"database": POSTGRES, "scalardb": {"version": "3.15.0"}})

        assert set(compose["services"]) == {"postgresql", "scalardb-server"}
        assert compose["services"]["postgresql"]["ports"] == ["5433:5432"]
        assert compose["services"]["scalardb-server"]["image"].endswith(":3.15.0")
        assert compose["services"]["scalardb-server"]["depends_on"] == ["postgresql"]
        assert compose["volumes"] == {"postgresql-data": {}}

    def test_cloud_database_has_no_service(self):
        compose = build_compose({"database": {"type": "dynamodb", "region": "us-east-1"}})

        assert set(compose["services"]) == {"scalardb-server"}
        assert compose["services"]["scalardb-server"]["depends_on"] == []
        assert "volumes" not in compose

    def test_monitoring_adds_prometheus_and_grafana(self):
        compose = build_compose({"database": POSTGRES, "monitoring": {"enabled": True, "grafanaPassword": "g"}})
        assert compose["services"]["grafana"]["environment"]["GF_SECURITY_ADMIN_PASSWORD"] == "g"
        assert "prometheus" in compose["services"]

    def test_mysql_root_password_falls_back(self):
        service = database_service({"type": "mysql", "password": "pw", "username": "u", "database": "d"})
        assert service["environment"]["MYSQL_ROOT_PASSWORD"] == "pw"

    def test_yaml_round_trips(self):
        rendered = config_generator.generate_docker_compose({"database": POSTGRES})
        assert yaml.safe_load(rendered)["services"]["scalardb-server"]["container_name"] == "scalardb-server"
