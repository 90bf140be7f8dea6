"""Request bodies accepted by the installer and dashboard APIs."""

from typing import Any

from pydantic import Field

from scalardb_setup.models.installation import CamelModel


class PrerequisitesInstallRequest(CamelModel):
    tools: Any = None


class JavaInstallRequest(CamelModel):
    version: int = 17


class DownloadRequest(CamelModel):
    version: str | None = None


class VerifyRequest(CamelModel):
    type: str
    location: str | None = None


class ConfigGenerateRequest(CamelModel):
    config: dict[str, Any] = Field(default_factory=dict)
    type: str


class ConfigSaveRequest(CamelModel):
    config: dict[str, Any] = Field(default_factory=dict)
    type: str
    output_path: str


class ConfigSaveAllRequest(CamelModel):
    install_config: dict[str, Any] = Field(default_factory=dict)
    output_dir: str | None = None


class DatabaseTestRequest(CamelModel):
    database: dict[str, Any] = Field(default_factory=dict)


class SchemaCreateRequest(CamelModel):
    database: dict[str, Any] = Field(default_factory=dict)
    schema_path: str | None = None


class DefaultSchemaRequest(CamelModel):
    database_type: str = "postgresql"


class AutoInstallRequest(CamelModel):
    reuse_existing: bool = True


class DockerDeployRequest(CamelModel):
    config: dict[str, Any] = Field(default_factory=dict)
    use_compose: bool = True


class WizardValidateRequest(CamelModel):
    step: int
    config: dict[str, Any] = Field(default_factory=dict)


class QueryRequest(CamelModel):
    query: str | None = None
