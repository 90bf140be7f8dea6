"""Installation state tracked by the progress relay."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys for browser clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class StepRecord(CamelModel):
    """One entry in an installation's step history."""

    step: str
    progress: int
    status: str
    message: str | None = None
    timestamp: datetime


class InstallationState(CamelModel):
    """Current state of one installation run."""

    installation_id: str
    status: str = "started"  # started | running | completed | error
    config: dict[str, Any] = {}
    start_time: datetime
    steps: list[StepRecord] = []
    current_step: str | None = None
    progress: int = 0
    error: str | None = None
    result: dict[str, Any] | None = None
    end_time: datetime | None = None

    @property
    def finished(self) -> bool:
        return self.status in ("completed", "error")
