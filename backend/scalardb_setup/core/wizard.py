"""Installer wizard step rules.

Steps:
  1. Product selection     : product + installType
  2. Environment check     : informational, always passes
  3. Database / deployment : database.type + deployment
  4. Database configuration: per-type connection fields
  5. Installation          : runs server-side, always passes
  6. Completion
"""

from dataclasses import dataclass, field
from typing import Any

from scalardb_setup.services.config_generator import validate_database

FIRST_STEP = 1
LAST_STEP = 6

_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "postgresql": ("host", "port", "username", "password", "database"),
    "mysql": ("host", "port", "username", "password", "database"),
    "cassandra": ("hosts", "port", "username", "password"),
}


def _missing(config: dict[str, Any], *paths: str) -> list[str]:
    errors = []
    for path in paths:
        value: Any = config
        for part in path.split("."):
            value = value.get(part) if isinstance(value, dict) else None
        if value in (None, "", []):
            errors.append(f"{path} is required")
    return errors


def validate_step(step: int, config: dict[str, Any]) -> tuple[bool, list[str]]:
    if step == 1:
        errors = _missing(config, "product", "installType")
    elif step == 3:
        errors = _missing(config, "database.type", "deployment")
    elif step == 4:
        database = config.get("database") or {}
        db_type = database.get("type")
        if db_type in _REQUIRED_FIELDS:
            errors = _missing(database, *_REQUIRED_FIELDS[db_type])
            if not errors:
                errors = validate_database(database)
        else:
            errors = validate_database(database)
    elif step in (2, 5, 6):
        errors = []
    else:
        errors = [f"Unknown step: {step}"]
    return not errors, errors


@dataclass
class WizardState:
    """Server-side mirror of the wizard's navigation rules."""

    step: int = FIRST_STEP
    config: dict[str, Any] = field(default_factory=dict)
    installation_running: bool = False

    def next_step(self) -> bool:
        valid, _ = validate_step(self.step, self.config)
        if not valid or self.step >= LAST_STEP:
            return False
        self.step += 1
        return True

    def previous_step(self) -> bool:
        if self.installation_running or self.step <= FIRST_STEP:
            return False
        self.step -= 1
        return True

    def go_to(self, step: int) -> None:
        self.step = max(FIRST_STEP, min(LAST_STEP, step))
