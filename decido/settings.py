"""Workflow configuration loader.

Loads workflow defaults from decido/config/defaults.toml, or from the
file named by the DECIDO_CONFIG environment variable.
"""

from __future__ import annotations

import os
import tomllib
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from decido.errors import ConfigurationError

# Default config directory relative to the decido package
_CONFIG_DIR = Path(__file__).parent / "config"

CONFIG_ENV_VAR = "DECIDO_CONFIG"


class WorkflowConfig(BaseModel):
    """Tunable parameters of the consent workflow."""

    reconcile_interval_minutes: int = Field(
        default=15, gt=0, description="Minutes between two reconciliation runs"
    )
    consent_min_duration_days: int = Field(
        default=7, ge=0, description="Shortest allowed consent window, in days"
    )
    log_dir: str = Field(
        default=".decido/logs", description="Directory of the JSONL decision event log"
    )

    @property
    def reconcile_interval(self) -> timedelta:
        return timedelta(minutes=self.reconcile_interval_minutes)

    @property
    def min_consent_duration(self) -> timedelta:
        return timedelta(days=self.consent_min_duration_days)


def default_config_path() -> Path:
    """Path of the active config file: $DECIDO_CONFIG or the shipped defaults."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return _CONFIG_DIR / "defaults.toml"


def load_workflow_config(config_path: Path | None = None) -> WorkflowConfig:
    """Load workflow settings from a TOML file.

    Args:
        config_path: Path to a TOML file with a [workflow] table. Defaults
            to default_config_path().

    Returns:
        WorkflowConfig with values from the file, defaults for the rest.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigurationError: If the file is not valid TOML or holds
            invalid values.
    """
    path = config_path or default_config_path()
    if not path.exists():
        raise FileNotFoundError(f"Workflow config not found: {path}")

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    section = raw.get("workflow", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[workflow] in {path} must be a table")

    try:
        return WorkflowConfig(**section)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid workflow config in {path}: {exc}") from exc
