"""Practice console configuration with YAML support."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field

from practice.schemas import BaseSchema
from sandbox.executor import SnippetExecutor
from sandbox.policy import DEFAULT_POLICY, IDENTIFIER_AWARE_POLICY, CapabilityPolicy


class PracticeConfig(BaseSchema):
    """Settings for the executor, catalogue and progress store."""

    # Wall-clock budget per snippet
    timeout_ms: int = Field(default=5000, gt=0)
    # Extra time allowed for the child process to start before it is killed
    startup_grace_ms: int = Field(default=1500, ge=0)
    max_concurrency: int = Field(default=4, ge=1)
    cpu_limit_slack_s: int = Field(default=2, ge=0)
    # Skip denylisted names that only end an identifier (`myFunction(`)
    identifier_aware_policy: bool = False

    database_path: str = "data/progress.db"
    catalog_path: str | None = None

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def capability_policy(self) -> CapabilityPolicy:
        return IDENTIFIER_AWARE_POLICY if self.identifier_aware_policy else DEFAULT_POLICY

    def build_executor(self) -> SnippetExecutor:
        return SnippetExecutor(
            self.timeout_ms,
            policy=self.capability_policy(),
            startup_grace_ms=self.startup_grace_ms,
            max_concurrency=self.max_concurrency,
            cpu_limit_slack_s=self.cpu_limit_slack_s,
        )


def load_config(yaml_path: str | Path | None = None) -> PracticeConfig:
    """Load configuration from a YAML file, or defaults when no path is given.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist
        ValueError: If the YAML is invalid or a field fails validation
    """
    if yaml_path is None:
        return PracticeConfig()

    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return PracticeConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML file: {yaml_path}")

    try:
        return PracticeConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e


def save_config(config: PracticeConfig, yaml_path: str | Path) -> None:
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()

    with open(yaml_path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
