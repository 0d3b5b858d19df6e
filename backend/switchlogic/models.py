"""
Configuration models for switchlogic.

Rules are configured as a list of records:

    usePut:
      - electrical.switches.
    rules:
      - input: "[0,1] and not tanks.0.currentLevel:lt:0.1"
        output: "[0,2]"
        description: "Pump runs while tank 0 has water"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_USE_PUT = ["electrical.switches."]


class ConfigError(ValueError):
    """Raised when a configuration cannot be loaded."""


class RuleConfig(BaseModel):
    """A single configured rule."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    input: str
    output: str
    description: Optional[str] = None
    use_put: bool = Field(default=False, alias="usePut")

    @field_validator("input")
    @classmethod
    def input_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("missing 'input' property")
        return v.strip()

    @field_validator("output")
    @classmethod
    def output_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("missing 'output' property")
        return v.strip()


class SwitchLogicConfig(BaseModel):
    """
    Root configuration.

    Attributes:
        rules: Rules to operate.
        use_put: Output path prefixes written with put requests rather than
            delta updates.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    rules: List[RuleConfig] = Field(default_factory=list)
    use_put: List[str] = Field(
        default_factory=lambda: list(DEFAULT_USE_PUT), alias="usePut"
    )

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]]
    ) -> Tuple["SwitchLogicConfig", List[str]]:
        """
        Build a configuration, validating each rule on its own.

        Invalid rules are dropped rather than failing the whole
        configuration.

        Returns:
            Tuple of (config, messages for dropped rules).

        Raises:
            ConfigError: If the configuration outside the rules is invalid.
        """
        data = dict(data or {})
        raw_rules = data.pop("rules", None) or []
        if not isinstance(raw_rules, list):
            raise ConfigError("'rules' must be a list")

        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        dropped = []
        for index, raw in enumerate(raw_rules):
            try:
                config.rules.append(RuleConfig.model_validate(raw))
            except ValidationError as e:
                reasons = "; ".join(
                    error["msg"].removeprefix("Value error, ") for error in e.errors()
                )
                dropped.append(f"rule {index}: {reasons}")

        return config, dropped


def load_config(path: Union[str, Path]) -> Tuple[SwitchLogicConfig, List[str]]:
    """
    Load a configuration from a YAML (or JSON) file.

    Returns:
        Tuple of (config, messages for dropped rules).

    Raises:
        ConfigError: If the file is missing, empty or unparseable.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"File not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error: {e}") from e

    if data is None:
        raise ConfigError("File is empty")
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    return SwitchLogicConfig.from_dict(data)
