"""Loading and saving regguard.yaml.

A missing or empty file yields the default configuration, so regguard runs
with zero config. Validation errors name the section and field at fault.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from regguard.config.schema import RegGuardConfig

DEFAULT_CONFIG_PATH = Path.home() / ".regguard" / "regguard.yaml"


class ConfigError(Exception):
    """Configuration loading or validation error."""


def _resolve(path: Path | str | None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path)


def _describe_validation_error(error: ValidationError) -> str:
    """One ``section.field: message`` line per failing value."""
    lines = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "<root>"
        lines.append(f"  {location}: {detail['msg']}")
    return "\n".join(lines)


def _failing_sections(error: ValidationError) -> list[str]:
    sections: list[str] = []
    for detail in error.errors():
        if detail["loc"] and str(detail["loc"][0]) not in sections:
            sections.append(str(detail["loc"][0]))
    return sections


def load_config(path: Path | str | None = None) -> RegGuardConfig:
    """Load and validate regguard configuration from a YAML file.

    Args:
        path: Path to config file (``~/.regguard/regguard.yaml`` when None)

    Returns:
        Validated configuration; the defaults when the file is missing or empty

    Raises:
        ConfigError: If the file is unreadable, not YAML, not a mapping of
            sections, or fails validation
    """
    path = _resolve(path)

    if not path.exists():
        return RegGuardConfig()

    try:
        raw: Any = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if raw is None:
        return RegGuardConfig()
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Invalid config in {path}: expected a mapping of sections, "
            f"got {type(raw).__name__}"
        )

    try:
        return RegGuardConfig.model_validate(raw)
    except ValidationError as e:
        sections = ", ".join(_failing_sections(e)) or "root"
        raise ConfigError(
            f"Configuration validation failed in section {sections} of {path}:\n"
            f"{_describe_validation_error(e)}"
        ) from e


def save_config(config: RegGuardConfig, path: Path | str | None = None) -> None:
    """Write configuration as YAML, creating parent directories.

    Args:
        config: Configuration to save
        path: Destination (``~/.regguard/regguard.yaml`` when None)
    """
    path = _resolve(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
    )
