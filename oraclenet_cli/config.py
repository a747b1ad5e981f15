"""
CLI Configuration

Configuration management for the OracleNet CLI. The service settings are
the same RuntimeConfig the API uses; the CLI adds logging and output
preferences on top.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from core.config.runtime import ENV_PREFIX, RuntimeConfig


@dataclass
class CLIConfig:
    """Main CLI configuration."""

    # Service settings
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    # Logging
    log_level: str = "WARNING"
    log_file: str | None = None

    # Output
    default_output_format: str = "human"  # "human" or "json"


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if path.suffix in (".yaml", ".yml"):
        import yaml
        with open(path) as f:
            return yaml.safe_load(f) or {}
    with open(path) as f:
        return json.load(f)


def load_config_from_file(path: Path) -> CLIConfig:
    """Load configuration from a JSON or YAML file."""
    data = _read_config_file(path)
    config = CLIConfig(runtime=RuntimeConfig.from_dict(data))
    config.log_level = data.get("cli_log_level", config.log_level)
    config.log_file = data.get("log_file", config.log_file)
    config.default_output_format = data.get("output_format", config.default_output_format)
    return config


def default_config_paths() -> list[Path]:
    return [
        Path.cwd() / "oraclenet.json",
        Path.cwd() / ".oraclenet.json",
        Path.home() / ".config" / "oraclenet" / "config.json",
    ]


def load_config(config_path: Path | None = None) -> CLIConfig:
    """
    Load configuration from file and/or environment.

    Environment variables override file settings.
    """
    config = CLIConfig()

    if config_path is not None:
        config = load_config_from_file(config_path)
    else:
        for default_path in default_config_paths():
            if default_path.exists():
                config = load_config_from_file(default_path)
                break

    config.runtime = config.runtime.with_env_overrides()

    if os.getenv(f"{ENV_PREFIX}CLI_LOG_LEVEL"):
        config.log_level = os.getenv(f"{ENV_PREFIX}CLI_LOG_LEVEL", config.log_level)
    if os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config.log_file = os.getenv(f"{ENV_PREFIX}LOG_FILE")

    return config


def get_default_config_template() -> str:
    """Get a template configuration file."""
    template = RuntimeConfig().to_dict()
    template["github"].pop("token_configured", None)
    template["session"].pop("secret_configured", None)
    template["cli_log_level"] = "WARNING"
    template["output_format"] = "human"
    return json.dumps(template, indent=2) + "\n"
