"""Shared utilities for Augur CLI commands.

- Logging configuration state set by the global options
- Config, record and context file loading
- Engine construction
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console

from augur.core.config import AugurConfig
from augur.core.errors import ConfigurationError
from augur.core.logging import configure_from_config, configure_logging, get_logger
from augur.core.models import DecisionRecord, MarketContext
from augur.engine import AdviceEngine

from .output import console, output_error

_logger = get_logger("cli")

# Used when --config is not given and this file exists in the working directory
DEFAULT_CONFIG_FILE = Path("augur.yaml")


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """Logging options collected from the global CLI callbacks."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    format: Literal["json", "console"] = "console"
    file: Path | None = None
    configured: bool = False
    explicit: bool = False
    """True once any logging option was given on the command line."""


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    level = level.upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        raise typer.BadParameter(f"Invalid log level: {level}")
    _log_config.level = level  # type: ignore[assignment]
    _log_config.explicit = True


def set_log_format(fmt: str) -> None:
    if fmt not in ("json", "console"):
        raise typer.BadParameter(f"Invalid log format: {fmt}")
    _log_config.format = fmt  # type: ignore[assignment]
    _log_config.explicit = True


def set_log_file(path: Path | None) -> None:
    _log_config.file = path
    _log_config.explicit = True


def get_log_config() -> CliLoggingConfig:
    return _log_config


def configure_global_logging(out: Console | None = None) -> None:
    """Configure logging from the global options. Only runs once per session."""
    if _log_config.configured:
        return
    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
    except OSError as e:
        (out or console).print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None
    _log_config.configured = True


def reset_logging_state() -> None:
    """Reset logging state so tests can reconfigure."""
    _log_config.level = "WARNING"
    _log_config.format = "console"
    _log_config.file = None
    _log_config.configured = False
    _log_config.explicit = False


# =============================================================================
# Input loading
# =============================================================================


def _read_mapping(path: Path, what: str) -> dict[str, Any]:
    """Read a YAML or JSON file that must contain a mapping."""
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        output_error(f"Cannot read {what} file {path}: {e}")
        raise typer.Exit(2) from None
    except yaml.YAMLError as e:
        output_error(f"{what.capitalize()} file {path} is not valid YAML/JSON: {e}")
        raise typer.Exit(2) from None
    if not isinstance(data, dict):
        output_error(f"{what.capitalize()} file {path} must contain a mapping")
        raise typer.Exit(2)
    return data


def load_record(path: Path) -> DecisionRecord:
    data = _read_mapping(path, "record")
    try:
        return DecisionRecord.model_validate(data)
    except ValidationError as e:
        output_error(f"Invalid decision record: {e}")
        raise typer.Exit(2) from None


def load_context(path: Path | None) -> MarketContext | None:
    if path is None:
        return None
    data = _read_mapping(path, "context")
    try:
        return MarketContext.model_validate(data)
    except ValidationError as e:
        output_error(f"Invalid market context: {e}")
        raise typer.Exit(2) from None


def load_config(path: Path | None) -> AugurConfig:
    """Load the engine configuration.

    Falls back to ./augur.yaml, then to the built-in provider set.
    """
    if path is None and DEFAULT_CONFIG_FILE.exists():
        path = DEFAULT_CONFIG_FILE
    if path is None:
        _logger.debug("using_default_config")
        return AugurConfig.default()
    try:
        config = AugurConfig.from_yaml(path)
    except ConfigurationError as e:
        output_error(f"Invalid configuration: {e}")
        raise typer.Exit(2) from None
    _apply_config_logging(config)
    return config


def _apply_config_logging(config: AugurConfig) -> None:
    """Use the file's logging section unless logging options were given."""
    if _log_config.explicit or "logging" not in config.model_fields_set:
        return
    try:
        configure_from_config(config.logging)
    except OSError as e:
        output_error(f"Logging configuration error: {e}")
        raise typer.Exit(1) from None
    _log_config.configured = True


def build_engine(config: AugurConfig) -> AdviceEngine:
    return AdviceEngine.from_config(config)


__all__ = [
    "CliLoggingConfig",
    "build_engine",
    "configure_global_logging",
    "get_log_config",
    "load_config",
    "load_context",
    "load_record",
    "reset_logging_state",
    "set_log_file",
    "set_log_format",
    "set_log_level",
]
