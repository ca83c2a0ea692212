"""``augur validate``: check an engine configuration file.

Exit codes:
  0: Valid
  2: Cannot read, parse or validate the file
"""

from __future__ import annotations

from pathlib import Path

import typer

from augur.core.config import AugurConfig
from augur.core.errors import ConfigurationError

from ..helpers import configure_global_logging
from ..output import console, output_error, print_json


def validate(
    config_file: Path = typer.Argument(
        ...,
        help="Path to YAML engine configuration file",
        exists=True,
        readable=True,
        dir_okay=False,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output validation results as JSON",
    ),
) -> None:
    """Validate an engine configuration file."""
    configure_global_logging(console)

    try:
        config = AugurConfig.from_yaml(config_file)
    except ConfigurationError as e:
        output_error(f"Configuration invalid: {e}", json_output=json_output)
        raise typer.Exit(2) from None

    enabled = [p.id for p in config.providers if p.enabled]
    if json_output:
        print_json({
            "valid": True,
            "providers": len(config.providers),
            "enabled": enabled,
        })
        return

    console.print(f"[green]✓[/green] {config_file} is valid")
    console.print(f"  Providers: {len(config.providers)} ({len(enabled)} enabled)")
    console.print(
        f"  Circuit breaker: {config.circuit_breaker.failure_threshold} failures, "
        f"{config.circuit_breaker.cooldown_seconds:g}s cool-down"
    )
    console.print(f"  Cache TTL: {config.cache.ttl_seconds:g}s")
    if not enabled:
        output_error(
            "No providers are enabled; every request will use rule-based fallback",
            severity="warning",
        )
