"""``augur providers``: show configured providers and their live state."""

from __future__ import annotations

from pathlib import Path

import typer

from augur.engine import CircuitState

from ..helpers import build_engine, configure_global_logging, load_config
from ..output import console, create_providers_table, print_json


def providers(
    config_file: Path | None = typer.Option(
        None,
        "--config",
        help="Engine configuration file (default: ./augur.yaml or built-in providers)",
        exists=True,
        readable=True,
        dir_okay=False,
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List providers with eligibility, circuit state, rate budget and score."""
    configure_global_logging(console)
    config = load_config(config_file)
    engine = build_engine(config)

    rows = []
    for provider in engine.registry.all():
        rows.append({
            "id": provider.id,
            "name": provider.display_name,
            "model": provider.model,
            "family": provider.family,
            "priority": provider.priority,
            "enabled": provider.enabled,
            "circuit": engine.circuit_breaker.state(provider.id).value,
            "remaining_requests": engine.rate_limiter.remaining(provider),
            "score": round(engine.scorer.score(provider), 4),
        })

    if json_output:
        print_json({"providers": rows, "eligible": engine.get_available_providers()})
        return

    if not rows:
        console.print("[yellow]No providers configured.[/yellow]")
        return

    table = create_providers_table()
    for row in rows:
        circuit = row["circuit"]
        circuit_text = (
            f"[red]{circuit}[/red]" if circuit == CircuitState.OPEN.value else f"[green]{circuit}[/green]"
        )
        table.add_row(
            row["id"],
            row["model"],
            str(row["priority"]),
            "[green]yes[/green]" if row["enabled"] else "[dim]no[/dim]",
            circuit_text,
            str(row["remaining_requests"]),
            f"{row['score']:.3f}",
        )
    console.print(table)
