"""Rich output formatting for the Augur CLI."""

from __future__ import annotations

import json
from typing import Any, Literal

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from augur.core.models import AdviceResult, ConsensusResult

# Command modules print through this console; tests swap its file for capture
console = Console()


RECOMMENDATION_COLORS: dict[str, str] = {
    "HOLD": "green",
    "HEDGE": "yellow",
    "FADE": "red",
}


def format_recommendation(label: str) -> str:
    color = RECOMMENDATION_COLORS.get(label, "white")
    return f"[{color}]{label}[/{color}]"


def format_confidence(confidence: float) -> str:
    return f"{confidence:.0%}"


def create_providers_table() -> Table:
    table = Table(title="Advice Providers", show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Model")
    table.add_column("Priority", justify="right")
    table.add_column("Enabled", justify="center")
    table.add_column("Circuit", justify="center")
    table.add_column("Budget", justify="right")
    table.add_column("Score", justify="right")
    return table


def create_consensus_table(result: ConsensusResult) -> Table:
    table = Table(title="Consensus", show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Advice", escape(result.primary_advice))
    table.add_row("Confidence", format_confidence(result.confidence))
    table.add_row("Agreement", format_confidence(result.agreement))
    table.add_row("Providers", ", ".join(result.providers))
    if result.conflict_flags:
        table.add_row("Conflicts", f"[yellow]{', '.join(result.conflict_flags)}[/yellow]")
    for provider_id, reasoning in zip(result.providers, result.reasoning, strict=False):
        table.add_row(f"  {provider_id}", escape(reasoning))
    if result.errors:
        table.add_row("Errors", "[red]" + escape("\n".join(result.errors)) + "[/red]")
    return table


def print_json(data: dict[str, Any], out: Console | None = None) -> None:
    # Plain print so Rich markup never mangles the JSON
    (out or console).print(
        json.dumps(data, indent=2, default=str),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def print_advice(result: AdviceResult, text: str, out: Console | None = None) -> None:
    out = out or console
    out.print(text, markup=False, highlight=False, soft_wrap=True)
    if result.fallback_used:
        out.print("[dim]Rule-based fallback; no provider answered.[/dim]")


def output_error(
    message: str,
    *,
    hints: list[str] | None = None,
    severity: Literal["error", "warning"] = "error",
    json_output: bool = False,
    console_instance: Console | None = None,
) -> None:
    """Print an error or warning, as Rich markup or as JSON."""
    out = console_instance or console
    if json_output:
        result: dict[str, Any] = {"success": False, "message": message}
        if hints:
            result["hints"] = hints
        print_json(result, out)
        return

    color = "red" if severity == "error" else "yellow"
    label = "Error" if severity == "error" else "Warning"
    out.print(f"[{color}]{label}:[/{color}] {escape(message)}")
    if hints:
        out.print()
        out.print("[dim]Hints:[/dim]")
        for hint in hints:
            out.print(f"  - {escape(hint)}")
