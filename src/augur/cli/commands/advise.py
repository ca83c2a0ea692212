"""Advice commands: ``augur advise`` and ``augur consensus``."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from augur.core.config import AugurConfig
from augur.core.errors import AllProvidersFailedError
from augur.core.models import AdviceResult, ConsensusResult, DecisionRecord, MarketContext
from augur.engine import format_advice_text

from ..helpers import build_engine, configure_global_logging, load_config, load_context, load_record
from ..output import console, create_consensus_table, output_error, print_advice, print_json

RECORD_ARGUMENT = typer.Argument(
    ...,
    help="YAML or JSON file describing the decision record",
    exists=True,
    readable=True,
    dir_okay=False,
)
CONTEXT_OPTION = typer.Option(
    None,
    "--context",
    "-c",
    help="YAML or JSON file with market context",
    exists=True,
    readable=True,
    dir_okay=False,
)
CONFIG_OPTION = typer.Option(
    None,
    "--config",
    help="Engine configuration file (default: ./augur.yaml or built-in providers)",
    exists=True,
    readable=True,
    dir_okay=False,
)
JSON_OPTION = typer.Option(False, "--json", "-j", help="Output the structured result as JSON")


async def _advise(
    config: AugurConfig,
    record: DecisionRecord,
    context: MarketContext | None,
) -> AdviceResult:
    async with build_engine(config) as engine:
        return await engine.get_advice_result(record, context)


async def _consensus(
    config: AugurConfig,
    record: DecisionRecord,
    context: MarketContext | None,
) -> ConsensusResult:
    async with build_engine(config) as engine:
        return await engine.get_consensus_advice(record, context)


def advise(
    record_file: Path = RECORD_ARGUMENT,
    context_file: Path | None = CONTEXT_OPTION,
    config_file: Path | None = CONFIG_OPTION,
    json_output: bool = JSON_OPTION,
) -> None:
    """Get advice for a decision record from the best available provider.

    Always prints advice: when no provider can answer, rule-based fallback
    advice is printed with a note explaining why.
    """
    configure_global_logging(console)
    config = load_config(config_file)
    record = load_record(record_file)
    context = load_context(context_file)

    result = asyncio.run(_advise(config, record, context))

    if json_output:
        print_json(result.to_dict())
    else:
        print_advice(result, format_advice_text(result))


def consensus(
    record_file: Path = RECORD_ARGUMENT,
    context_file: Path | None = CONTEXT_OPTION,
    config_file: Path | None = CONFIG_OPTION,
    json_output: bool = JSON_OPTION,
) -> None:
    """Ask the top-ranked providers concurrently and reconcile their advice.

    Exit codes:
      0: At least one provider answered
      1: Every provider failed
      2: Invalid input or configuration
    """
    configure_global_logging(console)
    config = load_config(config_file)
    record = load_record(record_file)
    context = load_context(context_file)

    try:
        result = asyncio.run(_consensus(config, record, context))
    except AllProvidersFailedError as e:
        output_error(str(e), hints=e.errors, json_output=json_output)
        raise typer.Exit(1) from None

    if json_output:
        print_json(result.to_dict())
    else:
        console.print(create_consensus_table(result))
