# src/clustercost/cli/nodes.py
"""
Implements the `nodes` command: assemble node records from saved query results.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from ..core.config import config
from ..core.exceptions import QueryResultError
from ..core.processor import NodeCostProcessor, NodeQueryResults
from ..reporters.console_reporter import ConsoleReporter
from ..utils.provider_id import get_provider_id_parser

logger = logging.getLogger(__name__)


def load_query_results(path: Path) -> NodeQueryResults:
    """Reads a JSON file of query responses keyed by stream name."""
    with open(path, "r", encoding="utf-8") as f:
        payloads = json.load(f)
    if not isinstance(payloads, dict):
        raise QueryResultError("Expected a JSON object keyed by stream name.")
    return NodeQueryResults.from_payloads(payloads)


def nodes(
    input_file: Annotated[Path, typer.Argument(help="JSON file of query responses keyed by stream name.")],
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", help="Cloud provider used to normalize provider IDs (aws, gcp, azure)."),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print node records as JSON instead of a table.")] = False,
):
    """
    Assemble per-node cost records and print them.
    """
    try:
        results = load_query_results(input_file)
    except (OSError, json.JSONDecodeError, QueryResultError, ValidationError) as e:
        logger.error("Failed to load query results from %s: %s", input_file, e)
        raise typer.Exit(code=1)

    parser = get_provider_id_parser(provider) if provider else None
    processor = NodeCostProcessor(settings=config, provider_id_parser=parser)
    node_map = processor.run(results)

    if processor.warnings:
        logger.info("%d query result(s) were dropped while decoding.", len(processor.warnings))

    if as_json:
        ordered = sorted(node_map.values(), key=lambda n: (n.cluster, n.name, n.provider_id))
        typer.echo(json.dumps([node.model_dump(mode="json") for node in ordered], indent=2))
        return

    ConsoleReporter().report(node_map)
