"""
wfkit CLI Main Entry Point

Usage:
    wfkit compile <file> [--target command|subagent] [--output PATH]
    wfkit validate <file> [--format text|json|markdown]
    wfkit order <file>
    wfkit simulate <file> [--outcome ID=true|false ...] [--fail ID=ERROR ...]
    wfkit new <name> [--output PATH]
    wfkit templates
    wfkit version
"""
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from .. import __version__
from ..errors import WorkflowError
from ..export.compile import compile_workflow
from ..orchestrator.compiler import linearize
from ..orchestrator.executor import simulate_run
from ..services.config_service import get_logging_settings
from ..workflow.editing import create_workflow
from ..workflow.loader import dump_workflow, load_workflow
from ..workflow.models import ExportTarget, Workflow
from ..workflow.templates import templates_by_category
from ..workflow.validation import validate_workflow

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else str(get_logging_settings().get("level", "WARNING"))
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_or_exit(path: str) -> Workflow:
    """Load a workflow file, turning load errors into a CLI error."""
    try:
        return load_workflow(path)
    except (FileNotFoundError, WorkflowError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _parse_pairs(pairs: Tuple[str, ...], option: str) -> Dict[str, str]:
    parsed = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected NODE_ID=VALUE, got {pair!r}", param_hint=option)
        key, value = pair.split("=", 1)
        parsed[key.strip()] = value.strip()
    return parsed


def _parse_outcomes(pairs: Tuple[str, ...]) -> Dict[str, bool]:
    outcomes = {}
    for node_id, value in _parse_pairs(pairs, "--outcome").items():
        lowered = value.lower()
        if lowered not in ("true", "false"):
            raise click.BadParameter(f"outcome for '{node_id}' must be true or false", param_hint="--outcome")
        outcomes[node_id] = lowered == "true"
    return outcomes


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """wfkit - compile visual agent workflows into instruction documents."""
    _configure_logging(verbose)


@cli.command("compile")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--target", "-t", type=click.Choice([t.value for t in ExportTarget]), default=None,
              help="Export target (default: workflow exportType, then config)")
@click.option("--output", "-o", default=None, help="Write the document here instead of stdout")
@click.option("--strict", is_flag=True, help="Refuse to compile a workflow with validation errors")
def compile_cmd(file: str, target: Optional[str], output: Optional[str], strict: bool):
    """
    Compile a workflow file into a command or subagent document.

    Examples:
        wfkit compile examples/workflows/summarize.yaml
        wfkit compile review.yaml --target subagent -o .claude/agents/review.md
    """
    workflow = _load_or_exit(file)

    if strict:
        validation = validate_workflow(workflow)
        if not validation.valid:
            click.echo(str(validation), err=True)
            sys.exit(1)

    result = compile_workflow(workflow, target)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if output:
        out_path = Path(output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result.document, encoding="utf-8")
        click.echo(f"Wrote {result.target.value} document to {out_path} ({result.document_hash})")
    else:
        click.echo(result.document)


@cli.command("validate")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--format", "-f", "output_format", type=click.Choice(["text", "json", "markdown"]),
              default="text", help="Output format")
def validate_cmd(file: str, output_format: str):
    """
    Validate a workflow's graph structure.

    Exits with status 1 when any error is found.
    """
    workflow = _load_or_exit(file)
    result = validate_workflow(workflow)

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif output_format == "markdown":
        click.echo(result.to_markdown())
    else:
        click.echo(str(result))

    if not result.valid:
        sys.exit(1)


@cli.command("order")
@click.argument("file", type=click.Path(dir_okay=False))
def order_cmd(file: str):
    """Print the linearized node order and any excluded nodes."""
    workflow = _load_or_exit(file)
    linear = linearize(workflow)

    for position, node in enumerate(linear.order, start=1):
        click.echo(f"{position:3d}. {node.id} [{node.type}] {node.data.label}")

    if linear.excluded:
        click.echo("")
        click.echo(f"Excluded (cycle): {', '.join(linear.excluded_ids())}")


@cli.command("simulate")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--outcome", "outcomes", multiple=True, metavar="NODE_ID=true|false",
              help="Decision outcome (default: true)")
@click.option("--fail", "failures", multiple=True, metavar="NODE_ID=ERROR",
              help="Make a node fail with ERROR")
@click.option("--json", "as_json", is_flag=True, help="Print the full execution record as JSON")
def simulate_cmd(file: str, outcomes: Tuple[str, ...], failures: Tuple[str, ...], as_json: bool):
    """
    Walk a workflow with the execution tracker, without running anything.

    Example:
        wfkit simulate review.yaml --outcome check=false --fail lint="exit 2"
    """
    workflow = _load_or_exit(file)
    record = simulate_run(
        workflow,
        outcomes=_parse_outcomes(outcomes),
        failures=_parse_pairs(failures, "--fail"),
    )

    if as_json:
        click.echo(record.model_dump_json(indent=2))
        return

    click.echo(f"Status: {record.status.value}")
    click.echo(f"Visited: {' -> '.join(record.visited_nodes) or '(none)'}")
    for node_id, slot in record.node_results.items():
        extra = ""
        if slot.selected_handle:
            extra = f" branch={slot.selected_handle}"
        if slot.iterations:
            extra += f" iterations={slot.iterations}"
        if slot.error:
            extra += f" error={slot.error}"
        click.echo(f"  {node_id}: {slot.status.value}{extra}")
    if record.error:
        click.echo(f"Error: {record.error}")

    if record.status.value == "failed":
        sys.exit(1)


@cli.command("new")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Workflow description")
@click.option("--output", "-o", default=None, help="Output file (.yaml or .json)")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
def new_cmd(name: str, description: Optional[str], output: Optional[str], force: bool):
    """Create a workflow file seeded with a Start trigger."""
    workflow = create_workflow(name, description)

    out_path = Path(output) if output else Path(f"{name.lower().replace(' ', '_')}.yaml")
    if out_path.exists() and not force:
        click.echo(f"Error: {out_path} already exists. Use --force to overwrite.", err=True)
        sys.exit(1)

    dump_workflow(workflow, out_path)
    click.echo(f"Created workflow '{name}' ({workflow.id}) at {out_path}")


@cli.command("templates")
def templates_cmd():
    """List the node palette."""
    for category, templates in templates_by_category().items():
        click.echo(f"{category}:")
        for template in templates:
            click.echo(f"  {template.label:<16} {template.type.value:<10} {template.description}")


@cli.command("version")
def version():
    """Show wfkit version."""
    click.echo(f"wfkit v{__version__}")


# Entry point
def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
