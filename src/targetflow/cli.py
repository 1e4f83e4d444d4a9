# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from targetflow.config import load_parameters
from targetflow.dag import resolve_plan
from targetflow.dsl import TargetGraph
from targetflow.errors import TargetFlowError
from targetflow.runner import load_workflow, run_exit_code, run_targets
from targetflow.ui.console import Console, get_console, set_console

DEFAULT_WORKFLOW = "targetflow_workflow.py"


def find_workflow_files(directory: Path | None = None) -> list[Path]:
    """
    Find all workflow files in a directory (the current one by default).

    Returns:
        List of Path objects for workflow files
    """
    current_dir = directory or Path(".")
    workflow_files = []

    default_workflow = current_dir / DEFAULT_WORKFLOW
    if default_workflow.exists():
        workflow_files.append(default_workflow)

    for path in current_dir.glob("*_workflow.py"):
        if path != default_workflow:
            workflow_files.append(path)

    return sorted(workflow_files)


def discover_workflow(workflow_arg: str | None) -> Path:
    """
    Discover workflow file from argument or default.

    Raises:
        SystemExit: If workflow cannot be found or multiple workflows exist
    """
    console = get_console()

    if workflow_arg:
        workflow_path = Path(workflow_arg)
        if not workflow_path.exists() and workflow_path.suffix != ".py":
            workflow_path = Path(str(workflow_path) + ".py")
        if not workflow_path.exists():
            console.print_error(
                "Workflow file not found",
                f"Could not find workflow file: {workflow_arg}",
                suggestion="Create a workflow file or specify a different path:\n  targetflow run --workflow my_workflow.py",
            )
            sys.exit(1)
        return workflow_path

    workflow_files = find_workflow_files()

    if len(workflow_files) == 0:
        console.print_error(
            "No workflow file found",
            "Could not find any workflow files.",
            details=[
                "Looked for:",
                f"  {DEFAULT_WORKFLOW}",
                "  *_workflow.py",
            ],
            suggestion=f"Create a workflow file:\n  {DEFAULT_WORKFLOW}\n\nOr specify a workflow explicitly:\n  targetflow run --workflow my_workflow.py",
        )
        sys.exit(1)

    if len(workflow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in workflow_files)
        console.print_error(
            "Multiple workflow files found",
            "Found multiple workflow files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a workflow explicitly:\n  targetflow run --workflow {DEFAULT_WORKFLOW}",
        )
        sys.exit(1)

    return workflow_files[0]


def parse_param_options(values: tuple[str, ...]) -> dict[str, str]:
    """--param KEY=VALUE pairs to a dict; the last occurrence of a key wins."""
    params: dict[str, str] = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {raw!r}", param_hint="--param")
        params[key.strip()] = value
    return params


def _requested(graph: TargetGraph, targets: tuple[str, ...]) -> list[str]:
    if targets:
        return list(targets)
    if graph.default is None:
        raise click.UsageError("No target given and the workflow declares no default target.")
    return [graph.default]


def _load(ctx, workflow: str | None) -> tuple[Path, TargetGraph]:
    console = get_console()
    workflow_path = discover_workflow(workflow)
    try:
        return workflow_path, load_workflow(workflow_path)
    except Exception as e:
        console.print_error(
            "Failed to load workflow",
            f"Could not load workflow from {workflow_path}",
            details=[str(e)],
        )
        if ctx.obj.get("debug", False):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """targetflow: dependency-ordered build, deploy and release targets."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("targets", nargs=-1)
@click.option(
    "--workflow",
    default=None,
    help=f"Workflow file path (defaults to {DEFAULT_WORKFLOW} if present)",
)
@click.option("--param", "param_options", multiple=True, metavar="KEY=VALUE", help="Set a build parameter")
@click.option("--configuration", default=None, help="Build configuration (Debug on a workstation, Release on a build server)")
@click.option("--apps-count", default=None, type=click.IntRange(min=1), help="Number of app instances to deploy")
@click.option("--cf-skip-login", is_flag=True, default=False, help="Reuse an existing cf session")
@click.option("--print-plan/--no-print-plan", default=True, show_default=True, help="Print the resolved plan")
@click.pass_context
def run(ctx, targets, workflow, param_options, configuration, apps_count, cf_skip_login, print_plan):
    """Run TARGETS (the workflow's default target when none is given)."""
    console = get_console()

    workflow_path, graph = _load(ctx, workflow)
    requested = _requested(graph, targets)

    overrides: dict[str, object] = dict(parse_param_options(param_options))
    if configuration is not None:
        overrides["configuration"] = configuration
    if apps_count is not None:
        overrides["apps_count"] = apps_count
    if cf_skip_login:
        overrides["cf_skip_login"] = True

    try:
        params = load_parameters(overrides)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--param")

    try:
        console.print_run_started(
            workflow=workflow_path.name,
            requested=requested,
            configuration=params.configuration,
        )
        report = run_targets(graph, requested, params, print_plan=print_plan)
        console.print_results(report.results)
        code = run_exit_code(report)
        if code:
            sys.exit(code)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except TargetFlowError as e:
        # resolution errors (cycles, unknown targets) surface before anything runs
        console.print_error("Cannot run targets", str(e))
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        if ctx.obj.get("debug", False):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@cli.command()
@click.argument("targets", nargs=-1)
@click.option("--workflow", default=None, help="Workflow file path")
@click.pass_context
def plan(ctx, targets, workflow):
    """Print the execution order for TARGETS without running anything."""
    console = get_console()
    _, graph = _load(ctx, workflow)
    try:
        order = resolve_plan(graph, _requested(graph, targets))
    except TargetFlowError as e:
        console.print_error("Cannot resolve targets", str(e))
        sys.exit(1)
    console.print_plan(order)


@cli.command(name="list")
@click.option("--workflow", default=None, help="Workflow file path")
@click.pass_context
def list_targets(ctx, workflow):
    """List the workflow's listed targets."""
    _, graph = _load(ctx, workflow)
    get_console().print_targets(graph.listed(), default=graph.default)


if __name__ == "__main__":
    cli()
