# runner.py
from __future__ import annotations

import runpy
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .dag import extend_plan, resolve_plan
from .dsl import TargetGraph, TargetRegistry
from .errors import MissingParameterError, TargetFlowError
from .model import Target, TargetResult, TargetStatus
from .ui.console import Console, get_console


# ----------------------------------------------------------------------
# Workflow loading (local file)
# ----------------------------------------------------------------------

def _as_graph(value: Any) -> TargetGraph | None:
    if isinstance(value, TargetGraph):
        return value
    if isinstance(value, TargetRegistry):
        return value.freeze()
    return None


def load_workflow(path: str | Path) -> TargetGraph:
    """
    Load a target graph from a python file path.

    The file must define either:
      - workflow() -> TargetGraph | TargetRegistry
      - TARGETS = TargetGraph | TargetRegistry
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.exists():
        raise FileNotFoundError(f"Workflow file not found: {wf_path}")
    if wf_path.suffix != ".py":
        raise ValueError(f"Workflow must be a .py file, got: {wf_path.name}")

    module_name = f"targetflow_workflow_{wf_path.stem}"
    globals_dict = runpy.run_path(str(wf_path), run_name=module_name)

    value = None
    if "workflow" in globals_dict and callable(globals_dict["workflow"]):
        value = globals_dict["workflow"]()
    elif "TARGETS" in globals_dict:
        value = globals_dict["TARGETS"]

    graph = _as_graph(value)
    if graph is None:
        raise TypeError(
            "Workflow must return/define a TargetGraph or TargetRegistry. "
            "Define workflow() -> TargetGraph or TARGETS = registry."
        )
    return graph


# ----------------------------------------------------------------------
# Run report
# ----------------------------------------------------------------------

@dataclass
class RunReport:
    requested: List[str]
    plan: List[str] = field(default_factory=list)
    results: "OrderedDict[str, TargetResult]" = field(default_factory=OrderedDict)

    @property
    def ok(self) -> bool:
        return not any(r.failed for r in self.results.values())

    @property
    def failed_target(self) -> Optional[str]:
        for name, result in self.results.items():
            if result.failed:
                return name
        return None

    def status_of(self, name: str) -> TargetStatus | None:
        result = self.results.get(name)
        return result.status if result else None


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _failure_reason(exc: BaseException) -> str:
    if isinstance(exc, TargetFlowError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def _skip_reason(target: Target, params: Any) -> Optional[str]:
    """First false predicate wins; None means the target should run."""
    for idx, predicate in enumerate(target.predicates, start=1):
        if not predicate(params):
            label = getattr(predicate, "__name__", "") or ""
            if not label or label == "<lambda>":
                label = f"condition #{idx}"
            return f"{label} is false"
    return None


def _check_requirements(target: Target, params: Any) -> None:
    missing = []
    for name in target.requires:
        value = getattr(params, name, None)
        if value is None or value == "":
            missing.append(name)
    if missing:
        raise MissingParameterError(target.name, missing)


def _run_target(target: Target, params: Any, console: Console) -> TargetResult:
    """
    Returns SKIPPED or SUCCEEDED; raises on failure.

    Predicates are evaluated before requirements, so a skipped target never
    complains about parameters it would not have used.
    """
    reason = _skip_reason(target, params)
    if reason is not None:
        console.print_target_skipped(target.name, reason)
        return TargetResult(TargetStatus.SKIPPED, reason=reason)

    console.print_target_start(target.name)
    _check_requirements(target, params)

    start = time.monotonic()
    if target.action is not None:
        target.action(params)
    duration = time.monotonic() - start
    console.print_success(target.name, duration)
    return TargetResult(TargetStatus.SUCCEEDED, duration=duration)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_targets(
    graph: TargetGraph,
    requested: Sequence[str] | str,
    params: Any,
    *,
    console: Console | None = None,
    print_plan: bool = True,
) -> RunReport:
    """
    Resolve and run the requested targets, fail-fast.

    Resolution errors (cycles, unknown names) are raised before anything
    runs. A target failure (missing parameter or raised action) is recorded
    as FAILED and every remaining planned target as NOT_RUN.
    """
    console = console or get_console()
    if isinstance(requested, str):
        requested = [requested]

    plan = resolve_plan(graph, requested)
    report = RunReport(requested=list(requested), plan=plan)
    if print_plan:
        console.print_plan(plan)

    idx = 0
    while idx < len(plan):
        name = plan[idx]
        idx += 1
        target = graph[name]

        try:
            result = _run_target(target, params, console)
        except Exception as e:
            reason = _failure_reason(e)
            report.results[name] = TargetResult(TargetStatus.FAILED, reason=reason)
            console.print_failure(name, reason)
            if console.debug:
                console.print_exception(e)
            break

        report.results[name] = result

        # triggers fire only after success, never after skip
        if result.status is TargetStatus.SUCCEEDED and target.triggers:
            try:
                added = extend_plan(graph, plan, target.triggers)
            except TargetFlowError as e:
                # the action ran, but the run cannot continue past its triggers
                reason = f"cannot expand triggers: {e}"
                report.results[name] = TargetResult(
                    TargetStatus.FAILED, reason=reason, duration=result.duration
                )
                console.print_failure(name, reason)
                break
            if added:
                plan.extend(added)
                console.print_plan_extended(name, added)

    for name in plan[idx:]:
        report.results.setdefault(name, TargetResult(TargetStatus.NOT_RUN))

    return report


def run_exit_code(report: RunReport) -> int:
    return 0 if report.ok else 1
