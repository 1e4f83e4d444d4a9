from .dsl import TargetBuilder, TargetGraph, TargetRegistry, graph, target
from .runner import RunReport, load_workflow, run_targets
from .model import Target, TargetResult, TargetStatus
from .config import BuildParameters, load_parameters

__all__ = [
    "TargetBuilder",
    "TargetGraph",
    "TargetRegistry",
    "graph",
    "target",
    "RunReport",
    "load_workflow",
    "run_targets",
    "Target",
    "TargetResult",
    "TargetStatus",
    "BuildParameters",
    "load_parameters",
]
