# dag.py
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .dsl import TargetGraph
from .errors import CycleError


def dependency_closure(graph: TargetGraph, names: Iterable[str]) -> Set[str]:
    """Every target reachable from `names` over hard dependency edges."""
    seen: Set[str] = set()
    stack = list(names)
    while stack:
        name = stack.pop()
        if name in seen:
            continue
        seen.add(name)
        stack.extend(graph[name].depends_on)
    return seen


def _before_index(graph: TargetGraph) -> Dict[str, Tuple[str, ...]]:
    """target -> targets that declared `.before(target)` (declaration order)."""
    index: Dict[str, List[str]] = {name: [] for name in graph.names}
    for t in graph:
        for later in t.before:
            index[later].append(t.name)
    return {name: tuple(v) for name, v in index.items()}


def _order(
    graph: TargetGraph,
    roots: Sequence[str],
    included: Set[str],
    already_planned: Iterable[str] = (),
) -> List[str]:
    """
    Depth-first, post-order walk over ordering edges.

    Predecessors of a target, in visit order:
      - its dependencies (always part of `included`)
      - its after-edges that are part of `included`
      - targets in `included` that declared `.before()` on it
    """
    before_index = _before_index(graph)
    done: Set[str] = set(already_planned)
    order: List[str] = []
    stack: List[str] = []
    on_stack: Set[str] = set()

    def predecessors(name: str) -> List[str]:
        t = graph[name]
        preds = list(t.depends_on)
        preds.extend(a for a in t.after if a in included)
        preds.extend(b for b in before_index[name] if b in included)
        return preds

    def visit(name: str) -> None:
        if name in done:
            return
        if name in on_stack:
            raise CycleError(stack[stack.index(name):])

        stack.append(name)
        on_stack.add(name)
        for pred in predecessors(name):
            visit(pred)
        stack.pop()
        on_stack.discard(name)

        done.add(name)
        order.append(name)

    for root in roots:
        visit(root)
    return order


def resolve_plan(graph: TargetGraph, requested: Sequence[str] | str) -> List[str]:
    """
    Ordered execution plan for the requested target(s).

    Hard dependencies are pulled in; after/before edges only order targets
    that are already part of the plan. Trigger edges are not expanded here
    (see `extend_plan`). Raises CycleError / UnknownTargetError.
    """
    if isinstance(requested, str):
        requested = [requested]
    for name in requested:
        graph[name]  # unknown names fail before anything else

    included = dependency_closure(graph, requested)
    return _order(graph, list(requested), included)


def extend_plan(
    graph: TargetGraph,
    existing: Sequence[str],
    triggered: Sequence[str],
) -> List[str]:
    """
    Targets to append to `existing` once a target triggering `triggered`
    has succeeded: the triggered targets plus their missing dependencies,
    dependency-ordered, minus anything already planned.
    """
    included = set(existing) | dependency_closure(graph, triggered)
    return _order(graph, list(triggered), included, already_planned=existing)
