# model.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

# Actions and predicates only ever see the (immutable) build parameters.
Action = Callable[[Any], None]
Predicate = Callable[[Any], bool]


@dataclass(frozen=True)
class Target:
    """
    A named unit of build work plus its edges.

    Edges hold resolved target names; they are produced by
    `TargetRegistry.freeze()` and never mutated afterwards.
    """
    name: str
    action: Optional[Action] = None
    depends_on: Tuple[str, ...] = ()
    after: Tuple[str, ...] = ()
    before: Tuple[str, ...] = ()
    triggers: Tuple[str, ...] = ()
    predicates: Tuple[Predicate, ...] = ()
    requires: Tuple[str, ...] = ()
    listed: bool = True
    description: str = ""


class TargetStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_RUN = "not_run"


@dataclass(frozen=True)
class TargetResult:
    status: TargetStatus
    reason: str | None = None
    duration: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status is TargetStatus.FAILED


@dataclass
class DeploymentUnit:
    """One pushed application instance; lives for one deployment run."""
    name: str
    space: str
    org: str
    bound: bool = False
    restarted: bool = False
