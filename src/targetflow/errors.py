# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:
    from .parallel import BatchResult


class TargetFlowError(Exception):
    """Base class for every error raised by targetflow itself."""


class UnknownTargetError(TargetFlowError):
    pass


class CycleError(TargetFlowError):
    def __init__(self, members: Sequence[str]):
        self.members = list(members)
        path = " -> ".join(self.members + self.members[:1])
        super().__init__(f"Dependency cycle detected: {path}")


class MissingParameterError(TargetFlowError):
    def __init__(self, target: str, parameters: Sequence[str]):
        self.target = target
        self.parameters = list(parameters)
        super().__init__(
            f"missing required parameter(s) for target '{target}': {', '.join(self.parameters)}"
        )


@dataclass
class ExternalCallError(TargetFlowError):
    """
    An external tool (cf, git, dotnet, ...) exited non-zero.

    Keeps just enough output to explain the failure without a traceback.
    """
    command: str
    exit_code: int
    stderr: str = ""
    stdout: str = ""

    def __str__(self) -> str:
        msg = f"command failed (exit={self.exit_code}): {self.command}"
        tail = (self.stderr or self.stdout).strip()
        if tail:
            msg += f"\n{tail.splitlines()[-1]}"
        return msg


class ServiceReadyTimeout(TargetFlowError):
    def __init__(self, service: str, timeout: float, last_status: str | None = None):
        self.service = service
        self.timeout = timeout
        self.last_status = last_status
        msg = f"service '{service}' not ready after {timeout:g}s"
        if last_status:
            msg += f" (last status: {last_status})"
        super().__init__(msg)


class BatchError(TargetFlowError):
    def __init__(self, result: "BatchResult"):
        self.result = result
        label = result.name or "batch"
        lines = [f"{label}: {len(result.failures)} of {result.total} item(s) failed"]
        for failure in result.failures:
            lines.append(f"  {failure.item}: {failure.error}")
        if result.not_started:
            lines.append(f"  not started: {', '.join(str(i) for i in result.not_started)}")
        super().__init__("\n".join(lines))


class BuildError(TargetFlowError):
    pass


@dataclass
class ReleaseError(TargetFlowError):
    message: str
    details: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return "\n".join([self.message, *self.details])
