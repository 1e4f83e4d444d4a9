"""Console output formatting utilities for targetflow."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Sequence

if TYPE_CHECKING:
    from ..model import Target, TargetResult


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        workflow: str,
        requested: Sequence[str],
        configuration: str,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Workflow: {workflow}")
        print(f"Targets: {', '.join(requested)}")
        print(f"Configuration: {configuration}")
        print()

    def print_plan(self, plan: Sequence[str]) -> None:
        """Print the resolved execution order."""
        self.print_header("PLAN")
        for idx, name in enumerate(plan, start=1):
            print(f"  {idx}. {name}")

    def print_plan_extended(self, trigger: str, added: Sequence[str]) -> None:
        print(f"TRIGGERED by {trigger}: {', '.join(added)}")

    def print_target_start(self, name: str) -> None:
        """Print target start message."""
        print(f"\nTARGET STARTED: {name}")

    def print_step(self, name: str) -> None:
        """Print step start message."""
        print(f"STEP: {name}")

    def print_success(self, name: str, duration: Optional[float] = None) -> None:
        """Print success message."""
        if duration is None:
            print("STATUS: success")
        else:
            print(f"STATUS: success ({duration:.1f}s)")

    def print_target_skipped(self, name: str, reason: str) -> None:
        """Print target skipped message."""
        print(f"\nTARGET SKIPPED: {name} ({reason})")

    def print_failure(self, name: str, reason: str) -> None:
        """
        Print failure message.

        The whole reason is shown: batch failures and external command
        errors carry the failing item and the tool's output on later lines.
        Tracebacks stay behind --debug.
        """
        print(f"TARGET FAILED: {name}")
        lines = reason.splitlines() if reason else ["Unknown error"]
        print(f"Error: {lines[0]}")
        for line in lines[1:]:
            print(f"  {line}")

    def print_block(self, text: str) -> None:
        """Print a value the user will want to copy (artifact path, URL)."""
        line = "=" * max(len(text), 10)
        print(line)
        print(text)
        print(line)

    def print_results(self, results: Mapping[str, "TargetResult"]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for name, result in results.items():
            status_display = result.status.value.upper().replace("_", " ")
            line = f"  {name}: {status_display}"
            if result.duration:
                line += f" ({result.duration:.1f}s)"
            print(line)

    def print_targets(self, targets: Iterable["Target"], default: Optional[str] = None) -> None:
        """Print listed targets with their descriptions."""
        self.print_header("TARGETS")
        targets = list(targets)
        width = max((len(t.name) for t in targets), default=0)
        for t in targets:
            marker = " (default)" if t.name == default else ""
            desc = f"  {t.description}" if t.description else ""
            print(f"  {t.name.ljust(width)}{desc}{marker}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
