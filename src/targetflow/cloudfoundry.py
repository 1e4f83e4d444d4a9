# cloudfoundry.py
# Thin wrapper around the Cloud Foundry CLI (`cf`).
# Every deployment step goes through `CloudFoundryCli._cf`, so tests can swap
# the process runner and nothing else in the codebase calls subprocess("cf ...").

from __future__ import annotations

import re
import subprocess
import time
from typing import Callable, List, Optional

from .errors import ExternalCallError, ServiceReadyTimeout
from .ui.console import get_console

_STATUS_RE = re.compile(r"^\s*status:\s*(?P<status>.+?)\s*$", re.MULTILINE | re.IGNORECASE)

_SECRET_FLAGS = ("-p",)


def _display(args: List[str]) -> str:
    """Command line for messages, with the password argument masked."""
    shown: List[str] = []
    hide_next = False
    for arg in args:
        if hide_next:
            shown.append("****")
            hide_next = False
            continue
        shown.append(arg)
        # `cf login -p <password>`; `cf push -p <path>` is not a secret
        if arg in _SECRET_FLAGS and args[:2] == ["cf", "login"]:
            hide_next = True
    return " ".join(shown)


class CloudFoundryCli:
    """
    Runs `cf` commands for one deployment.

    Args:
        executable: Name or path of the cf binary
        run: subprocess.run-compatible callable (swapped in tests)
        sleep / clock: time functions used while polling a service
    """

    def __init__(
        self,
        executable: str = "cf",
        *,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.executable = executable
        self._run = run
        self._sleep = sleep
        self._clock = clock

    def _cf(self, *args: str) -> str:
        """Execute a cf command and return its stdout; raise on non-zero exit."""
        cmd = [self.executable, *args]
        shown = _display(["cf", *args])
        get_console().print_step(shown)
        try:
            proc = self._run(cmd, text=True, capture_output=True)
        except FileNotFoundError:
            raise ExternalCallError(
                command=shown,
                exit_code=127,
                stderr=f"{self.executable} not found. Install the Cloud Foundry CLI or fix PATH.",
            ) from None

        if proc.returncode != 0:
            raise ExternalCallError(
                command=shown,
                exit_code=proc.returncode,
                stdout=(proc.stdout or "")[-4000:],
                stderr=(proc.stderr or "")[-4000:],
            )
        return (proc.stdout or "").strip()

    # ------------------------------------------------------------------
    # Session / context
    # ------------------------------------------------------------------

    def login(
        self,
        api_endpoint: str,
        username: str,
        password: str,
        org: Optional[str] = None,
        space: Optional[str] = None,
    ) -> None:
        args = ["login", "-a", api_endpoint, "-u", username, "-p", password]
        if org:
            args += ["-o", org]
        if space:
            args += ["-s", space]
        self._cf(*args)

    def create_space(self, space: str, org: str) -> None:
        # cf reports success (exit 0) when the space already exists
        self._cf("create-space", space, "-o", org)

    def target(self, org: str, space: str) -> None:
        self._cf("target", "-o", org, "-s", space)

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def create_service(self, service: str, plan: str, instance: str) -> None:
        self._cf("create-service", service, plan, instance)

    def service_status(self, instance: str) -> Optional[str]:
        """Last operation status of a service instance, e.g. 'create succeeded'."""
        out = self._cf("service", instance)
        match = _STATUS_RE.search(out)
        return match.group("status") if match else None

    def ensure_service_ready(
        self,
        instance: str,
        timeout: float = 600.0,
        interval: float = 5.0,
    ) -> str:
        """
        Poll until the service's last operation succeeded.

        Raises ServiceReadyTimeout once `timeout` seconds have elapsed and
        ExternalCallError if the broker reports a failed operation.
        """
        deadline = self._clock() + timeout
        status: Optional[str] = None
        while True:
            status = self.service_status(instance)
            if status and status.lower().endswith("succeeded"):
                return status
            if status and status.lower().endswith("failed"):
                raise ExternalCallError(
                    command=f"cf service {instance}",
                    exit_code=1,
                    stderr=f"service '{instance}' reported status: {status}",
                )
            if self._clock() >= deadline:
                raise ServiceReadyTimeout(instance, timeout, status)
            get_console().print_debug(f"service {instance}: {status or 'unknown'}; waiting {interval:g}s")
            self._sleep(interval)

    def bind_service(self, app: str, instance: str) -> None:
        self._cf("bind-service", app, instance)

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def push(self, app: str, path: str, *, random_route: bool = True) -> None:
        args = ["push", app, "-p", path]
        if random_route:
            args.append("--random-route")
        self._cf(*args)

    def restart(self, app: str) -> None:
        self._cf("restart", app)
