"""Shared fixtures: quiet console and a recording stand-in for subprocess.run."""

import subprocess
import threading

import pytest

from targetflow.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def console():
    c = Console()
    set_console(c)
    return c


class FakeRun:
    """
    subprocess.run stand-in. `handler(cmd)` may return
    (returncode, stdout, stderr) or None for a clean exit.
    """

    def __init__(self, handler=None):
        self.handler = handler
        self.calls = []
        self.kwargs = []
        self._lock = threading.Lock()

    def __call__(self, cmd, **kwargs):
        with self._lock:
            self.calls.append(list(cmd))
            self.kwargs.append(kwargs)
        outcome = self.handler(list(cmd)) if self.handler else None
        code, out, err = outcome or (0, "", "")
        return subprocess.CompletedProcess(cmd, code, out, err)


@pytest.fixture
def fake_run():
    return FakeRun
