# targetflow_workflow.py
# Default workflow: build, deploy and release targets for articulate.
from __future__ import annotations

from targetflow.pipeline import define_targets


def workflow():
    return define_targets()
