# step_workflows/deploy.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ..cloudfoundry import CloudFoundryCli
from ..config import BuildParameters
from ..model import DeploymentUnit
from ..parallel import run_batch
from ..ui.console import get_console

PUSH_PARALLELISM = 1  # pushes must not race each other
BIND_PARALLELISM = 5
RESTART_PARALLELISM = 5


def app_names(prefix: str, count: int) -> List[str]:
    """{prefix}1 .. {prefix}{count}"""
    if count < 1:
        raise ValueError(f"apps_count must be >= 1, got {count}")
    return [f"{prefix}{i}" for i in range(1, count + 1)]


def deployment_units(params: BuildParameters) -> List[DeploymentUnit]:
    return [
        DeploymentUnit(name=name, space=params.cf_space, org=params.cf_org)
        for name in app_names(params.cf_app_prefix, params.apps_count)
    ]


def select_service_plan(params: BuildParameters) -> str:
    """
    Explicit plan wins; otherwise the first endpoint substring that matches
    picks the plan; otherwise the default plan.
    """
    if params.cf_service_plan:
        return params.cf_service_plan
    endpoint = params.cf_api_endpoint or ""
    for needle, plan in params.cf_service_plans:
        if needle in endpoint:
            return plan
    return params.cf_default_service_plan


class Deployment:
    """
    The Cloud Foundry deployment sequence. Each method is one step and is
    wired to its own target; `units` tracks the pushed instances.
    """

    def __init__(self, cf: Optional[CloudFoundryCli] = None):
        self.cf = cf or CloudFoundryCli()
        self.units: List[DeploymentUnit] = []

    def login(self, params: BuildParameters) -> None:
        self.cf.login(
            params.cf_api_endpoint,
            params.cf_username,
            params.cf_password,
            org=params.cf_org,
            space=params.cf_space,
        )

    def create_space(self, params: BuildParameters) -> None:
        self.cf.create_space(params.cf_space, params.cf_org)

    def target(self, params: BuildParameters) -> None:
        self.cf.target(params.cf_org, params.cf_space)

    def create_service(self, params: BuildParameters) -> str:
        plan = select_service_plan(params)
        self.cf.create_service(params.cf_service, plan, params.cf_service_instance)
        return plan

    def push(self, params: BuildParameters, package: Path) -> List[DeploymentUnit]:
        self.units = deployment_units(params)
        run_batch(
            [u.name for u in self.units],
            lambda app: self.cf.push(app, str(package), random_route=True),
            PUSH_PARALLELISM,
            name="cf push",
        )
        return self.units

    def wait_for_service(self, params: BuildParameters) -> str:
        return self.cf.ensure_service_ready(
            params.cf_service_instance,
            timeout=params.cf_service_timeout,
            interval=params.cf_service_poll_interval,
        )

    def _ensure_units(self, params: BuildParameters) -> List[DeploymentUnit]:
        # bind/restart can be requested on their own against an earlier push
        if not self.units:
            self.units = deployment_units(params)
        return self.units

    def bind_service(self, params: BuildParameters) -> None:
        by_name = {u.name: u for u in self._ensure_units(params)}

        def bind(app: str) -> None:
            self.cf.bind_service(app, params.cf_service_instance)
            by_name[app].bound = True

        run_batch(list(by_name), bind, BIND_PARALLELISM, name="cf bind-service")

    def restart(self, params: BuildParameters) -> None:
        by_name = {u.name: u for u in self._ensure_units(params)}

        def restart(app: str) -> None:
            self.cf.restart(app)
            by_name[app].restarted = True

        run_batch(list(by_name), restart, RESTART_PARALLELISM, name="cf restart")
        get_console().print_info(
            f"Deployed {len(by_name)} app(s) to {params.cf_org}/{params.cf_space}: {', '.join(by_name)}"
        )
