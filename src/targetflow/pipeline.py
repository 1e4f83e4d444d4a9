"""
Build, deploy and release targets for the articulate service.

    Clean ─before→ Restore → Compile
    Publish → Pack
    Deploy ─triggers→ Pack, DeployTask
    DeployTask → CfRestart → CfBindService → CfWaitForService → CfPush
        → CfCreateService → CfTarget → CfCreateSpace → CfLogin
    Release → Pack

Collaborators (cf, dotnet, git, the release host) are passed in so a test
can swap any of them; the defaults talk to the real tools.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Optional

from .config import BuildParameters
from .dsl import TargetGraph, TargetRegistry
from .git_facts import git
from .git_facts.version import VersionInfo, current_version, parse_version
from .release.client import GitHubReleasesClient, ReleaseHost
from .release.publish import check_repository, publish_release
from .step_workflows import dotnet
from .step_workflows.deploy import Deployment
from .ui.console import get_console

CF_CONTEXT = ("cf_org", "cf_space")


def login_required(params: BuildParameters) -> bool:
    return not params.cf_skip_login


def define_targets(
    *,
    deployment: Optional[Deployment] = None,
    release_host: Callable[[str], ReleaseHost] = GitHubReleasesClient,
    version_source: Callable[[], VersionInfo] = current_version,
    is_github: Callable[[], bool] = git.is_github_repository,
    is_pushed: Callable[[], bool] = git.is_pushed_to_remote,
    repository: Callable[[], str] = git.repository_identifier,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> TargetGraph:
    deployment = deployment or Deployment()
    resolved: dict[str, VersionInfo] = {}

    def version(p: BuildParameters) -> VersionInfo:
        # computed once per graph; git is not consulted when a version is given
        if "v" not in resolved:
            resolved["v"] = parse_version(p.version) if p.version else version_source()
        return resolved["v"]

    def package_path(p: BuildParameters) -> Path:
        return p.artifacts_directory / dotnet.package_zip_name(p.package_name, version(p))

    def pack(p: BuildParameters) -> None:
        archive = dotnet.create_zip_from_directory(p.publish_directory, package_path(p))
        get_console().print_block(str(archive))

    def release(p: BuildParameters) -> None:
        check_repository(is_github(), is_pushed())
        package = package_path(p)
        publish_release(
            release_host(p.github_token),
            repository(),
            version(p).major_minor_patch,
            package,
            asset_name=package.name,
        )

    build = TargetRegistry()

    # ---------------- build ----------------

    (
        build.target("Clean")
        .before("Restore")
        .description("Deletes bin/obj folders and empties the artifacts directory")
        .executes(dotnet.clean)
    )

    restore = (
        build.target("Restore")
        .description("Restores NuGet packages")
        .executes(lambda p: dotnet.restore(p, run=run))
    )

    compile_ = (
        build.target("Compile")
        .depends_on(restore)
        .description("Compiles the solution")
        .executes(lambda p: dotnet.compile_solution(p, version(p), run=run))
    )

    publish = (
        build.target("Publish")
        .description("Publishes the application")
        .executes(lambda p: dotnet.publish(p, version(p), run=run))
    )

    pack_ = (
        build.target("Pack")
        .depends_on(publish)
        .description("Zips the published application into the artifacts directory")
        .executes(pack)
    )

    # ---------------- deploy ----------------

    cf_login = (
        build.target("CfLogin")
        .only_when(login_required)
        .requires("cf_username", "cf_password", "cf_api_endpoint")
        .unlisted()
        .executes(deployment.login)
    )

    cf_create_space = (
        build.target("CfCreateSpace")
        .depends_on(cf_login)
        .requires(*CF_CONTEXT)
        .unlisted()
        .executes(deployment.create_space)
    )

    cf_target = (
        build.target("CfTarget")
        .depends_on(cf_create_space)
        .requires(*CF_CONTEXT)
        .unlisted()
        .executes(deployment.target)
    )

    cf_create_service = (
        build.target("CfCreateService")
        .depends_on(cf_target)
        .requires(*CF_CONTEXT)
        .unlisted()
        .executes(deployment.create_service)
    )

    cf_push = (
        build.target("CfPush")
        .depends_on(cf_create_service)
        .after(pack_)
        .requires(*CF_CONTEXT)
        .unlisted()
        .executes(lambda p: deployment.push(p, package_path(p)))
    )

    cf_wait = (
        build.target("CfWaitForService")
        .depends_on(cf_push)
        .requires(*CF_CONTEXT)
        .unlisted()
        .executes(deployment.wait_for_service)
    )

    cf_bind = (
        build.target("CfBindService")
        .depends_on(cf_wait)
        .requires(*CF_CONTEXT)
        .unlisted()
        .executes(deployment.bind_service)
    )

    cf_restart = (
        build.target("CfRestart")
        .depends_on(cf_bind)
        .requires(*CF_CONTEXT)
        .unlisted()
        .executes(deployment.restart)
    )

    deploy_task = (
        build.target("DeployTask")
        .depends_on(cf_restart)
        .after(pack_)
        .requires(*CF_CONTEXT)
        .unlisted()
        .description("Deploys to Cloud Foundry without building. Meant to be used on build servers as part of stage")
    )

    (
        build.target("Deploy")
        .triggers(pack_, deploy_task)
        .description("Builds and deploys to Cloud Foundry")
    )

    # ---------------- release ----------------

    (
        build.target("Release")
        .depends_on(pack_)
        .requires("github_token")
        .description("Creates a GitHub release (or amends existing) and uploads the package")
        .executes(release)
    )

    build.default(compile_)
    return build.freeze()
