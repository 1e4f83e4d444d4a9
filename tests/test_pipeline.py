"""Tests for the bundled build, deploy and release targets."""

import pytest

from targetflow.config import BuildParameters
from targetflow.dag import resolve_plan
from targetflow.git_facts.version import VersionInfo
from targetflow.model import TargetStatus
from targetflow.pipeline import define_targets
from targetflow.runner import run_targets
from targetflow.step_workflows.deploy import Deployment

from test_deploy import FakeCf
from test_release import FakeHost

DEPLOY_CHAIN = [
    "CfLogin",
    "CfCreateSpace",
    "CfTarget",
    "CfCreateService",
    "CfPush",
    "CfWaitForService",
    "CfBindService",
    "CfRestart",
    "DeployTask",
]


class Harness:
    """define_targets() with every external collaborator faked."""

    def __init__(self, fake_run, is_github=True, is_pushed=True, fail_push=()):
        self.cf = FakeCf(fail_push=fail_push)
        self.host = FakeHost()
        self.run = fake_run()
        self.versions_computed = 0
        self.tokens = []

        def version_source():
            self.versions_computed += 1
            return VersionInfo(1, 2, 3)

        def release_host(token):
            self.tokens.append(token)
            return self.host

        self.graph = define_targets(
            deployment=Deployment(self.cf),
            release_host=release_host,
            version_source=version_source,
            is_github=lambda: is_github,
            is_pushed=lambda: is_pushed,
            repository=lambda: "acme/articulate",
            run=self.run,
        )


@pytest.fixture
def workspace(tmp_path):
    publish = tmp_path / "src" / "bin" / "Debug" / "netcoreapp2.2" / "publish"
    publish.mkdir(parents=True)
    (publish / "Articulate.dll").write_bytes(b"dll")
    return tmp_path


def params_for(root, **overrides):
    values = dict(
        root_dir=root,
        cf_username="me",
        cf_password="pw",
        cf_api_endpoint="https://api.sys.example.com",
        cf_org="acme",
        cf_space="dev",
    )
    values.update(overrides)
    return BuildParameters(**values)


class TestGraph:
    def test_default_and_listed_targets(self, fake_run):
        g = Harness(fake_run).graph
        assert g.default == "Compile"
        assert [t.name for t in g.listed()] == ["Clean", "Restore", "Compile", "Publish", "Pack", "Deploy", "Release"]

    def test_compile_plan(self, fake_run):
        g = Harness(fake_run).graph
        assert resolve_plan(g, "Compile") == ["Restore", "Compile"]
        assert resolve_plan(g, ["Compile", "Clean"]) == ["Clean", "Restore", "Compile"]

    def test_deploy_task_plan(self, fake_run):
        assert resolve_plan(Harness(fake_run).graph, "DeployTask") == DEPLOY_CHAIN

    def test_release_plan(self, fake_run):
        assert resolve_plan(Harness(fake_run).graph, "Release") == ["Publish", "Pack", "Release"]


class TestDeploy:
    def test_full_deploy(self, fake_run, workspace):
        h = Harness(fake_run)
        report = run_targets(h.graph, "Deploy", params_for(workspace))

        assert report.ok, report.results
        assert report.plan == ["Deploy", "Publish", "Pack", *DEPLOY_CHAIN]
        assert all(r.status is TargetStatus.SUCCEEDED for r in report.results.values())

        archive = workspace / "artifacts" / "articulate-1.2.3.zip"
        assert archive.is_file()
        assert [c[0] for c in h.cf.calls[:4]] == ["login", "create-space", "target", "create-service"]
        assert [(c[1], c[2]) for c in h.cf.named("push")] == [
            ("ers1", str(archive)),
            ("ers2", str(archive)),
            ("ers3", str(archive)),
        ]
        assert len(h.cf.named("bind-service")) == 3
        assert len(h.cf.named("restart")) == 3
        assert h.versions_computed == 1

    def test_skip_login(self, fake_run, workspace):
        h = Harness(fake_run)
        params = params_for(workspace, cf_skip_login=True, cf_username=None, cf_password=None)
        report = run_targets(h.graph, "DeployTask", params)

        assert report.status_of("CfLogin") is TargetStatus.SKIPPED
        assert report.ok
        assert h.cf.named("login") == []

    def test_missing_org_and_space(self, fake_run, workspace):
        h = Harness(fake_run)
        params = params_for(workspace, cf_skip_login=True, cf_org=None, cf_space=None)
        report = run_targets(h.graph, "DeployTask", params)

        assert report.status_of("CfCreateSpace") is TargetStatus.FAILED
        assert report.results["CfCreateSpace"].reason == (
            "missing required parameter(s) for target 'CfCreateSpace': cf_org, cf_space"
        )
        assert all(report.status_of(n) is TargetStatus.NOT_RUN for n in DEPLOY_CHAIN[2:])
        assert h.cf.calls == []

    def test_explicit_version_skips_git(self, fake_run, workspace):
        h = Harness(fake_run)
        report = run_targets(h.graph, "Pack", params_for(workspace, version="2.0.0"))

        assert report.ok
        assert (workspace / "artifacts" / "articulate-2.0.0.zip").is_file()
        assert h.versions_computed == 0

    def test_failed_push_shows_failing_app(self, fake_run, workspace, capsys):
        h = Harness(fake_run, fail_push={"ers2"})
        report = run_targets(h.graph, "DeployTask", params_for(workspace, version="1.2.3"))

        assert report.status_of("CfPush") is TargetStatus.FAILED
        out = capsys.readouterr().out
        assert "TARGET FAILED: CfPush" in out
        assert "Error: cf push: 1 of 3 item(s) failed" in out
        assert "ers2: push ers2 failed" in out


class TestRelease:
    def test_release_uploads_package(self, fake_run, workspace):
        h = Harness(fake_run)
        report = run_targets(h.graph, "Release", params_for(workspace, github_token="tok"))

        assert report.ok, report.results
        assert h.tokens == ["tok"]
        (upload,) = h.host.named("upload")
        assert upload[1:3] == ("v1.2.3", "articulate-1.2.3.zip")

    def test_release_needs_token(self, fake_run, workspace):
        h = Harness(fake_run)
        report = run_targets(h.graph, "Release", params_for(workspace))

        assert report.status_of("Pack") is TargetStatus.SUCCEEDED
        assert report.status_of("Release") is TargetStatus.FAILED
        assert "github_token" in report.results["Release"].reason
        assert h.host.calls == []

    def test_release_refuses_unpushed_checkout(self, fake_run, workspace):
        h = Harness(fake_run, is_pushed=False)
        report = run_targets(h.graph, "Release", params_for(workspace, github_token="tok"))

        assert report.status_of("Release") is TargetStatus.FAILED
        assert "not been pushed" in report.results["Release"].reason
        assert h.host.calls == []
