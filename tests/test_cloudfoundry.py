"""Tests for the cf CLI wrapper."""

import pytest

from targetflow.cloudfoundry import CloudFoundryCli
from targetflow.errors import ExternalCallError, ServiceReadyTimeout
from targetflow.ui.console import Console

SERVICE_OUTPUT = """\
Showing info of service eureka in org acme / space dev as me...

name:            eureka
service:         p-service-registry
plan:            standard

Showing status of last operation from service eureka...

status:    {status}
message:
started:   2019-05-01T10:00:00Z
"""


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def clock(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def service_reporting(*statuses):
    """cf handler answering `cf service` with each status in turn (last one repeats)."""
    remaining = list(statuses)

    def handler(cmd):
        if cmd[1] == "service":
            status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            return 0, SERVICE_OUTPUT.format(status=status), ""
        return None

    return handler


class TestCommands:
    def test_login_masks_password_in_output(self, fake_run, capsys):
        run = fake_run()
        CloudFoundryCli(run=run).login("https://api.example.com", "me", "s3cret", org="acme", space="dev")

        assert run.calls == [
            ["cf", "login", "-a", "https://api.example.com", "-u", "me", "-p", "s3cret", "-o", "acme", "-s", "dev"]
        ]
        out = capsys.readouterr().out
        assert "s3cret" not in out
        assert "-p ****" in out

    def test_push_uses_random_route(self, fake_run, capsys):
        run = fake_run()
        CloudFoundryCli(run=run).push("ers1", "artifacts/articulate-1.2.3.zip")

        assert run.calls == [["cf", "push", "ers1", "-p", "artifacts/articulate-1.2.3.zip", "--random-route"]]
        # push paths are not secrets
        assert "articulate-1.2.3.zip" in capsys.readouterr().out

    def test_space_target_service_bind_restart(self, fake_run):
        run = fake_run()
        cf = CloudFoundryCli(run=run)
        cf.create_space("dev", "acme")
        cf.target("acme", "dev")
        cf.create_service("p-service-registry", "standard", "eureka")
        cf.bind_service("ers1", "eureka")
        cf.restart("ers1")

        assert run.calls == [
            ["cf", "create-space", "dev", "-o", "acme"],
            ["cf", "target", "-o", "acme", "-s", "dev"],
            ["cf", "create-service", "p-service-registry", "standard", "eureka"],
            ["cf", "bind-service", "ers1", "eureka"],
            ["cf", "restart", "ers1"],
        ]

    def test_non_zero_exit(self, fake_run):
        run = fake_run(lambda cmd: (1, "", "Getting apps...\nFAILED\nApp ers9 not found"))
        with pytest.raises(ExternalCallError) as exc:
            CloudFoundryCli(run=run).restart("ers9")

        assert exc.value.exit_code == 1
        assert exc.value.command == "cf restart ers9"
        assert str(exc.value).endswith("App ers9 not found")

    def test_failure_output_keeps_cf_message(self, fake_run, capsys):
        run = fake_run(lambda cmd: (1, "", "Getting apps...\nFAILED\nApp ers9 not found"))
        with pytest.raises(ExternalCallError) as exc:
            CloudFoundryCli(run=run).restart("ers9")
        capsys.readouterr()

        Console().print_failure("CfRestart", str(exc.value))
        out = capsys.readouterr().out
        assert "Error: command failed (exit=1): cf restart ers9" in out
        assert "  App ers9 not found" in out

    def test_missing_binary(self):
        def run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        with pytest.raises(ExternalCallError) as exc:
            CloudFoundryCli(run=run).target("acme", "dev")
        assert exc.value.exit_code == 127


class TestServiceReadiness:
    def test_status_is_parsed(self, fake_run):
        cf = CloudFoundryCli(run=fake_run(service_reporting("create in progress")))
        assert cf.service_status("eureka") == "create in progress"

    def test_polls_until_succeeded(self, fake_run):
        clock = FakeClock()
        run = fake_run(service_reporting("create in progress", "create in progress", "create succeeded"))
        cf = CloudFoundryCli(run=run, sleep=clock.sleep, clock=clock.clock)

        assert cf.ensure_service_ready("eureka", timeout=60, interval=5) == "create succeeded"
        assert clock.sleeps == [5, 5]
        assert len(run.calls) == 3

    def test_times_out(self, fake_run):
        clock = FakeClock()
        cf = CloudFoundryCli(
            run=fake_run(service_reporting("create in progress")),
            sleep=clock.sleep,
            clock=clock.clock,
        )
        with pytest.raises(ServiceReadyTimeout) as exc:
            cf.ensure_service_ready("eureka", timeout=10, interval=5)

        assert exc.value.last_status == "create in progress"
        assert clock.now == 10

    def test_failed_operation(self, fake_run):
        clock = FakeClock()
        cf = CloudFoundryCli(
            run=fake_run(service_reporting("create failed")),
            sleep=clock.sleep,
            clock=clock.clock,
        )
        with pytest.raises(ExternalCallError, match="create failed"):
            cf.ensure_service_ready("eureka", timeout=10, interval=5)
        assert clock.sleeps == []

    def test_capitalised_status_label(self, fake_run):
        def handler(cmd):
            return 0, "name:      eureka\nStatus:    create succeeded\n", ""

        cf = CloudFoundryCli(run=fake_run(handler))
        assert cf.service_status("eureka") == "create succeeded"
        assert cf.ensure_service_ready("eureka", timeout=10, interval=5) == "create succeeded"
