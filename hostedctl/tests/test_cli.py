import pytest
from typer.testing import CliRunner

from hostedctl import cli
from hostedctl.errors import CloudError, PreconditionError

runner = CliRunner()


class RecordingOrchestrator:
    runs = []
    error = None

    def __init__(self, management, **kwargs):
        self.management = management

    def run(self, name, **kwargs):
        RecordingOrchestrator.runs.append((name, kwargs))
        if RecordingOrchestrator.error:
            raise RecordingOrchestrator.error


@pytest.fixture(autouse=True)
def fake_cluster(monkeypatch):
    RecordingOrchestrator.runs = []
    RecordingOrchestrator.error = None
    monkeypatch.setattr(cli, "load_kubeconfig", lambda path=None: object())
    monkeypatch.setattr(cli, "ManagementCluster", lambda api_client: api_client)
    monkeypatch.setattr(cli, "InstallOrchestrator", RecordingOrchestrator)
    monkeypatch.setattr(cli, "UninstallOrchestrator", RecordingOrchestrator)


def test_help():
    result = runner.invoke(cli.app, ["--help"])
    assert result.exit_code == 0
    assert "install" in result.output
    assert "uninstall" in result.output


def test_install_help_lists_options():
    result = runner.invoke(cli.app, ["install", "--help"])
    assert result.exit_code == 0
    assert "--release-image" in result.output
    assert "--dh-params" in result.output
    assert "--wait-for-cluster-ready" in result.output


def test_install_defaults():
    result = runner.invoke(cli.app, ["install", "demo"])
    assert result.exit_code == 0
    assert RecordingOrchestrator.runs == [
        ("demo", {"release_image": None, "dh_params_file": None, "wait_for_ready": True}),
    ]


def test_install_options():
    result = runner.invoke(cli.app, [
        "install", "demo", "--release-image", "quay.io/release:4.3",
        "--dh-params", "/tmp/dh.pem", "--wait-for-cluster-ready=false",
    ])
    assert result.exit_code == 0
    assert RecordingOrchestrator.runs == [
        ("demo", {"release_image": "quay.io/release:4.3", "dh_params_file": "/tmp/dh.pem", "wait_for_ready": False}),
    ]


def test_install_requires_name():
    result = runner.invoke(cli.app, ["install"])
    assert result.exit_code == 2
    assert RecordingOrchestrator.runs == []


def test_install_rejects_empty_name():
    result = runner.invoke(cli.app, ["install", ""])
    assert result.exit_code == 2
    assert RecordingOrchestrator.runs == []


def test_install_failure_exits_with_one():
    RecordingOrchestrator.error = PreconditionError("target namespace demo already exists")
    result = runner.invoke(cli.app, ["install", "demo"])
    assert result.exit_code == 1


def test_uninstall():
    result = runner.invoke(cli.app, ["--debug", "uninstall", "demo"])
    assert result.exit_code == 0
    assert RecordingOrchestrator.runs == [("demo", {})]


def test_uninstall_failure_exits_with_one():
    RecordingOrchestrator.error = CloudError("DeleteLoadBalancer", "AccessDenied", "not allowed")
    result = runner.invoke(cli.app, ["uninstall", "demo"])
    assert result.exit_code == 1


@pytest.mark.parametrize("value,expected", [("true", True), ("false", False), ("False", False), ("1", True)])
def test_install_wait_for_cluster_ready_takes_a_value(value, expected):
    result = runner.invoke(cli.app, ["install", "demo", f"--wait-for-cluster-ready={value}"])
    assert result.exit_code == 0
    assert RecordingOrchestrator.runs[0][1]["wait_for_ready"] is expected


def test_install_wait_for_cluster_ready_separate_value():
    result = runner.invoke(cli.app, ["install", "demo", "--wait-for-cluster-ready", "false"])
    assert result.exit_code == 0
    assert RecordingOrchestrator.runs[0][1]["wait_for_ready"] is False


def test_install_wait_for_cluster_ready_rejects_other_values():
    result = runner.invoke(cli.app, ["install", "demo", "--wait-for-cluster-ready=maybe"])
    assert result.exit_code == 2
    assert RecordingOrchestrator.runs == []
