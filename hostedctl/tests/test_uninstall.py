import pytest

from hostedctl.modules.uninstall import UninstallOrchestrator
from hostedctl.tests.conftest import INFRA_NAME
from hostedctl.tests.test_install import FakeApplier, FakeIgnition, FakePKI, FakeRenderer
from hostedctl.modules.collaborators import Collaborators
from hostedctl.modules.install import InstallOrchestrator


@pytest.fixture
def installed(management, infra, cloud, tmp_path):
    InstallOrchestrator(
        management,
        cloud_factory=lambda info: infra,
        collaborators=Collaborators(pki=FakePKI(), ignition=FakeIgnition(), renderer=FakeRenderer()),
        applier_factory=lambda namespace: FakeApplier(),
        working_dir=str(tmp_path),
    ).run("demo", wait_for_ready=False)
    return cloud


def assert_only_management_resources_left(cloud, core):
    assert set(cloud.load_balancers) == {f"{INFRA_NAME}-ext"}
    assert cloud.target_groups == {}
    assert cloud.addresses == {}
    assert cloud.records == {}
    assert cloud.buckets == {}
    assert "demo" not in core.namespaces


def test_uninstall_removes_everything(installed, management, infra, core):
    UninstallOrchestrator(management, cloud_factory=lambda info: infra).run("demo")
    assert_only_management_resources_left(installed, core)
    # node port rules stay in place
    assert len(installed.security_groups[f"{INFRA_NAME}-worker-sg"].rules) == 2


def test_uninstall_with_api_load_balancer_already_gone(installed, management, infra, core):
    installed.delete_load_balancer(installed.load_balancers["abcde-demo-api"].arn)
    UninstallOrchestrator(management, cloud_factory=lambda info: infra).run("demo")
    assert_only_management_resources_left(installed, core)


def test_uninstall_is_repeatable(installed, management, infra, core):
    uninstall = UninstallOrchestrator(management, cloud_factory=lambda info: infra)
    uninstall.run("demo")
    deletes = dict(installed.calls)
    uninstall.run("demo")
    assert dict(installed.calls) == deletes


def test_uninstall_removes_worker_machineset(installed, management, infra, custom):
    custom.add("machine.openshift.io", "machinesets", "abcde-demo-worker", {}, namespace="openshift-machine-api")
    UninstallOrchestrator(management, cloud_factory=lambda info: infra).run("demo")
    assert ("machine.openshift.io", "machinesets", "openshift-machine-api", "abcde-demo-worker") not in custom.objects


def test_uninstall_never_installed(management, infra, cloud, core):
    UninstallOrchestrator(management, cloud_factory=lambda info: infra).run("demo")
    assert sum(cloud.calls.values()) == 0
