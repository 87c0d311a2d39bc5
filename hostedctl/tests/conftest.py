import pytest
from kubernetes import client

from hostedctl.modules.aws import CloudInfra
from hostedctl.modules.aws.clients import AvailabilityZone, LoadBalancer, SecurityGroup
from hostedctl.modules.management import ManagementCluster
from hostedctl.tests.fakes import FakeCloud, FakeCoreV1, FakeCustomObjects, b64

INFRA_NAME = "abcde"
ZONE = "us-east-1a"
MACHINE_NAME = f"{INFRA_NAME}-worker-{ZONE}-x7k2p"
PULL_SECRET = '{"auths": {"quay.io": {"auth": "dXNlcjpwYXNz"}}}'


@pytest.fixture
def cloud():
    fake = FakeCloud()
    fake.load_balancers[f"{INFRA_NAME}-ext"] = LoadBalancer(
        arn="arn:lb/ext",
        name=f"{INFRA_NAME}-ext",
        dns_name="ext.elb.example.com",
        vpc_id="vpc-1",
        availability_zones=(AvailabilityZone("us-east-1b", "subnet-b"), AvailabilityZone(ZONE, "subnet-a")),
    )
    fake.security_groups[f"{INFRA_NAME}-worker-sg"] = SecurityGroup(group_id="sg-1")
    return fake


@pytest.fixture
def infra(cloud):
    return CloudInfra(cloud, INFRA_NAME, poll_interval=0, timeout=0)


@pytest.fixture
def core():
    fake = FakeCoreV1()
    fake.secrets[("openshift-config", "pull-secret")] = client.V1Secret(
        metadata=client.V1ObjectMeta(name="pull-secret"),
        data={".dockerconfigjson": b64(PULL_SECRET)},
    )
    fake.secrets[("kube-system", "aws-creds")] = client.V1Secret(
        metadata=client.V1ObjectMeta(name="aws-creds"),
        data={"aws_access_key_id": b64("AKIAEXAMPLE"), "aws_secret_access_key": b64("s3cr3t")},
    )
    return fake


@pytest.fixture
def custom():
    fake = FakeCustomObjects()
    config = "config.openshift.io"
    fake.add(config, "infrastructures", "cluster", {
        "status": {"infrastructureName": INFRA_NAME, "platformStatus": {"aws": {"region": "us-east-1"}}},
    })
    fake.add(config, "dnses", "cluster", {
        "spec": {"baseDomain": "mgmt.example.com", "publicZone": {"id": "Z123"}},
    })
    fake.add(config, "networks", "cluster", {
        "status": {"serviceNetwork": ["172.30.0.0/16"], "clusterNetwork": [{"cidr": "10.128.0.0/14"}]},
    })
    fake.add(config, "clusterversions", "version", {
        "status": {"desired": {"image": "quay.io/openshift-release-dev/ocp-release:4.3.0"}},
    })
    fake.add("machineconfiguration.openshift.io", "machineconfigs", "99-master-ssh", {
        "spec": {"config": {"passwd": {"users": [{"name": "core", "sshAuthorizedKeys": ["ssh-rsa AAAA"]}]}}},
    })
    fake.add("security.openshift.io", "securitycontextconstraints", "privileged", {
        "users": ["system:admin"],
    })
    fake.add("machine.openshift.io", "machines", MACHINE_NAME, {
        "status": {
            "providerStatus": {"instanceId": "i-0abc"},
            "addresses": [
                {"type": "InternalDNS", "address": "ip-10-0-1-5.ec2.internal"},
                {"type": "InternalIP", "address": "10.0.1.5"},
            ],
        },
    }, namespace="openshift-machine-api")
    fake.add("machine.openshift.io", "machinesets", f"{INFRA_NAME}-worker-{ZONE}", {
        "apiVersion": "machine.openshift.io/v1beta1",
        "kind": "MachineSet",
        "metadata": {"namespace": "openshift-machine-api", "uid": "1234", "resourceVersion": "99"},
        "spec": {
            "replicas": 1,
            "template": {"spec": {"providerSpec": {"value": {"publicIp": True}}}},
        },
        "status": {"replicas": 1},
    }, namespace="openshift-machine-api")
    return fake


@pytest.fixture
def management(core, custom):
    return ManagementCluster(core=core, custom=custom)
