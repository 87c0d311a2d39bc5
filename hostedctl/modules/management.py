"""
Management cluster access: discovery of the facts an install needs and the
in-cluster writes the orchestrators perform.
"""
import base64
import logging
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import ValidationError, validate
from kubernetes import client
from kubernetes.client.rest import ApiException

from ..errors import DiscoveryError, ReconcileError
from ..utils import RetryError, redact_sensitive_data, retry
from .models import CloudCredentials, MachineInfo, ManagementClusterInfo, ServicePorts

logger = logging.getLogger(__name__)

CONFIG_GROUP = "config.openshift.io"
MACHINE_GROUP = "machine.openshift.io"
MACHINE_VERSION = "v1beta1"
MACHINE_API_NAMESPACE = "openshift-machine-api"
PULL_SECRET_NAME = "pull-secret"
DOCKER_CONFIG_KEY = ".dockerconfigjson"

INFRASTRUCTURE_SCHEMA = {
    "type": "object",
    "properties": {
        "status": {
            "type": "object",
            "properties": {
                "infrastructureName": {"type": "string", "minLength": 1},
                "platformStatus": {
                    "type": "object",
                    "properties": {
                        "aws": {
                            "type": "object",
                            "properties": {"region": {"type": "string", "minLength": 1}},
                            "required": ["region"],
                        },
                    },
                    "required": ["aws"],
                },
            },
            "required": ["infrastructureName", "platformStatus"],
        },
    },
    "required": ["status"],
}

DNS_SCHEMA = {
    "type": "object",
    "properties": {
        "spec": {
            "type": "object",
            "properties": {
                "baseDomain": {"type": "string", "minLength": 1},
                "publicZone": {
                    "type": "object",
                    "properties": {"id": {"type": "string", "minLength": 1}},
                    "required": ["id"],
                },
            },
            "required": ["baseDomain", "publicZone"],
        },
    },
    "required": ["spec"],
}

NETWORK_SCHEMA = {
    "type": "object",
    "properties": {
        "status": {
            "type": "object",
            "properties": {
                "serviceNetwork": {"type": "array", "items": {"type": "string"}, "minItems": 1},
                "clusterNetwork": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {"cidr": {"type": "string"}},
                        "required": ["cidr"],
                    },
                    "minItems": 1,
                },
            },
            "required": ["serviceNetwork", "clusterNetwork"],
        },
    },
    "required": ["status"],
}

CLUSTER_VERSION_SCHEMA = {
    "type": "object",
    "properties": {
        "status": {
            "type": "object",
            "properties": {
                "desired": {
                    "type": "object",
                    "properties": {"image": {"type": "string", "minLength": 1}},
                    "required": ["image"],
                },
            },
            "required": ["desired"],
        },
    },
    "required": ["status"],
}

SSH_MACHINE_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "spec": {
            "type": "object",
            "properties": {
                "config": {
                    "type": "object",
                    "properties": {
                        "passwd": {
                            "type": "object",
                            "properties": {
                                "users": {
                                    "type": "array",
                                    "minItems": 1,
                                    "items": {
                                        "type": "object",
                                        "properties": {
                                            "sshAuthorizedKeys": {
                                                "type": "array",
                                                "items": {"type": "string"},
                                                "minItems": 1,
                                            },
                                        },
                                    },
                                },
                            },
                            "required": ["users"],
                        },
                    },
                    "required": ["passwd"],
                },
            },
            "required": ["config"],
        },
    },
    "required": ["spec"],
}


def _checked(obj: Dict[str, Any], schema: Dict[str, Any], what: str) -> Dict[str, Any]:
    try:
        validate(instance=obj, schema=schema)
    except ValidationError as e:
        raise DiscoveryError(f"unexpected {what}: {e.message}") from e
    return obj


def _decode(data: Optional[Dict[str, str]], key: str, what: str) -> str:
    if not data or key not in data:
        raise DiscoveryError(f"did not find {key} in {what}")
    return base64.b64decode(data[key]).decode("utf-8")


class _Conflict(Exception):
    pass


class ManagementCluster:
    """Reads and writes the management cluster through the Kubernetes API."""

    def __init__(self, api_client: Optional[client.ApiClient] = None, core=None, custom=None):
        self.core = core or client.CoreV1Api(api_client)
        self.custom = custom or client.CustomObjectsApi(api_client)

    # Discovery

    def _get_cluster_config(self, plural: str, name: str) -> Dict[str, Any]:
        try:
            return self.custom.get_cluster_custom_object(CONFIG_GROUP, "v1", plural, name)
        except ApiException as e:
            raise DiscoveryError(f"cannot read {plural}/{name}: {e.reason}") from e

    def infrastructure(self) -> Tuple[str, str]:
        """Infra name and region of the management cluster."""
        obj = _checked(self._get_cluster_config("infrastructures", "cluster"),
                       INFRASTRUCTURE_SCHEMA, "infrastructure resource")
        status = obj["status"]
        return status["infrastructureName"], status["platformStatus"]["aws"]["region"]

    def dns_zone(self) -> Tuple[str, str]:
        """Public zone id and parent domain (base domain minus its first label)."""
        obj = _checked(self._get_cluster_config("dnses", "cluster"), DNS_SCHEMA, "dns resource")
        spec = obj["spec"]
        parent_domain = ".".join(spec["baseDomain"].split(".")[1:])
        return spec["publicZone"]["id"], parent_domain

    def network(self) -> Tuple[str, str]:
        """Service and pod CIDRs of the management cluster."""
        obj = _checked(self._get_cluster_config("networks", "cluster"), NETWORK_SCHEMA, "network resource")
        status = obj["status"]
        return status["serviceNetwork"][0], status["clusterNetwork"][0]["cidr"]

    def release_image(self) -> str:
        obj = _checked(self._get_cluster_config("clusterversions", "version"),
                       CLUSTER_VERSION_SCHEMA, "cluster version resource")
        return obj["status"]["desired"]["image"]

    def ssh_public_key(self) -> str:
        try:
            obj = self.custom.get_cluster_custom_object(
                "machineconfiguration.openshift.io", "v1", "machineconfigs", "99-master-ssh"
            )
        except ApiException as e:
            raise DiscoveryError(f"cannot read the master SSH machine config: {e.reason}") from e
        obj = _checked(obj, SSH_MACHINE_CONFIG_SCHEMA, "SSH machine config")
        return obj["spec"]["config"]["passwd"]["users"][0]["sshAuthorizedKeys"][0]

    def _read_secret(self, namespace: str, name: str):
        try:
            return self.core.read_namespaced_secret(name, namespace)
        except ApiException as e:
            raise DiscoveryError(f"cannot read secret {namespace}/{name}: {e.reason}") from e

    def pull_secret(self) -> str:
        secret = self._read_secret("openshift-config", PULL_SECRET_NAME)
        return _decode(secret.data, DOCKER_CONFIG_KEY, "pull secret")

    def cloud_credentials(self) -> CloudCredentials:
        secret = self._read_secret("kube-system", "aws-creds")
        return CloudCredentials(
            access_key_id=_decode(secret.data, "aws_access_key_id", "cloud credentials"),
            secret_access_key=_decode(secret.data, "aws_secret_access_key", "cloud credentials"),
        )

    def machine_names(self) -> List[str]:
        try:
            machines = self.custom.list_namespaced_custom_object(
                MACHINE_GROUP, MACHINE_VERSION, MACHINE_API_NAMESPACE, "machines"
            )
        except ApiException as e:
            raise DiscoveryError(f"cannot list machines: {e.reason}") from e
        return [m["metadata"]["name"] for m in machines.get("items", [])]

    def discover(self, release_image: Optional[str] = None) -> ManagementClusterInfo:
        """Read every fact an install needs. Nothing is mutated."""
        infra_name, region = self.infrastructure()
        service_cidr, pod_cidr = self.network()
        zone_id, parent_domain = self.dns_zone()
        info = ManagementClusterInfo(
            infra_name=infra_name,
            region=region,
            service_cidr=service_cidr,
            pod_cidr=pod_cidr,
            dns_zone_id=zone_id,
            parent_domain=parent_domain,
            release_image=release_image or self.release_image(),
            ssh_public_key=self.ssh_public_key(),
            pull_secret=self.pull_secret(),
            credentials=self.cloud_credentials(),
            machine_names=self.machine_names(),
        )
        logger.debug(f"Discovered management cluster: {redact_sensitive_data(vars(info))}")
        return info

    def machine_info(self, machine_names: List[str], prefix: str) -> MachineInfo:
        """Instance id and internal IP of the first machine whose name starts with ``prefix``."""
        name = next((m for m in machine_names if m.startswith(prefix)), None)
        if name is None:
            raise DiscoveryError(f"did not find machine with prefix {prefix}")
        try:
            machine = self.custom.get_namespaced_custom_object(
                MACHINE_GROUP, MACHINE_VERSION, MACHINE_API_NAMESPACE, "machines", name
            )
        except ApiException as e:
            raise DiscoveryError(f"cannot read machine {name}: {e.reason}") from e

        status = machine.get("status", {})
        instance_id = status.get("providerStatus", {}).get("instanceId")
        if not instance_id:
            raise DiscoveryError(f"did not find instanceId on machine {name}")
        internal_ip = next(
            (a.get("address") for a in status.get("addresses", []) if a.get("type") == "InternalIP"),
            None,
        )
        if not internal_ip:
            raise DiscoveryError(f"could not find internal IP of machine {name}")
        return MachineInfo(name=name, instance_id=instance_id, internal_ip=internal_ip)

    # Namespace

    def namespace_exists(self, namespace: str) -> bool:
        try:
            self.core.read_namespace(namespace)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise DiscoveryError(f"cannot read namespace {namespace}: {e.reason}") from e

    def create_namespace(self, namespace: str) -> None:
        self.core.create_namespace(client.V1Namespace(metadata=client.V1ObjectMeta(name=namespace)))

    def delete_namespace(self, namespace: str) -> None:
        try:
            self.core.delete_namespace(namespace)
        except ApiException as e:
            if e.status != 404:
                raise ReconcileError(f"cannot delete namespace {namespace}: {e.reason}") from e
            logger.debug(f"Namespace {namespace} not found, nothing to remove")

    # Security and pull secret

    def ensure_privileged_scc(self, namespace: str) -> None:
        """Grant the namespace's default service account the privileged SCC."""
        scc = self.custom.get_cluster_custom_object(
            "security.openshift.io", "v1", "securitycontextconstraints", "privileged"
        )
        account = f"system:serviceaccount:{namespace}:default"
        users = scc.get("users") or []
        if account in users:
            return
        scc["users"] = sorted(set(users) | {account})
        self.custom.replace_cluster_custom_object(
            "security.openshift.io", "v1", "securitycontextconstraints", "privileged", scc
        )

    def create_pull_secret(self, namespace: str, data: str) -> None:
        secret = client.V1Secret(
            metadata=client.V1ObjectMeta(name=PULL_SECRET_NAME),
            type="kubernetes.io/dockerconfigjson",
            data={DOCKER_CONFIG_KEY: base64.b64encode(data.encode("utf-8")).decode("ascii")},
        )
        self.core.create_namespaced_secret(namespace, secret)
        try:
            self._attach_pull_secret(namespace)
        except RetryError as e:
            raise ReconcileError(f"cannot attach pull secret to default service account: {e}") from e

    @retry(attempts=5, delay=1, exceptions=(_Conflict,))
    def _attach_pull_secret(self, namespace: str) -> None:
        sa = self.core.read_namespaced_service_account("default", namespace)
        sa.image_pull_secrets = (sa.image_pull_secrets or []) + [
            client.V1LocalObjectReference(name=PULL_SECRET_NAME)
        ]
        try:
            self.core.replace_namespaced_service_account("default", namespace, sa)
        except ApiException as e:
            if e.status == 409:
                raise _Conflict(e.reason) from e
            raise

    # Placeholder services

    def _create_service(self, namespace: str, name: str, service_type: str, port: int,
                        target_port: int, protocol: str = "TCP", port_name: Optional[str] = None):
        service = client.V1Service(
            metadata=client.V1ObjectMeta(name=name),
            spec=client.V1ServiceSpec(
                selector={"app": name},
                type=service_type,
                ports=[client.V1ServicePort(
                    name=port_name, port=port, protocol=protocol, target_port=target_port,
                )],
            ),
        )
        return self.core.create_namespaced_service(namespace, service)

    def create_placeholder_services(self, namespace: str) -> ServicePorts:
        """Reserve the node ports and cluster IP the rendered control plane is bound to.

        The services are created empty; the rendered manifests of the same
        name are excluded from apply so these allocations stay stable.
        """
        api = self._create_service(namespace, "kube-apiserver", "NodePort", 6443, 6443)
        vpn = self._create_service(namespace, "openvpn-server", "NodePort", 1194, 1194, protocol="UDP")
        openshift_api = self._create_service(
            namespace, "openshift-apiserver", "ClusterIP", 443, 8443, port_name="https"
        )
        oauth = self._create_service(namespace, "oauth-openshift", "NodePort", 443, 6443)
        return ServicePorts(
            api_node_port=api.spec.ports[0].node_port,
            vpn_node_port=vpn.spec.ports[0].node_port,
            oauth_node_port=oauth.spec.ports[0].node_port,
            openshift_api_cluster_ip=openshift_api.spec.cluster_ip,
        )

    # Machine sets

    def get_machineset(self, name: str) -> Dict[str, Any]:
        try:
            return self.custom.get_namespaced_custom_object(
                MACHINE_GROUP, MACHINE_VERSION, MACHINE_API_NAMESPACE, "machinesets", name
            )
        except ApiException as e:
            raise DiscoveryError(f"cannot read machine set {name}: {e.reason}") from e

    def delete_machineset(self, name: str) -> None:
        try:
            self.custom.delete_namespaced_custom_object(
                MACHINE_GROUP, MACHINE_VERSION, MACHINE_API_NAMESPACE, "machinesets", name
            )
        except ApiException as e:
            if e.status != 404:
                raise ReconcileError(f"cannot delete machine set {name}: {e.reason}") from e
            logger.debug(f"Machine set {name} not found, nothing to remove")
