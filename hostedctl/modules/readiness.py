"""
Waits that confirm a freshly installed hosted cluster came up.

A wait ends early with ``ReadinessError`` only on an explicit negative
signal: a node reporting Ready=False, an operator reporting
Available=False, or an unexpected bootstrap pod. Absence of an object,
an unreachable endpoint or an Unknown condition keeps the wait going until
its timeout.
"""
import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

import requests
from kubernetes import client
from kubernetes.client.rest import ApiException

from ..errors import ReadinessError
from ..utils import wait_until
from ..utils.kube import client_from_kubeconfig_file

logger = logging.getLogger(__name__)

POLL_INTERVAL = 10
API_ENDPOINT_TIMEOUT = 10 * 60
BOOTSTRAP_POD_TIMEOUT = 5 * 60
NODES_READY_TIMEOUT = 10 * 60
CLUSTER_OPERATORS_TIMEOUT = 15 * 60
HTTP_REQUEST_TIMEOUT = 3

BOOTSTRAP_POD_NAME = "manifests-bootstrapper"


def _condition_status(conditions: Optional[Iterable[Any]], condition_type: str) -> Optional[str]:
    """Status of the first condition of ``condition_type``; works for models and dicts."""
    for cond in conditions or []:
        if isinstance(cond, dict):
            ctype, status = cond.get("type"), cond.get("status")
        else:
            ctype, status = cond.type, cond.status
        if ctype == condition_type:
            return status
    return None


class ReadinessWaiter:
    """Readiness checks against the management and the hosted cluster.

    Args:
        management_core: CoreV1Api of the management cluster, where the
            bootstrap pod runs
        hosted_core: CoreV1Api of the hosted cluster
        hosted_custom: CustomObjectsApi of the hosted cluster
        interval: Seconds between polls
        http_get: Replacement for ``requests.get`` in tests
    """

    def __init__(
        self,
        management_core=None,
        hosted_core=None,
        hosted_custom=None,
        interval: float = POLL_INTERVAL,
        api_endpoint_timeout: float = API_ENDPOINT_TIMEOUT,
        bootstrap_pod_timeout: float = BOOTSTRAP_POD_TIMEOUT,
        nodes_ready_timeout: float = NODES_READY_TIMEOUT,
        cluster_operators_timeout: float = CLUSTER_OPERATORS_TIMEOUT,
        http_get: Callable[..., requests.Response] = requests.get,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.management_core = management_core
        self.hosted_core = hosted_core
        self.hosted_custom = hosted_custom
        self.interval = interval
        self.api_endpoint_timeout = api_endpoint_timeout
        self.bootstrap_pod_timeout = bootstrap_pod_timeout
        self.nodes_ready_timeout = nodes_ready_timeout
        self.cluster_operators_timeout = cluster_operators_timeout
        self.http_get = http_get
        self.sleep = sleep
        self.clock = clock

    @classmethod
    def from_kubeconfig(cls, management_api: client.ApiClient, hosted_kubeconfig: str, **kwargs) -> "ReadinessWaiter":
        hosted_api = client_from_kubeconfig_file(hosted_kubeconfig)
        return cls(
            management_core=client.CoreV1Api(management_api),
            hosted_core=client.CoreV1Api(hosted_api),
            hosted_custom=client.CustomObjectsApi(hosted_api),
            **kwargs,
        )

    def _wait(self, predicate: Callable[[], bool], timeout: float, description: str) -> None:
        wait_until(
            predicate,
            interval=self.interval,
            timeout=timeout,
            description=description,
            sleep=self.sleep,
            clock=self.clock,
        )

    def wait_for_api_endpoint(self, url: str, ca_file: str) -> None:
        """Poll ``url`` until it answers 200, trusting only ``ca_file``."""
        def healthy() -> bool:
            try:
                response = self.http_get(url, verify=ca_file, timeout=HTTP_REQUEST_TIMEOUT)
            except requests.RequestException as e:
                logger.debug(f"API endpoint not reachable yet: {e}")
                return False
            return response.status_code == 200

        self._wait(healthy, self.api_endpoint_timeout, f"API endpoint {url}")

    def wait_for_bootstrap_pod(self, namespace: str) -> None:
        def completed() -> bool:
            try:
                pods = self.management_core.list_namespaced_pod(
                    namespace, field_selector=f"metadata.name={BOOTSTRAP_POD_NAME}"
                )
            except ApiException as e:
                raise ReadinessError(f"an error occurred listing pods: {e.reason}") from e
            if not pods.items:
                return False
            pod = pods.items[0]
            if pod.metadata.name != BOOTSTRAP_POD_NAME:
                raise ReadinessError(f"unexpected pod name: {pod.metadata.name}")
            return pod.status.phase == "Succeeded"

        self._wait(completed, self.bootstrap_pod_timeout, f"pod {namespace}/{BOOTSTRAP_POD_NAME} to complete")

    def wait_for_nodes_ready(self, expected: int) -> None:
        def all_ready() -> bool:
            try:
                nodes = self.hosted_core.list_node().items
            except ApiException as e:
                raise ReadinessError(f"an error occurred listing nodes: {e.reason}") from e
            if len(nodes) < expected:
                return False
            for node in nodes:
                status = _condition_status(node.status.conditions, "Ready")
                if status == "False":
                    raise ReadinessError(f"node {node.metadata.name} reports Ready=False")
                if status != "True":
                    return False
            return True

        self._wait(all_ready, self.nodes_ready_timeout, f"{expected} nodes to be ready")

    def wait_for_cluster_operators(self) -> None:
        def all_available() -> bool:
            try:
                operators: Dict[str, Any] = self.hosted_custom.list_cluster_custom_object(
                    "config.openshift.io", "v1", "clusteroperators"
                )
            except ApiException as e:
                raise ReadinessError(f"an error occurred listing cluster operators: {e.reason}") from e
            items = operators.get("items", [])
            if not items:
                return False
            for operator in items:
                status = _condition_status(operator.get("status", {}).get("conditions"), "Available")
                if status == "False":
                    name = operator.get("metadata", {}).get("name")
                    raise ReadinessError(f"cluster operator {name} reports Available=False")
                if status != "True":
                    return False
            return True

        self._wait(all_available, self.cluster_operators_timeout, "cluster operators to be available")

    def wait_for_cluster(self, api_url: str, ca_file: str, namespace: str, expected_nodes: int) -> None:
        logger.info("⏳ Waiting for API endpoint...")
        self.wait_for_api_endpoint(api_url, ca_file)
        logger.info("⏳ Waiting for manifests bootstrapper to complete...")
        self.wait_for_bootstrap_pod(namespace)
        logger.info(f"⏳ Waiting for {expected_nodes} nodes to be ready...")
        self.wait_for_nodes_ready(expected_nodes)
        logger.info("⏳ Waiting for cluster operators to be available...")
        self.wait_for_cluster_operators()
        logger.info("✅ Cluster is ready")
