"""In-memory stand-ins for the cloud provider and the Kubernetes APIs."""
import base64
import itertools
from collections import Counter
from types import SimpleNamespace
from typing import Dict, List, Optional

from kubernetes.client.rest import ApiException

from hostedctl.modules.aws.clients import (
    Address,
    AvailabilityZone,
    CloudClient,
    IngressRule,
    Listener,
    LoadBalancer,
    RecordSet,
    SecurityGroup,
    TargetGroup,
    TargetGroupSpec,
)


class FakeCloud(CloudClient):
    """Keeps every resource in dictionaries and counts mutating calls."""

    def __init__(self):
        self.calls = Counter()
        self._ids = itertools.count(1)
        self.addresses: Dict[str, Address] = {}
        self.address_tags: Dict[str, Dict[str, str]] = {}
        self.load_balancers: Dict[str, LoadBalancer] = {}
        self.lb_tags: Dict[str, Dict[str, str]] = {}
        self.target_groups: Dict[str, TargetGroup] = {}
        self.target_group_specs: Dict[str, TargetGroupSpec] = {}
        self.targets: Dict[str, List[str]] = {}
        self.listeners: Dict[str, List[Listener]] = {}
        self.records: Dict[tuple, RecordSet] = {}
        self.buckets: Dict[str, Dict[str, str]] = {}
        self.bucket_tags: Dict[str, Dict[str, str]] = {}
        self.security_groups: Dict[str, SecurityGroup] = {}

    def _next(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    # Addresses

    def describe_address(self, name: str) -> Optional[Address]:
        for allocation_id, tags in self.address_tags.items():
            if tags.get("Name") == name and allocation_id in self.addresses:
                return self.addresses[allocation_id]
        return None

    def allocate_address(self) -> Address:
        self.calls["allocate_address"] += 1
        n = next(self._ids)
        address = Address(allocation_id=f"eipalloc-{n}", public_ip=f"198.51.100.{n}")
        self.addresses[address.allocation_id] = address
        self.address_tags[address.allocation_id] = {}
        return address

    def tag_address(self, allocation_id: str, tags: Dict[str, str]) -> None:
        self.address_tags[allocation_id].update(tags)

    def release_address(self, allocation_id: str) -> None:
        self.calls["release_address"] += 1
        del self.addresses[allocation_id]
        del self.address_tags[allocation_id]

    def add_address(self, name: str, network_interface_id: Optional[str] = None) -> Address:
        address = self.allocate_address()
        self.calls["allocate_address"] -= 1
        attached = Address(address.allocation_id, address.public_ip, network_interface_id)
        self.addresses[address.allocation_id] = attached
        self.address_tags[address.allocation_id] = {"Name": name}
        return attached

    # Load balancers

    def describe_load_balancer(self, name: str) -> Optional[LoadBalancer]:
        return self.load_balancers.get(name)

    def create_load_balancer(self, name, subnet, allocation_id, tags) -> LoadBalancer:
        self.calls["create_load_balancer"] += 1
        lb = LoadBalancer(
            arn=self._next(f"arn:lb/{name}"),
            name=name,
            dns_name=f"{name}.elb.example.com",
            vpc_id="vpc-1",
            availability_zones=(AvailabilityZone("us-east-1a", subnet),),
        )
        self.load_balancers[name] = lb
        self.lb_tags[name] = dict(tags)
        self.listeners[lb.arn] = []
        if allocation_id:
            # the address is now attached to the balancer's interface
            current = self.addresses[allocation_id]
            self.addresses[allocation_id] = Address(current.allocation_id, current.public_ip, f"eni-{name}")
        return lb

    def delete_load_balancer(self, arn: str) -> None:
        self.calls["delete_load_balancer"] += 1
        for name, lb in list(self.load_balancers.items()):
            if lb.arn == arn:
                del self.load_balancers[name]
                self.listeners.pop(arn, None)
        for allocation_id, address in list(self.addresses.items()):
            if address.network_interface_id and address.network_interface_id.startswith("eni-"):
                name = address.network_interface_id[len("eni-"):]
                if name not in self.load_balancers:
                    self.addresses[allocation_id] = Address(address.allocation_id, address.public_ip)

    # Target groups

    def describe_target_group(self, name: str) -> Optional[TargetGroup]:
        return self.target_groups.get(name)

    def create_target_group(self, spec: TargetGroupSpec) -> TargetGroup:
        self.calls["create_target_group"] += 1
        tg = TargetGroup(arn=self._next(f"arn:tg/{spec.name}"), name=spec.name, port=spec.port,
                         protocol=spec.protocol)
        self.target_groups[spec.name] = tg
        self.target_group_specs[spec.name] = spec
        self.targets[tg.arn] = []
        return tg

    def delete_target_group(self, arn: str) -> None:
        self.calls["delete_target_group"] += 1
        for name, tg in list(self.target_groups.items()):
            if tg.arn == arn:
                del self.target_groups[name]
                del self.target_group_specs[name]
                self.targets.pop(arn, None)

    def describe_targets(self, arn: str) -> List[str]:
        return list(self.targets.get(arn, []))

    def register_target(self, arn: str, target_id: str) -> None:
        self.calls["register_target"] += 1
        self.targets.setdefault(arn, []).append(target_id)

    def deregister_target(self, arn: str, target_id: str) -> None:
        self.calls["deregister_target"] += 1
        self.targets[arn].remove(target_id)

    # Listeners

    def describe_listeners(self, lb_arn: str) -> List[Listener]:
        return list(self.listeners.get(lb_arn, []))

    def create_listener(self, lb_arn: str, tg_arn: str, port: int, protocol: str) -> Listener:
        self.calls["create_listener"] += 1
        listener = Listener(arn=self._next(f"arn:listener/{port}"), port=port, target_group_arn=tg_arn)
        self.listeners.setdefault(lb_arn, []).append(listener)
        return listener

    def delete_listener(self, arn: str) -> None:
        self.calls["delete_listener"] += 1
        for lb_arn, listeners in self.listeners.items():
            self.listeners[lb_arn] = [item for item in listeners if item.arn != arn]

    # DNS

    def find_record(self, zone_id: str, name: str, record_type: str) -> Optional[RecordSet]:
        return self.records.get((zone_id, name.rstrip("."), record_type))

    def change_record(self, zone_id: str, action: str, record: RecordSet) -> None:
        self.calls[f"{action.lower()}_record"] += 1
        key = (zone_id, record.name.rstrip("."), record.type)
        if action == "UPSERT":
            self.records[key] = record
        elif action == "DELETE":
            current = self.records.get(key)
            if current != record:
                raise AssertionError(f"DELETE of {record} does not match {current}")
            del self.records[key]

    # Buckets

    def bucket_exists(self, name: str) -> bool:
        return name in self.buckets

    def create_bucket(self, name: str, acl: str) -> None:
        self.calls["create_bucket"] += 1
        self.buckets[name] = {}

    def tag_bucket(self, name: str, tags: Dict[str, str]) -> None:
        self.bucket_tags[name] = dict(tags)

    def upload_object(self, name: str, key: str, path: str, acl: str) -> None:
        self.calls["upload_object"] += 1
        self.buckets[name][key] = path

    def list_object_keys(self, name: str):
        return list(self.buckets[name])

    def delete_object(self, name: str, key: str) -> None:
        self.calls["delete_object"] += 1
        del self.buckets[name][key]

    def delete_bucket(self, name: str) -> None:
        self.calls["delete_bucket"] += 1
        if self.buckets[name]:
            raise AssertionError("bucket not empty")
        del self.buckets[name]

    # Security groups

    def describe_security_group(self, name: str) -> Optional[SecurityGroup]:
        return self.security_groups.get(name)

    def authorize_ingress(self, group_id: str, rule: IngressRule) -> None:
        self.calls["authorize_ingress"] += 1
        for group in self.security_groups.values():
            if group.group_id == group_id:
                group.rules.append(rule)


def api_exception(status: int, reason: str = "error") -> ApiException:
    return ApiException(status=status, reason=reason)


def b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def node(name: str, ready: Optional[str]):
    conditions = [] if ready is None else [SimpleNamespace(type="Ready", status=ready)]
    return SimpleNamespace(metadata=SimpleNamespace(name=name), status=SimpleNamespace(conditions=conditions))


def pod(name: str, phase: str):
    return SimpleNamespace(metadata=SimpleNamespace(name=name), status=SimpleNamespace(phase=phase))


def operator(name: str, available: Optional[str]):
    conditions = [] if available is None else [{"type": "Available", "status": available}]
    return {"metadata": {"name": name}, "status": {"conditions": conditions}}


class FakeCoreV1:
    """The CoreV1Api calls hostedctl makes, backed by dictionaries."""

    def __init__(self):
        self.namespaces = set()
        self.secrets: Dict[tuple, object] = {}
        self.services: Dict[tuple, object] = {}
        self.service_accounts: Dict[tuple, object] = {}
        self.nodes: List[object] = []
        self.pods: List[object] = []
        self._ports = itertools.count(30001)

    def read_namespace(self, name):
        if name not in self.namespaces:
            raise api_exception(404, "Not Found")
        return SimpleNamespace(metadata=SimpleNamespace(name=name))

    def create_namespace(self, body):
        name = body.metadata.name
        if name in self.namespaces:
            raise api_exception(409, "AlreadyExists")
        self.namespaces.add(name)
        self.service_accounts[(name, "default")] = SimpleNamespace(image_pull_secrets=None)
        return body

    def delete_namespace(self, name):
        if name not in self.namespaces:
            raise api_exception(404, "Not Found")
        self.namespaces.remove(name)

    def read_namespaced_secret(self, name, namespace):
        if (namespace, name) not in self.secrets:
            raise api_exception(404, "Not Found")
        return self.secrets[(namespace, name)]

    def create_namespaced_secret(self, namespace, body):
        self.secrets[(namespace, body.metadata.name)] = body
        return body

    def read_namespaced_service_account(self, name, namespace):
        return self.service_accounts[(namespace, name)]

    def replace_namespaced_service_account(self, name, namespace, body):
        self.service_accounts[(namespace, name)] = body
        return body

    def create_namespaced_service(self, namespace, body):
        port = body.spec.ports[0]
        if body.spec.type == "NodePort":
            port.node_port = next(self._ports)
        else:
            body.spec.cluster_ip = "172.30.0.10"
        self.services[(namespace, body.metadata.name)] = body
        return body

    def list_node(self):
        return SimpleNamespace(items=list(self.nodes))

    def list_namespaced_pod(self, namespace, field_selector=None):
        return SimpleNamespace(items=list(self.pods))


class FakeCustomObjects:
    """CustomObjectsApi keyed by (group, plural, namespace, name)."""

    def __init__(self):
        self.objects: Dict[tuple, dict] = {}

    def add(self, group, plural, name, obj, namespace=None):
        obj.setdefault("metadata", {})["name"] = name
        self.objects[(group, plural, namespace, name)] = obj

    def _get(self, key):
        if key not in self.objects:
            raise api_exception(404, "Not Found")
        return self.objects[key]

    def get_cluster_custom_object(self, group, version, plural, name):
        return self._get((group, plural, None, name))

    def replace_cluster_custom_object(self, group, version, plural, name, body):
        self.objects[(group, plural, None, name)] = body
        return body

    def list_cluster_custom_object(self, group, version, plural):
        return {"items": [o for (g, p, _, _), o in self.objects.items() if g == group and p == plural]}

    def get_namespaced_custom_object(self, group, version, namespace, plural, name):
        return self._get((group, plural, namespace, name))

    def list_namespaced_custom_object(self, group, version, namespace, plural):
        return {"items": [o for (g, p, ns, _), o in self.objects.items()
                          if g == group and p == plural and ns == namespace]}

    def delete_namespaced_custom_object(self, group, version, namespace, plural, name):
        self._get((group, plural, namespace, name))
        del self.objects[(group, plural, namespace, name)]
