"""Cloud client capability interfaces.

Each resource kind gets a small abstract client. Reconcilers only talk to
these interfaces, so the orchestrators run unchanged against the boto3
implementation or an in-memory fake. Lookups return ``None`` when the
resource does not exist; any other provider failure raises ``CloudError``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

OWNED = "owned"


def owned_tag(infra_name: str) -> Tuple[str, str]:
    """Ownership tag marking a resource as belonging to ``infra_name``."""
    return f"kubernetes.io/cluster/{infra_name}", OWNED


@dataclass(frozen=True)
class Address:
    allocation_id: str
    public_ip: str
    network_interface_id: Optional[str] = None


@dataclass(frozen=True)
class AvailabilityZone:
    zone: str
    subnet: str


@dataclass(frozen=True)
class LoadBalancer:
    arn: str
    name: str
    dns_name: str
    vpc_id: str = ""
    availability_zones: Tuple[AvailabilityZone, ...] = ()


@dataclass(frozen=True)
class TargetGroup:
    arn: str
    name: str
    port: int
    protocol: str = "TCP"


@dataclass(frozen=True)
class TargetGroupSpec:
    """Creation parameters for a target group."""
    name: str
    vpc: str
    port: int
    protocol: str = "TCP"
    target_type: str = "ip"
    health_check_port: Optional[int] = None
    health_check_protocol: str = "TCP"
    health_check_interval: int = 10
    health_check_timeout: int = 10
    healthy_threshold: int = 2
    unhealthy_threshold: int = 2


@dataclass(frozen=True)
class Listener:
    arn: str
    port: int
    target_group_arn: Optional[str] = None


@dataclass(frozen=True)
class RecordSet:
    name: str
    type: str
    ttl: int
    values: Tuple[str, ...]


@dataclass(frozen=True)
class IngressRule:
    protocol: str
    from_port: int
    to_port: int
    cidrs: Tuple[str, ...] = ()


@dataclass
class SecurityGroup:
    group_id: str
    rules: List[IngressRule] = field(default_factory=list)


class AddressClient(ABC):
    @abstractmethod
    def describe_address(self, name: str) -> Optional[Address]:
        """Address tagged ``Name=name``, if any."""

    @abstractmethod
    def allocate_address(self) -> Address: ...

    @abstractmethod
    def tag_address(self, allocation_id: str, tags: Dict[str, str]) -> None: ...

    @abstractmethod
    def release_address(self, allocation_id: str) -> None: ...


class LoadBalancerClient(ABC):
    @abstractmethod
    def describe_load_balancer(self, name: str) -> Optional[LoadBalancer]: ...

    @abstractmethod
    def create_load_balancer(
        self,
        name: str,
        subnet: str,
        allocation_id: Optional[str],
        tags: Dict[str, str],
    ) -> LoadBalancer:
        """Create an internet-facing network load balancer.

        With ``allocation_id`` the subnet is bound through a subnet mapping
        so the balancer gets that elastic IP.
        """

    @abstractmethod
    def delete_load_balancer(self, arn: str) -> None: ...


class TargetGroupClient(ABC):
    @abstractmethod
    def describe_target_group(self, name: str) -> Optional[TargetGroup]: ...

    @abstractmethod
    def create_target_group(self, spec: TargetGroupSpec) -> TargetGroup: ...

    @abstractmethod
    def delete_target_group(self, arn: str) -> None: ...

    @abstractmethod
    def describe_targets(self, arn: str) -> List[str]:
        """IDs of the targets registered in the group."""

    @abstractmethod
    def register_target(self, arn: str, target_id: str) -> None: ...

    @abstractmethod
    def deregister_target(self, arn: str, target_id: str) -> None: ...


class ListenerClient(ABC):
    @abstractmethod
    def describe_listeners(self, lb_arn: str) -> List[Listener]: ...

    @abstractmethod
    def create_listener(self, lb_arn: str, tg_arn: str, port: int, protocol: str) -> Listener: ...

    @abstractmethod
    def delete_listener(self, arn: str) -> None: ...


class DNSClient(ABC):
    @abstractmethod
    def find_record(self, zone_id: str, name: str, record_type: str) -> Optional[RecordSet]:
        """Current record set for ``name``; names compare without the trailing dot."""

    @abstractmethod
    def change_record(self, zone_id: str, action: str, record: RecordSet) -> None: ...


class BucketClient(ABC):
    @abstractmethod
    def bucket_exists(self, name: str) -> bool: ...

    @abstractmethod
    def create_bucket(self, name: str, acl: str) -> None: ...

    @abstractmethod
    def tag_bucket(self, name: str, tags: Dict[str, str]) -> None: ...

    @abstractmethod
    def upload_object(self, name: str, key: str, path: str, acl: str) -> None: ...

    @abstractmethod
    def list_object_keys(self, name: str) -> Iterable[str]:
        """All object keys, following pagination."""

    @abstractmethod
    def delete_object(self, name: str, key: str) -> None: ...

    @abstractmethod
    def delete_bucket(self, name: str) -> None: ...


class SecurityGroupClient(ABC):
    @abstractmethod
    def describe_security_group(self, name: str) -> Optional[SecurityGroup]:
        """Security group tagged ``Name=name``, if any."""

    @abstractmethod
    def authorize_ingress(self, group_id: str, rule: IngressRule) -> None: ...


class CloudClient(
    AddressClient,
    LoadBalancerClient,
    TargetGroupClient,
    ListenerClient,
    DNSClient,
    BucketClient,
    SecurityGroupClient,
    ABC,
):
    """Every capability one cloud provider implementation offers."""
