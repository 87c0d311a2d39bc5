"""Network load balancer, target group and listener reconcilers."""
import logging
from typing import Iterable, Optional

from ...errors import DiscoveryError
from ..models import LoadBalancerInfo
from .clients import (
    ListenerClient,
    LoadBalancer,
    LoadBalancerClient,
    TargetGroupClient,
    TargetGroupSpec,
    owned_tag,
)

logger = logging.getLogger(__name__)


class LoadBalancerReconciler:
    """Creates network load balancers by name; never modifies existing ones."""

    def __init__(self, client: LoadBalancerClient, infra_name: str):
        self.client = client
        self.infra_name = infra_name

    def ensure(self, name: str, subnet: str, allocation_id: Optional[str] = None) -> LoadBalancer:
        existing = self.client.describe_load_balancer(name)
        if existing:
            logger.debug(f"Load balancer {name} already exists: {existing.arn}")
            return existing
        key, value = owned_tag(self.infra_name)
        return self.client.create_load_balancer(name, subnet, allocation_id, {key: value})

    def remove(self, name: str) -> None:
        existing = self.client.describe_load_balancer(name)
        if not existing:
            logger.debug(f"Load balancer {name} not found, nothing to remove")
            return
        self.client.delete_load_balancer(existing.arn)

    def discover_info(self, machine_names: Iterable[str]) -> LoadBalancerInfo:
        """Pick VPC, zone and subnet from the management cluster's external balancer.

        The zone must hold at least one management worker machine, which
        later becomes the target of every balancer.
        """
        ext_name = f"{self.infra_name}-ext"
        lb = self.client.describe_load_balancer(ext_name)
        if not lb:
            raise DiscoveryError(f"no load balancer named {ext_name} found")
        machine_names = list(machine_names)
        for az in lb.availability_zones:
            prefix = f"{self.infra_name}-worker-{az.zone}"
            if any(m.startswith(prefix) for m in machine_names):
                return LoadBalancerInfo(vpc=lb.vpc_id, zone=az.zone, subnet=az.subnet)
        raise DiscoveryError("cannot find a suitable zone with workers in it")


class TargetGroupReconciler:
    """Target groups with a fixed TCP health check policy."""

    def __init__(self, client: TargetGroupClient):
        self.client = client

    def ensure(self, vpc: str, name: str, port: int) -> str:
        return self._ensure(TargetGroupSpec(name=name, vpc=vpc, port=port))

    def ensure_udp(self, vpc: str, name: str, port: int, health_check_port: int) -> str:
        """UDP cannot be health checked, so health comes from a TCP port on the same target."""
        return self._ensure(TargetGroupSpec(
            name=name,
            vpc=vpc,
            port=port,
            protocol="UDP",
            target_type="instance",
            health_check_port=health_check_port,
        ))

    def _ensure(self, spec: TargetGroupSpec) -> str:
        existing = self.client.describe_target_group(spec.name)
        if existing:
            if existing.port == spec.port:
                return existing.arn
            # The port of a target group cannot change in place
            logger.info(f"♻️  Recreating target group {spec.name}: port {existing.port} -> {spec.port}")
            self.client.delete_target_group(existing.arn)
        return self.client.create_target_group(spec).arn

    def ensure_target(self, target_group_arn: str, target_id: str) -> None:
        """Leave ``target_id`` as the only registered target."""
        registered = self.client.describe_targets(target_group_arn)
        for current in registered:
            if current != target_id:
                self.client.deregister_target(target_group_arn, current)
        if target_id not in registered:
            self.client.register_target(target_group_arn, target_id)

    def remove(self, name: str) -> None:
        existing = self.client.describe_target_group(name)
        if not existing:
            logger.debug(f"Target group {name} not found, nothing to remove")
            return
        self.client.delete_target_group(existing.arn)


class ListenerReconciler:
    def __init__(self, client: ListenerClient):
        self.client = client

    def ensure(self, lb_arn: str, tg_arn: str, port: int, udp: bool = False) -> None:
        """Keep exactly one listener on ``port``, forwarding to ``tg_arn``."""
        for listener in self.client.describe_listeners(lb_arn):
            if listener.port != port:
                continue
            if listener.target_group_arn == tg_arn:
                return
            self.client.delete_listener(listener.arn)
        self.client.create_listener(lb_arn, tg_arn, port, "UDP" if udp else "TCP")
