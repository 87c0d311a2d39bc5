"""
Hosted cluster removal.

Rebuilds every resource name from the cluster name and the management
cluster's infra name, then removes resources in reverse dependency order.
Each removal tolerates an absent resource, so a partial uninstall can be
re-run until it completes.
"""
import logging
from typing import Callable

from ..errors import DiscoveryError
from ..utils import step
from .aws import CloudInfra
from .install import default_cloud_factory
from .management import ManagementCluster
from .models import ClusterIdentity, DNSNames, ManagementClusterInfo

logger = logging.getLogger(__name__)


class UninstallOrchestrator:
    def __init__(
        self,
        management: ManagementCluster,
        cloud_factory: Callable[[ManagementClusterInfo], CloudInfra] = default_cloud_factory,
    ):
        self.management = management
        self.cloud_factory = cloud_factory

    def discover(self) -> ManagementClusterInfo:
        """Only the facts teardown needs: identity, DNS zone and credentials."""
        infra_name, region = self.management.infrastructure()
        zone_id, parent_domain = self.management.dns_zone()
        return ManagementClusterInfo(
            infra_name=infra_name,
            region=region,
            service_cidr="",
            pod_cidr="",
            dns_zone_id=zone_id,
            parent_domain=parent_domain,
            credentials=self.management.cloud_credentials(),
        )

    def run(self, name: str) -> None:
        with step("Discovering management cluster", DiscoveryError):
            info = self.discover()
            cloud = self.cloud_factory(info)
        identity = ClusterIdentity(name=name, infra_name=info.infra_name, region=info.region)
        dns = DNSNames(name=name, parent_domain=info.parent_domain)

        with step("Removing API load balancer"):
            cloud.dns.remove_cname(info.dns_zone_id, dns.api)
            cloud.load_balancers.remove(identity.api_lb_name)
            cloud.target_groups.remove(identity.api_lb_name)
            cloud.target_groups.remove(identity.oauth_tg_name)
            cloud.eips.remove(identity.api_lb_name)

        with step("Removing VPN load balancer"):
            cloud.dns.remove_cname(info.dns_zone_id, dns.vpn)
            cloud.load_balancers.remove(identity.vpn_lb_name)
            cloud.target_groups.remove(identity.vpn_lb_name)

        with step("Removing router load balancer"):
            cloud.dns.remove_cname(info.dns_zone_id, dns.router_wildcard)
            cloud.load_balancers.remove(identity.router_lb_name)
            cloud.target_groups.remove(identity.router_http_tg_name)
            cloud.target_groups.remove(identity.router_https_tg_name)

        with step(f"Removing worker machine set {identity.worker_machineset_name}"):
            self.management.delete_machineset(identity.worker_machineset_name)

        with step(f"Removing ignition bucket {identity.bucket_name}"):
            cloud.buckets.remove(identity.bucket_name)

        with step(f"Removing namespace {name}"):
            self.management.delete_namespace(name)

        logger.info(f"✅ Cluster {name} uninstalled")
