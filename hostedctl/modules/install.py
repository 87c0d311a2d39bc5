"""
Hosted cluster installation.

Installs one hosted control plane into a namespace of the management
cluster: discovers management facts, reserves service ports, reconciles the
cloud networking in front of them, renders the control plane through the
collaborators and applies it. Every step is idempotent on the cloud side, so
a failed run can be retried after deleting the namespace.
"""
import base64
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from kubernetes import client

from ..config import Config
from ..errors import DiscoveryError, PreconditionError, ReadinessError
from ..utils import step
from ..utils.network import next_subnet
from .applier import EXCLUDED_MANIFESTS, ManifestApplier
from .aws import CloudInfra
from .aws.provider import Boto3CloudClient
from .collaborators import Collaborators
from .management import ManagementCluster
from .manifests import (
    MACHINESET_FILE,
    ROUTER_NODE_PORT_HTTP,
    ROUTER_NODE_PORT_HTTPS,
    WORKER_REPLICAS,
    generate_image_registry_secret,
    generate_install_manifests,
    generate_kubeadmin_password,
)
from .models import ClusterIdentity, ClusterParams, DNSNames, ManagementClusterInfo
from .readiness import ReadinessWaiter

logger = logging.getLogger(__name__)

API_PORT = 6443
OAUTH_PORT = 443
VPN_PORT = 1194
HTTP_PORT = 80
HTTPS_PORT = 443


def default_cloud_factory(info: ManagementClusterInfo) -> CloudInfra:
    return CloudInfra(Boto3CloudClient.from_credentials(info.credentials, info.region), info.infra_name)


@dataclass
class InstallResult:
    namespace: str
    api_url: str
    working_dir: Path
    kubeconfig: Path


class InstallOrchestrator:
    """Runs the install steps in order, stopping at the first failure.

    Args:
        management: Access to the management cluster
        cloud_factory: Builds the cloud reconcilers from discovered credentials
        collaborators: PKI, ignition and manifest rendering
        applier_factory: Builds the manifest applier for a namespace
        waiter_factory: Builds the readiness waiter for a hosted kubeconfig
        working_dir: Parent of the per-run working directory
    """

    def __init__(
        self,
        management: ManagementCluster,
        cloud_factory: Callable[[ManagementClusterInfo], CloudInfra] = default_cloud_factory,
        collaborators: Optional[Collaborators] = None,
        applier_factory: Optional[Callable[[str], ManifestApplier]] = None,
        waiter_factory: Optional[Callable[[str], ReadinessWaiter]] = None,
        api_client: Optional[client.ApiClient] = None,
        working_dir: Optional[str] = None,
    ):
        self.management = management
        self.cloud_factory = cloud_factory
        self.collaborators = collaborators or Collaborators.toolkit()
        self.applier_factory = applier_factory or (
            lambda namespace: ManifestApplier(namespace, api_client=api_client)
        )
        self.waiter_factory = waiter_factory or (
            lambda kubeconfig: ReadinessWaiter.from_kubeconfig(api_client or client.ApiClient(), kubeconfig)
        )
        self.working_dir = working_dir

    def run(
        self,
        name: str,
        release_image: Optional[str] = None,
        dh_params_file: Optional[str] = None,
        wait_for_ready: bool = True,
    ) -> InstallResult:
        with step("Discovering management cluster", DiscoveryError):
            info = self.management.discover(release_image)
        logger.info(f"Infra name: {info.infra_name}, region: {info.region}, "
                    f"parent domain: {info.parent_domain}")

        identity = ClusterIdentity(name=name, infra_name=info.infra_name, region=info.region)
        dns = DNSNames(name=name, parent_domain=info.parent_domain)

        with step(f"Creating namespace {name}"):
            if self.management.namespace_exists(name):
                raise PreconditionError(f"target namespace {name} already exists on management cluster")
            self.management.create_namespace(name)

        with step("Granting privileged SCC to the namespace"):
            self.management.ensure_privileged_scc(name)

        with step("Creating pull secret"):
            self.management.create_pull_secret(name, info.pull_secret)

        with step("Creating placeholder services"):
            ports = self.management.create_placeholder_services(name)
        logger.info(f"API node port: {ports.api_node_port}, VPN node port: {ports.vpn_node_port}, "
                    f"OAuth node port: {ports.oauth_node_port}, "
                    f"OpenShift API cluster IP: {ports.openshift_api_cluster_ip}")

        with step("Locating load balancer placement"):
            cloud = self.cloud_factory(info)
            placement = cloud.load_balancers.discover_info(info.machine_names)
            machine = self.management.machine_info(
                info.machine_names, f"{info.infra_name}-worker-{placement.zone}"
            )
        logger.info(f"Using VPC: {placement.vpc}, zone: {placement.zone}, subnet: {placement.subnet}, "
                    f"machine: {machine.instance_id} ({machine.internal_ip})")

        with step("Setting up API load balancer"):
            address = cloud.eips.ensure(identity.api_lb_name)
            api_lb = cloud.load_balancers.ensure(identity.api_lb_name, placement.subnet, address.allocation_id)
            api_tg = cloud.target_groups.ensure(placement.vpc, identity.api_lb_name, ports.api_node_port)
            cloud.target_groups.ensure_target(api_tg, machine.internal_ip)
            cloud.listeners.ensure(api_lb.arn, api_tg, API_PORT)
            oauth_tg = cloud.target_groups.ensure(placement.vpc, identity.oauth_tg_name, ports.oauth_node_port)
            cloud.target_groups.ensure_target(oauth_tg, machine.internal_ip)
            cloud.listeners.ensure(api_lb.arn, oauth_tg, OAUTH_PORT)
            cloud.dns.ensure_cname(info.dns_zone_id, dns.api, api_lb.dns_name)
        logger.info(f"✅ API load balancer {api_lb.dns_name} ({address.public_ip}) as {dns.api}")

        with step("Setting up router load balancer"):
            router_lb = cloud.load_balancers.ensure(identity.router_lb_name, placement.subnet)
            http_tg = cloud.target_groups.ensure(placement.vpc, identity.router_http_tg_name, ROUTER_NODE_PORT_HTTP)
            cloud.listeners.ensure(router_lb.arn, http_tg, HTTP_PORT)
            https_tg = cloud.target_groups.ensure(placement.vpc, identity.router_https_tg_name, ROUTER_NODE_PORT_HTTPS)
            cloud.listeners.ensure(router_lb.arn, https_tg, HTTPS_PORT)
            cloud.dns.ensure_cname(info.dns_zone_id, dns.router_wildcard, router_lb.dns_name)
        logger.info(f"✅ Router load balancer {router_lb.dns_name} as {dns.router_wildcard}")

        with step("Setting up VPN load balancer"):
            vpn_lb = cloud.load_balancers.ensure(identity.vpn_lb_name, placement.subnet)
            vpn_tg = cloud.target_groups.ensure_udp(
                placement.vpc, identity.vpn_lb_name, ports.vpn_node_port, ports.api_node_port
            )
            cloud.target_groups.ensure_target(vpn_tg, machine.instance_id)
            cloud.listeners.ensure(vpn_lb.arn, vpn_tg, VPN_PORT, udp=True)
            cloud.dns.ensure_cname(info.dns_zone_id, dns.vpn, vpn_lb.dns_name)
        logger.info(f"✅ VPN load balancer {vpn_lb.dns_name} as {dns.vpn}")

        with step("Opening worker node ports"):
            cloud.security.ensure_worker_node_port_access()

        with step("Computing cluster networks"):
            service_cidr = next_subnet(info.service_cidr)
            pod_cidr = next_subnet(info.pod_cidr)
        logger.info(f"Service CIDR: {service_cidr}, pod CIDR: {pod_cidr}")

        params = ClusterParams(
            namespace=name,
            external_api_dns_name=dns.api,
            external_api_port=API_PORT,
            external_api_ip_address=address.public_ip,
            external_openvpn_dns_name=dns.vpn,
            external_openvpn_port=VPN_PORT,
            external_oauth_port=OAUTH_PORT,
            api_node_port=ports.api_node_port,
            service_cidr=service_cidr,
            pod_cidr=pod_cidr,
            release_image=info.release_image,
            ingress_subdomain=dns.ingress_subdomain,
            openshift_api_cluster_ip=ports.openshift_api_cluster_ip,
            openvpn_node_port=str(ports.vpn_node_port),
            base_domain=dns.base_domain,
            image_registry_http_secret=generate_image_registry_secret(),
            router_node_port_http=str(ROUTER_NODE_PORT_HTTP),
            router_node_port_https=str(ROUTER_NODE_PORT_HTTPS),
            control_plane_operator_image=Config.control_plane_operator_image(),
        )

        workdir = Path(tempfile.mkdtemp(prefix=f"hostedctl-{name}-", dir=self.working_dir))
        pki_dir = workdir / "pki"
        manifests_dir = workdir / "manifests"
        pull_secret_file = workdir / "pull-secret"
        logger.info(f"The working directory is {workdir}")

        with step("Generating PKI"):
            pki_dir.mkdir()
            if dh_params_file:
                shutil.copyfile(dh_params_file, pki_dir / "openvpn-dh.pem")
            self.collaborators.pki.generate(params, pki_dir)

        with step("Generating worker ignition"):
            pull_secret_file.write_text(info.pull_secret)
            self.collaborators.ignition.generate(params, info.ssh_public_key, pull_secret_file, pki_dir, workdir)
            cloud.buckets.ensure(identity.bucket_name, str(workdir / "bootstrap.ign"))
        logger.info(f"✅ Ignition published in bucket {identity.bucket_name}")

        with step("Rendering manifests"):
            ca_bundle = base64.b64encode((pki_dir / "combined-ca.crt").read_bytes()).decode("ascii")
            params = params.model_copy(update={"openshift_api_server_ca_bundle": ca_bundle})
            manifests_dir.mkdir()
            self.collaborators.renderer.render(params, pull_secret_file, pki_dir, manifests_dir)

        kubeconfig = pki_dir / "admin.kubeconfig"
        with step("Generating install manifests"):
            template = self.management.get_machineset(f"{info.infra_name}-worker-{placement.zone}")
            generate_install_manifests(
                manifests_dir,
                cluster_name=name,
                machineset_template=template,
                machineset_name=identity.worker_machineset_name,
                user_data_secret_name=identity.user_data_secret_name,
                router_lb_name=identity.router_lb_name,
                bucket=identity.bucket_name,
                kubeadmin_password=generate_kubeadmin_password(),
                admin_kubeconfig=kubeconfig.read_text(),
                pull_secret=info.pull_secret,
            )

        with step("Applying manifests"):
            self.applier_factory(name).apply_directory(
                manifests_dir, exclude=EXCLUDED_MANIFESTS, create=[MACHINESET_FILE]
            )

        api_url = f"https://{dns.api}:{API_PORT}"
        if wait_for_ready:
            with step("Waiting for cluster readiness", ReadinessError):
                self.waiter_factory(str(kubeconfig)).wait_for_cluster(
                    f"{api_url}/healthz", str(pki_dir / "root-ca.crt"), name, WORKER_REPLICAS
                )

        logger.info(f"🚀 Cluster {name} installed. API: {api_url}, admin kubeconfig: {kubeconfig}")
        return InstallResult(namespace=name, api_url=api_url, working_dir=workdir, kubeconfig=kubeconfig)
