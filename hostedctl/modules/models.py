"""
Data models for hosted cluster installation.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.naming import (
    BUCKET_NAME_MAX,
    LOAD_BALANCER_NAME_MAX,
    MACHINESET_NAME_MAX,
    TARGET_GROUP_NAME_MAX,
    generate_name,
)


@dataclass(frozen=True)
class ClusterIdentity:
    """Stable identifiers every resource name is derived from."""
    name: str
    infra_name: str
    region: str = ""

    @property
    def base(self) -> str:
        return f"{self.infra_name}-{self.name}"

    @property
    def api_lb_name(self) -> str:
        """API load balancer, its target group and its elastic IP."""
        return generate_name(self.base, "api", LOAD_BALANCER_NAME_MAX)

    @property
    def oauth_tg_name(self) -> str:
        return generate_name(self.base, "oauth", TARGET_GROUP_NAME_MAX)

    @property
    def router_lb_name(self) -> str:
        return generate_name(self.base, "apps", LOAD_BALANCER_NAME_MAX)

    @property
    def router_http_tg_name(self) -> str:
        return generate_name(self.base, "http", TARGET_GROUP_NAME_MAX)

    @property
    def router_https_tg_name(self) -> str:
        return generate_name(self.base, "https", TARGET_GROUP_NAME_MAX)

    @property
    def vpn_lb_name(self) -> str:
        """VPN load balancer and its UDP target group."""
        return generate_name(self.base, "vpn", LOAD_BALANCER_NAME_MAX)

    @property
    def bucket_name(self) -> str:
        return generate_name(self.base, "ign", BUCKET_NAME_MAX)

    @property
    def worker_machineset_name(self) -> str:
        return generate_name(self.base, "worker", MACHINESET_NAME_MAX)

    @property
    def user_data_secret_name(self) -> str:
        return f"{self.name}-user-data"


@dataclass(frozen=True)
class DNSNames:
    """Public DNS names of a hosted cluster under the parent domain."""
    name: str
    parent_domain: str

    @property
    def base_domain(self) -> str:
        return f"{self.name}.{self.parent_domain}"

    @property
    def api(self) -> str:
        return f"api.{self.base_domain}"

    @property
    def vpn(self) -> str:
        return f"vpn.{self.base_domain}"

    @property
    def ingress_subdomain(self) -> str:
        return f"apps.{self.base_domain}"

    @property
    def router_wildcard(self) -> str:
        return f"*.{self.ingress_subdomain}"


@dataclass(frozen=True)
class LoadBalancerInfo:
    """Network placement shared by every load balancer of one run."""
    vpc: str
    zone: str
    subnet: str


@dataclass(frozen=True)
class MachineInfo:
    """Management cluster machine used as the single load balancer target."""
    name: str
    instance_id: str
    internal_ip: str


@dataclass
class CloudCredentials:
    access_key_id: str
    secret_access_key: str

    def __repr__(self) -> str:
        return "CloudCredentials(access_key_id=[REDACTED], secret_access_key=[REDACTED])"


@dataclass
class ManagementClusterInfo:
    """Facts read from the management cluster before anything is mutated."""
    infra_name: str
    region: str
    service_cidr: str
    pod_cidr: str
    dns_zone_id: str
    parent_domain: str
    release_image: str = ""
    ssh_public_key: str = ""
    pull_secret: str = ""
    credentials: Optional[CloudCredentials] = None
    machine_names: List[str] = field(default_factory=list)


@dataclass
class ServicePorts:
    """Allocations returned by the placeholder services."""
    api_node_port: int
    vpn_node_port: int
    oauth_node_port: int
    openshift_api_cluster_ip: str


class ClusterParams(BaseModel):
    """Parameters handed to the PKI, ignition and manifest collaborators.

    Serialised with camelCase aliases, the toolkit's configuration format.
    Frozen: derive updated copies with ``model_copy(update=...)``.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    namespace: str
    external_api_dns_name: str = Field(alias="externalAPIDNSName")
    external_api_port: int = Field(6443, alias="externalAPIPort")
    external_api_ip_address: str = Field("", alias="externalAPIAddress")
    external_openvpn_dns_name: str = Field(alias="externalVPNDNSName")
    external_openvpn_port: int = Field(1194, alias="externalVPNPort")
    external_oauth_port: int = Field(443, alias="externalOauthPort")
    service_cidr: str = Field(alias="serviceCIDR")
    pod_cidr: str = Field(alias="podCIDR")
    release_image: str = Field(alias="releaseImage")
    api_node_port: int = Field(alias="apiNodePort")
    ingress_subdomain: str = Field(alias="ingressSubdomain")
    openshift_api_cluster_ip: str = Field(alias="openshiftAPIClusterIP")
    image_registry_http_secret: str = Field("", alias="imageRegistryHTTPSecret")
    router_node_port_http: str = Field(alias="routerNodePortHTTP")
    router_node_port_https: str = Field(alias="routerNodePortHTTPS")
    openvpn_node_port: str = Field(alias="openVPNNodePort")
    base_domain: str = Field(alias="baseDomain")
    network_type: str = Field("OpenShiftSDN", alias="networkType")
    replicas: str = Field("1", alias="replicas")
    etcd_client_name: str = Field("etcd-client", alias="etcdClientName")
    openshift_api_server_ca_bundle: str = Field("", alias="openshiftAPIServerCABundle")
    cloud_provider: str = Field("AWS", alias="cloudProvider")
    internal_api_port: int = Field(6443, alias="internalAPIPort")
    router_service_type: str = Field("NodePort", alias="routerServiceType")
    control_plane_operator_image: str = Field("", alias="controlPlaneOperatorImage")

    def to_config(self) -> Dict[str, object]:
        """Mapping written to the toolkit's cluster.yaml."""
        return self.model_dump(by_alias=True)
