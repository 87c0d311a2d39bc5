"""Worker security group rules for node port traffic."""
import logging

from ...errors import DiscoveryError
from .clients import IngressRule, SecurityGroupClient

logger = logging.getLogger(__name__)

NODE_PORT_MIN = 30000
NODE_PORT_MAX = 32767
PRIVATE_CIDR = "10.0.0.0/16"
ANY_CIDR = "0.0.0.0/0"


class WorkerSecurityReconciler:
    def __init__(self, client: SecurityGroupClient, infra_name: str):
        self.client = client
        self.infra_name = infra_name

    @property
    def group_name(self) -> str:
        return f"{self.infra_name}-worker-sg"

    def ensure_worker_node_port_access(self) -> None:
        """Allow TCP node ports from the VPC and UDP node ports from anywhere.

        Rules are only ever added; teardown leaves them in place.
        """
        group = self.client.describe_security_group(self.group_name)
        if group is None:
            raise DiscoveryError(f"security group {self.group_name} not found")

        wanted = [
            IngressRule("tcp", NODE_PORT_MIN, NODE_PORT_MAX, (PRIVATE_CIDR,)),
            IngressRule("udp", NODE_PORT_MIN, NODE_PORT_MAX, (ANY_CIDR,)),
        ]
        for rule in wanted:
            if any(_covers(existing, rule) for existing in group.rules):
                continue
            logger.info(f"🔧 Opening {rule.protocol.upper()} {rule.from_port}-{rule.to_port} from {rule.cidrs[0]}")
            self.client.authorize_ingress(group.group_id, rule)


def _covers(existing: IngressRule, wanted: IngressRule) -> bool:
    return (
        existing.protocol.lower() == wanted.protocol
        and existing.from_port == wanted.from_port
        and existing.to_port == wanted.to_port
        and all(cidr in existing.cidrs for cidr in wanted.cidrs)
    )
