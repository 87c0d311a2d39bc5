"""Elastic IP reconciler."""
import logging
from typing import Optional

from ...utils import wait_until
from .clients import Address, AddressClient, owned_tag

logger = logging.getLogger(__name__)

RELEASE_POLL_INTERVAL = 15
RELEASE_TIMEOUT = 4 * 60


class ElasticIPReconciler:
    """Allocates and releases elastic IPs identified by their Name tag."""

    def __init__(
        self,
        client: AddressClient,
        infra_name: str,
        poll_interval: float = RELEASE_POLL_INTERVAL,
        timeout: float = RELEASE_TIMEOUT,
    ):
        self.client = client
        self.infra_name = infra_name
        self.poll_interval = poll_interval
        self.timeout = timeout

    def ensure(self, name: str) -> Address:
        """Return the address tagged ``Name=name``, allocating it if absent."""
        existing = self.client.describe_address(name)
        if existing:
            logger.debug(f"Elastic IP {name} already allocated: {existing.allocation_id}")
            return existing

        address = self.client.allocate_address()
        key, value = owned_tag(self.infra_name)
        self.client.tag_address(address.allocation_id, {"Name": name, key: value})
        return address

    def remove(self, name: str) -> None:
        """Release the address once nothing is attached to it.

        An address still attached to a load balancer cannot be released, so
        wait for the balancer deletion to propagate first.
        """
        found: Optional[Address] = None

        def releasable() -> bool:
            nonlocal found
            found = self.client.describe_address(name)
            return found is None or not found.network_interface_id

        wait_until(
            releasable,
            interval=self.poll_interval,
            timeout=self.timeout,
            description=f"elastic IP {name} to detach",
        )
        if found is None:
            logger.debug(f"Elastic IP {name} not found, nothing to release")
            return
        self.client.release_address(found.allocation_id)
