"""Route53 CNAME reconciler."""
import logging

from .clients import DNSClient, RecordSet

logger = logging.getLogger(__name__)

CNAME_TTL = 30


class DNSReconciler:
    def __init__(self, client: DNSClient):
        self.client = client

    def ensure_cname(self, zone_id: str, name: str, target: str) -> None:
        """Point ``name`` at ``target``. UPSERT needs no pre-read."""
        record = RecordSet(name=name, type="CNAME", ttl=CNAME_TTL, values=(target,))
        self.client.change_record(zone_id, "UPSERT", record)
        logger.debug(f"CNAME {name} -> {target}")

    def remove_cname(self, zone_id: str, name: str) -> None:
        """Delete the CNAME for ``name``.

        Route53 only deletes a record when the request repeats its exact
        current value and TTL, so the record is read first.
        """
        current = self.client.find_record(zone_id, name, "CNAME")
        if current is None:
            logger.debug(f"CNAME {name} not found, nothing to remove")
            return
        self.client.change_record(zone_id, "DELETE", current)
