"""Cloud resource reconcilers.

``CloudInfra`` bundles one reconciler per resource kind over a single
``CloudClient`` so orchestrators pass one object around.
"""
from .addresses import ElasticIPReconciler
from .buckets import IgnitionBucketReconciler
from .clients import CloudClient, owned_tag
from .dns import DNSReconciler
from .load_balancers import ListenerReconciler, LoadBalancerReconciler, TargetGroupReconciler
from .security import WorkerSecurityReconciler


class CloudInfra:
    def __init__(self, client: CloudClient, infra_name: str, **eip_options):
        self.client = client
        self.infra_name = infra_name
        self.eips = ElasticIPReconciler(client, infra_name, **eip_options)
        self.load_balancers = LoadBalancerReconciler(client, infra_name)
        self.target_groups = TargetGroupReconciler(client)
        self.listeners = ListenerReconciler(client)
        self.dns = DNSReconciler(client)
        self.buckets = IgnitionBucketReconciler(client, infra_name)
        self.security = WorkerSecurityReconciler(client, infra_name)


__all__ = [
    "CloudInfra",
    "CloudClient",
    "DNSReconciler",
    "ElasticIPReconciler",
    "IgnitionBucketReconciler",
    "ListenerReconciler",
    "LoadBalancerReconciler",
    "TargetGroupReconciler",
    "WorkerSecurityReconciler",
    "owned_tag",
]
