"""Ignition bucket reconciler."""
import logging

from .clients import BucketClient, owned_tag

logger = logging.getLogger(__name__)

WORKER_IGNITION_KEY = "worker.ign"
PUBLIC_READ = "public-read"


class IgnitionBucketReconciler:
    """Publishes the worker ignition file where new machines can fetch it."""

    def __init__(self, client: BucketClient, infra_name: str):
        self.client = client
        self.infra_name = infra_name

    def ensure(self, bucket: str, file_path: str) -> None:
        if not self.client.bucket_exists(bucket):
            self.client.create_bucket(bucket, PUBLIC_READ)
        key, value = owned_tag(self.infra_name)
        self.client.tag_bucket(bucket, {key: value})
        # content is regenerated on every run, always overwrite
        self.client.upload_object(bucket, WORKER_IGNITION_KEY, file_path, PUBLIC_READ)

    def remove(self, bucket: str) -> None:
        if not self.client.bucket_exists(bucket):
            logger.debug(f"Bucket {bucket} not found, nothing to remove")
            return
        for key in list(self.client.list_object_keys(bucket)):
            self.client.delete_object(bucket, key)
        self.client.delete_bucket(bucket)

    @staticmethod
    def object_url(bucket: str) -> str:
        return f"https://{bucket}.s3.amazonaws.com/{WORKER_IGNITION_KEY}"
