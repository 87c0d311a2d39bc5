import os
from pathlib import Path

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from ..errors import DiscoveryError


def load_kubeconfig(path: str = None) -> client.ApiClient:
    """
    Build an API client for the management cluster.

    Resolution order: explicit path, KUBECONFIG, in-cluster service account,
    then ~/.kube/config.
    """
    path = path or os.environ.get("KUBECONFIG")
    if path:
        resolved = Path(os.path.expanduser(path)).resolve()
        if not resolved.exists():
            raise DiscoveryError(f"❌ Kubeconfig not found: {resolved}")
        return config.new_client_from_config(config_file=str(resolved))

    try:
        configuration = client.Configuration()
        config.load_incluster_config(client_configuration=configuration)
        return client.ApiClient(configuration)
    except ConfigException:
        pass

    default = Path("~/.kube/config").expanduser()
    if default.exists():
        return config.new_client_from_config(config_file=str(default))

    raise DiscoveryError(
        "could not locate a kubeconfig; make sure a connection to the management cluster is available"
    )


def client_from_kubeconfig_file(path: str) -> client.ApiClient:
    """Build an API client for a kubeconfig generated during install."""
    return config.new_client_from_config(config_file=str(path))
