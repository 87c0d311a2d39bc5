"""
Manifests generated per install, next to the ones the renderer produces.
"""
import base64
import copy
import json
import logging
import secrets
import string
from pathlib import Path
from typing import Any, Dict

import bcrypt
import yaml

from .aws.buckets import IgnitionBucketReconciler

logger = logging.getLogger(__name__)

MACHINESET_FILE = "machineset.json"
WORKER_REPLICAS = 3
ROUTER_NODE_PORT_HTTP = 31080
ROUTER_NODE_PORT_HTTPS = 31443

# Removed from the template machine set before it is reused
SERVER_SIDE_FIELDS = (
    ("status",),
    ("metadata", "creationTimestamp"),
    ("metadata", "generation"),
    ("metadata", "resourceVersion"),
    ("metadata", "selfLink"),
    ("metadata", "uid"),
    ("spec", "template", "spec", "metadata"),
    ("spec", "template", "spec", "providerSpec", "value", "publicIp"),
)

MACHINESET_LABEL = "machine.openshift.io/cluster-api-machineset"


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def _remove_nested(obj: Dict[str, Any], path) -> None:
    for key in path[:-1]:
        obj = obj.get(key)
        if not isinstance(obj, dict):
            return
    obj.pop(path[-1], None)


def _set_nested(obj: Dict[str, Any], value: Any, *path: str) -> None:
    for key in path[:-1]:
        obj = obj.setdefault(key, {})
    obj[path[-1]] = value


def user_config_map_name(filename: str) -> str:
    """Config map name the user manifests bootstrapper expects for ``filename``."""
    return "user-manifest-" + filename.split(".")[0].replace("_", "-")


def user_manifest(filename: str, manifest: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a hosted cluster manifest in a config map for the bootstrapper pod."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": user_config_map_name(filename)},
        "data": {"data": yaml.safe_dump(manifest, default_flow_style=False)},
    }


def generate_kubeadmin_password() -> str:
    """Four dash separated groups of five characters, like the installer's."""
    alphabet = string.ascii_letters + string.digits
    groups = ["".join(secrets.choice(alphabet) for _ in range(5)) for _ in range(4)]
    return "-".join(groups)


def generate_image_registry_secret() -> str:
    return secrets.token_hex(64)


def worker_machineset(template: Dict[str, Any], name: str, user_data_secret: str, lb_name: str) -> Dict[str, Any]:
    """Turn a management worker machine set into one for the hosted cluster's workers.

    Args:
        template: Machine set read from the management cluster
        name: Name of the new machine set
        user_data_secret: Secret holding the worker ignition stub
        lb_name: Load balancer the new machines register with

    Returns:
        A new object; ``template`` is not modified
    """
    machineset = copy.deepcopy(template)
    for path in SERVER_SIDE_FIELDS:
        _remove_nested(machineset, path)
    _set_nested(machineset, WORKER_REPLICAS, "spec", "replicas")
    _set_nested(machineset, name, "metadata", "name")
    _set_nested(machineset, name, "spec", "selector", "matchLabels", MACHINESET_LABEL)
    _set_nested(machineset, name, "spec", "template", "metadata", "labels", MACHINESET_LABEL)
    provider = ("spec", "template", "spec", "providerSpec", "value")
    _set_nested(machineset, user_data_secret, *provider, "userDataSecret", "name")
    _set_nested(machineset, [{"name": lb_name, "type": "network"}], *provider, "loadBalancers")
    return machineset


def user_data_secret(name: str, bucket: str) -> Dict[str, Any]:
    """Ignition stub telling new workers to fetch their config from the bucket."""
    ignition = {
        "ignition": {
            "config": {"append": [{"source": IgnitionBucketReconciler.object_url(bucket), "verification": {}}]},
            "security": {},
            "timeouts": {},
            "version": "2.2.0",
        },
        "networkd": {},
        "passwd": {},
        "storage": {},
        "systemd": {},
    }
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": "openshift-machine-api"},
        "data": {
            "disableTemplating": _b64("true"),
            "userData": _b64(json.dumps(ignition, separators=(",", ":"))),
        },
    }


def kubeadmin_password_secret(password: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "kubeadmin-password"},
        "data": {"password": _b64(password)},
    }


def kubeadmin_user_secret(password: str) -> Dict[str, Any]:
    """The hosted cluster's ``kube-system/kubeadmin`` secret, holding a bcrypt hash."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("ascii")
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "kubeadmin", "namespace": "kube-system"},
        "data": {"kubeadmin": _b64(hashed)},
    }


def admin_kubeconfig_secret(kubeconfig: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "admin-kubeconfig"},
        "data": {"kubeconfig": _b64(kubeconfig)},
    }


def pull_secret_config_map(pull_secret: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": "pull-secret"},
        "data": {".dockerconfigjson": pull_secret},
    }


def router_default_service() -> Dict[str, Any]:
    """Hosted cluster router service pinned to the node ports the router balancer targets."""
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "router-default", "namespace": "openshift-ingress"},
        "spec": {
            "type": "NodePort",
            "selector": {"ingresscontroller.operator.openshift.io/deployment-ingresscontroller": "default"},
            "ports": [
                {"name": "http", "port": 80, "protocol": "TCP", "targetPort": "http",
                 "nodePort": ROUTER_NODE_PORT_HTTP},
                {"name": "https", "port": 443, "protocol": "TCP", "targetPort": "https",
                 "nodePort": ROUTER_NODE_PORT_HTTPS},
            ],
        },
    }


def oauth_branding_secret(cluster_name: str) -> Dict[str, Any]:
    login = f"<html><head><title>{cluster_name}</title></head><body>Log in to {cluster_name}</body></html>"
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "v4-0-config-system-branding-template"},
        "data": {"login.html": _b64(login)},
    }


def write_manifest(directory: Path, filename: str, manifest: Dict[str, Any]) -> Path:
    path = Path(directory) / filename
    with open(path, "w") as f:
        json.dump(manifest, f, indent=2)
    logger.debug(f"📄 Wrote {path}")
    return path


def generate_install_manifests(
    directory: Path,
    *,
    cluster_name: str,
    machineset_template: Dict[str, Any],
    machineset_name: str,
    user_data_secret_name: str,
    router_lb_name: str,
    bucket: str,
    kubeadmin_password: str,
    admin_kubeconfig: str,
    pull_secret: str,
) -> Dict[str, Path]:
    """Write every per-install manifest into ``directory``.

    Returns:
        Mapping of file name to written path
    """
    router = "user-manifest-router-default.json"
    kubeadmin = "user-manifest-kubeadmin-secret.json"
    manifests = {
        MACHINESET_FILE: worker_machineset(
            machineset_template, machineset_name, user_data_secret_name, router_lb_name
        ),
        "machine-user-data.json": user_data_secret(user_data_secret_name, bucket),
        "kubeadmin-password.json": kubeadmin_password_secret(kubeadmin_password),
        kubeadmin: user_manifest("kubeadmin-secret.yaml", kubeadmin_user_secret(kubeadmin_password)),
        "admin-kubeconfig.json": admin_kubeconfig_secret(admin_kubeconfig),
        "pull-secret-configmap.json": pull_secret_config_map(pull_secret),
        router: user_manifest("router-default.yaml", router_default_service()),
        "oauth-branding-secret.json": oauth_branding_secret(cluster_name),
    }
    return {name: write_manifest(directory, name, body) for name, body in manifests.items()}
