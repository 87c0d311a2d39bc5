"""Apply a directory of rendered manifests to the management cluster."""
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import yaml
from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.dynamic import DynamicClient

from ..config import Config
from ..errors import ApplyError
from ..utils import RetryError, retry, run_command

logger = logging.getLogger(__name__)

# Placeholder services created before rendering; applying the rendered
# versions would reallocate their node ports.
EXCLUDED_MANIFESTS = (
    "kube-apiserver-service.yaml",
    "openshift-apiserver-service.yaml",
    "openvpn-server-service.yaml",
    "oauth-openshift-service.yaml",
)

# Client side apply stores the whole object in an annotation capped at 256KiB
MAX_APPLY_SIZE = 256 * 1024

CREATE_DIR = "create"


def files_to_create(directory: Path, always: Iterable[str] = ()) -> List[str]:
    """Manifests too large for client side apply, plus ``always``."""
    names = set(always)
    for path in Path(directory).iterdir():
        if path.is_file() and path.stat().st_size > MAX_APPLY_SIZE:
            names.add(path.name)
    return sorted(names)


class ManifestApplier:
    """Converges a manifest directory onto a cluster.

    Args:
        namespace: Default namespace for manifests without one
        kubeconfig: Kubeconfig passed to kubectl; kubectl's own lookup when None
        api_client: Client used for manifests created directly
        runner: Command runner, replaceable in tests
        sleep: Sleep between apply attempts, replaceable in tests
    """

    def __init__(
        self,
        namespace: str,
        kubeconfig: Optional[str] = None,
        api_client: Optional[client.ApiClient] = None,
        runner: Callable[..., subprocess.CompletedProcess] = run_command,
        attempts: Optional[int] = None,
        backoff: Optional[float] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.namespace = namespace
        self.kubeconfig = kubeconfig
        self.api_client = api_client
        self.runner = runner
        self.attempts = attempts or Config.APPLY_ATTEMPTS
        self.backoff = Config.APPLY_BACKOFF if backoff is None else backoff
        self.sleep = sleep
        self._dynamic = None

    def apply_directory(self, directory: Path, exclude: Iterable[str] = EXCLUDED_MANIFESTS,
                        create: Iterable[str] = ()) -> None:
        directory = Path(directory)
        for name in exclude:
            path = directory / name
            if path.exists():
                logger.debug(f"Excluding {name}")
                path.unlink()

        create_dir = directory.parent / f"{directory.name}-{CREATE_DIR}"
        moved = []
        for name in files_to_create(directory, create):
            source = directory / name
            if not source.exists():
                continue
            create_dir.mkdir(exist_ok=True)
            moved.append(Path(shutil.move(str(source), str(create_dir / name))))

        self.kubectl_apply(directory)
        for path in moved:
            self.create_file(path)

    def kubectl_apply(self, directory: Path) -> None:
        cmd = [Config.KUBECTL_BIN, "apply", "-f", str(directory), "-n", self.namespace]
        if self.kubeconfig:
            cmd += ["--kubeconfig", str(self.kubeconfig)]

        options = {"attempts": self.attempts, "delay": self.backoff,
                   "exceptions": (subprocess.CalledProcessError,)}
        if self.sleep:
            options["sleep"] = self.sleep

        @retry(**options)
        def apply():
            self.runner(cmd, capture_output=True)

        logger.info(f"📦 Applying manifests from {directory}")
        try:
            apply()
        except RetryError as e:
            raise ApplyError(f"failed to apply manifests from {directory}: {e}") from e

    def _resources(self):
        if self._dynamic is None:
            self._dynamic = DynamicClient(self.api_client or client.ApiClient())
        return self._dynamic.resources

    def create_file(self, path: Path) -> None:
        """Create every object in ``path``; objects that already exist are left alone."""
        with open(path) as f:
            docs = list(yaml.safe_load_all(f))

        for doc in docs:
            if not doc or not doc.get("kind") or not doc.get("apiVersion"):
                continue
            kind = doc["kind"]
            namespace = doc.get("metadata", {}).get("namespace", self.namespace)
            resource = self._resources().get(api_version=doc["apiVersion"], kind=kind)
            try:
                logger.info(f"📄 Creating {kind} {doc['metadata'].get('name')} in {namespace}")
                resource.create(body=doc, namespace=namespace)
            except ApiException as e:
                if e.status == 409:
                    logger.info(f"↪️ {kind} already exists")
                    continue
                raise ApplyError(f"failed to create {kind} from {path.name}: {e.reason}") from e
