"""
PKI, ignition and manifest rendering collaborators.

The orchestrator only depends on the abstract interfaces. The shipped
implementation drives the ``hypershift`` toolkit binary, handing it the
cluster parameters as a ``cluster.yaml`` file.
"""
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import yaml

from ..config import Config
from ..errors import CollaboratorError
from ..utils import run_command
from .models import ClusterParams

logger = logging.getLogger(__name__)

PARAMS_FILE = "cluster.yaml"
# Files whose presence means the PKI directory is already complete
PKI_FILES = ("root-ca.crt", "combined-ca.crt", "admin.kubeconfig")


class PKIGenerator(ABC):
    @abstractmethod
    def generate(self, params: ClusterParams, output_dir: Path) -> None: ...


class IgnitionGenerator(ABC):
    @abstractmethod
    def generate(self, params: ClusterParams, ssh_key: str, pull_secret_path: Path,
                 pki_dir: Path, output_dir: Path) -> None:
        """Write ``bootstrap.ign`` into ``output_dir``."""


class ManifestRenderer(ABC):
    @abstractmethod
    def render(self, params: ClusterParams, pull_secret_path: Path, pki_dir: Path, output_dir: Path) -> None: ...


def write_params(params: ClusterParams, directory: Path) -> Path:
    path = Path(directory) / PARAMS_FILE
    with open(path, "w") as f:
        yaml.safe_dump(params.to_config(), f, default_flow_style=False)
    return path


class _Toolkit:
    """Runs one toolkit subcommand."""

    def __init__(self, binary: Optional[str] = None, runner: Callable[..., subprocess.CompletedProcess] = run_command):
        self.binary = binary or Config.TOOLKIT_BIN
        self.runner = runner

    def _run(self, what: str, args: List[str], workdir: Path) -> None:
        cmd = [self.binary] + args
        try:
            self.runner(cmd, capture_output=True, cwd=str(workdir))
        except (subprocess.CalledProcessError, OSError) as e:
            raise CollaboratorError(f"{what} failed: {e}") from e


class ToolkitPKIGenerator(_Toolkit, PKIGenerator):
    def generate(self, params: ClusterParams, output_dir: Path) -> None:
        output_dir = Path(output_dir)
        if all((output_dir / name).exists() for name in PKI_FILES):
            logger.info("🔑 PKI already present, skipping generation")
            return
        config = write_params(params, output_dir.parent)
        self._run("PKI generation", ["pki", "--config", str(config), "--output-dir", str(output_dir)],
                  output_dir.parent)


class ToolkitIgnitionGenerator(_Toolkit, IgnitionGenerator):
    def generate(self, params: ClusterParams, ssh_key: str, pull_secret_path: Path,
                 pki_dir: Path, output_dir: Path) -> None:
        output_dir = Path(output_dir)
        config = write_params(params, output_dir)
        ssh_key_file = output_dir / "id_rsa.pub"
        ssh_key_file.write_text(ssh_key)
        self._run("Ignition generation", [
            "ignition",
            "--config", str(config),
            "--ssh-key", str(ssh_key_file),
            "--pull-secret", str(pull_secret_path),
            "--pki-dir", str(pki_dir),
            "--output-dir", str(output_dir),
        ], output_dir)


class ToolkitManifestRenderer(_Toolkit, ManifestRenderer):
    def render(self, params: ClusterParams, pull_secret_path: Path, pki_dir: Path, output_dir: Path) -> None:
        output_dir = Path(output_dir)
        config = write_params(params, output_dir.parent)
        self._run("Manifest rendering", [
            "render",
            "--config", str(config),
            "--pull-secret", str(pull_secret_path),
            "--pki-dir", str(pki_dir),
            "--output-dir", str(output_dir),
        ], output_dir.parent)


@dataclass
class Collaborators:
    pki: PKIGenerator
    ignition: IgnitionGenerator
    renderer: ManifestRenderer

    @classmethod
    def toolkit(cls, binary: Optional[str] = None) -> "Collaborators":
        return cls(
            pki=ToolkitPKIGenerator(binary),
            ignition=ToolkitIgnitionGenerator(binary),
            renderer=ToolkitManifestRenderer(binary),
        )
