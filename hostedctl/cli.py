import logging
import sys
from typing import Optional

import typer

from hostedctl.errors import HostedCtlError
from hostedctl.modules.install import InstallOrchestrator
from hostedctl.modules.management import ManagementCluster
from hostedctl.modules.uninstall import UninstallOrchestrator
from hostedctl.utils import setup_logging
from hostedctl.utils.kube import load_kubeconfig

app = typer.Typer(help="Install hosted OpenShift control planes on an AWS management cluster.")

logger = logging.getLogger("hostedctl")

BOOL_VALUES = {"true": True, "t": True, "1": True, "false": False, "f": False, "0": False}


def _validate_name(name: str) -> str:
    if not name.strip():
        raise typer.BadParameter("cluster name must not be empty")
    return name


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    parsed = BOOL_VALUES.get(str(value).strip().lower())
    if parsed is None:
        raise typer.BadParameter(f"expected true or false, got {value!r}")
    return parsed


def _report(err: HostedCtlError) -> None:
    """Log an error and every cause chained to it, outermost first."""
    logger.error(f"❌ {err}")
    cause = err.__cause__
    while cause is not None:
        logger.error(f"   caused by: {cause}")
        cause = cause.__cause__
    logger.debug("Traceback", exc_info=err)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """hostedctl - hosted control plane installer."""
    setup_logging(debug)
    if debug:
        logger.debug("Debug mode enabled")


@app.command("install")
def install_command(
    name: str = typer.Argument(..., callback=_validate_name, help="Cluster name, also the control plane namespace"),
    release_image: Optional[str] = typer.Option(None, help="Release image; defaults to the management cluster's"),
    dh_params: Optional[str] = typer.Option(None, help="Existing Diffie-Hellman parameters file for the VPN"),
    wait_for_cluster_ready: str = typer.Option(
        "true", "--wait-for-cluster-ready", metavar="true|false", callback=_parse_bool,
        help="Wait for the cluster to come up before exiting; fails if it does not within the timeouts",
    ),
    kubeconfig: Optional[str] = typer.Option(None, envvar="KUBECONFIG", help="Management cluster kubeconfig"),
):
    """Install a hosted cluster."""
    logger.info(f"🚀 Installing cluster {name}")
    try:
        api_client = load_kubeconfig(kubeconfig)
        orchestrator = InstallOrchestrator(ManagementCluster(api_client), api_client=api_client)
        orchestrator.run(
            name,
            release_image=release_image,
            dh_params_file=dh_params,
            wait_for_ready=wait_for_cluster_ready,
        )
    except HostedCtlError as e:
        _report(e)
        raise typer.Exit(code=1)


@app.command("uninstall")
def uninstall_command(
    name: str = typer.Argument(..., callback=_validate_name, help="Cluster name"),
    kubeconfig: Optional[str] = typer.Option(None, envvar="KUBECONFIG", help="Management cluster kubeconfig"),
):
    """Remove a hosted cluster and the cloud resources created for it."""
    logger.info(f"🗑️ Uninstalling cluster {name}")
    try:
        api_client = load_kubeconfig(kubeconfig)
        UninstallOrchestrator(ManagementCluster(api_client)).run(name)
    except HostedCtlError as e:
        _report(e)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    sys.exit(app())
