"""Exceptions raised by hostedctl.

Every orchestrator step wraps its failure in one of these so the CLI can
report which step failed while keeping the original cause chained.
"""


class HostedCtlError(Exception):
    """Base class for all hostedctl errors."""


class DiscoveryError(HostedCtlError):
    """Management cluster or cloud facts could not be read."""


class PreconditionError(HostedCtlError):
    """The run cannot start, e.g. the target namespace already exists."""


class ReconcileError(HostedCtlError):
    """An ensure or remove step failed."""


class CloudError(ReconcileError):
    """The cloud provider API returned an unexpected error."""

    def __init__(self, operation: str, code: str, message: str):
        super().__init__(f"{operation} failed ({code}): {message}")
        self.operation = operation
        self.code = code


class CollaboratorError(HostedCtlError):
    """The PKI, ignition or manifest rendering toolkit failed."""


class ApplyError(HostedCtlError):
    """Rendered manifests could not be converged onto the cluster."""


class ReadinessError(HostedCtlError):
    """The hosted cluster reported an explicit failure while waiting."""


class WaitTimeoutError(ReadinessError):
    """A wait did not succeed within its timeout."""
