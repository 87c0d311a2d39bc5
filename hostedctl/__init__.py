"""hostedctl - hosted control plane installer for AWS management clusters."""

__version__ = "0.1.0"
