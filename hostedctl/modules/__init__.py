"""
Hosted cluster installation modules.
"""
from .install import InstallOrchestrator, InstallResult
from .management import ManagementCluster
from .uninstall import UninstallOrchestrator

__all__ = [
    'InstallOrchestrator',
    'InstallResult',
    'ManagementCluster',
    'UninstallOrchestrator',
]
