# cluster/__init__.py
from .health import ClusterHealth, ClusterNodeStatus
from .join import JoinOrchestrator
from .membership import MembershipCoordinator
from .node import BootstrapState, NodeBootstrap
from .provision import ClusterProvisioner
from .watch import ClusterWatcher

__all__ = [
    'BootstrapState', 'ClusterHealth', 'ClusterNodeStatus', 'ClusterProvisioner',
    'ClusterWatcher', 'JoinOrchestrator', 'MembershipCoordinator', 'NodeBootstrap',
]
