"""
Node bootstrap: bring the local Couchbase node online and keep it alive.

    UNSTARTED -> ELECTING -> INITIALIZING -> HEARTBEATING
                          -> JOINING      -> HEARTBEATING

Any exception before HEARTBEATING aborts the bootstrap; a half-initialized
node must not advertise itself as live. HEARTBEATING never ends.
"""

import enum
import logging
import time
from typing import Callable, Optional

from .. import config as settings
from ..client.etcd import EtcdClient
from ..client.rest import ClusterRestClient
from ..config import NodeConfig
from ..host import HostServices
from .health import ClusterHealth
from .join import JoinOrchestrator
from .membership import MembershipCoordinator
from .provision import ClusterProvisioner

logger = logging.getLogger(__name__)


class BootstrapState(enum.Enum):
    UNSTARTED = "unstarted"
    ELECTING = "electing"
    INITIALIZING = "initializing"
    JOINING = "joining"
    HEARTBEATING = "heartbeating"


class BootstrapError(Exception):
    """The bootstrap left a state it should never leave."""


class NodeBootstrap:
    def __init__(self, config: NodeConfig, etcd: EtcdClient,
                 host: Optional[HostServices] = None,
                 heartbeat_ttl: int = settings.HEARTBEAT_TTL,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            config: Local node config; ip must be set, credentials may be
                filled in from the coordination store
            etcd: The process-wide coordination store client
            host: Local OS operations
            heartbeat_ttl: TTL in seconds for membership entries
            sleep: Sleep function, injectable for tests
        """
        self.config = config
        self.etcd = etcd
        self.host = host or HostServices(sleep=sleep)
        self.heartbeat_ttl = heartbeat_ttl
        self.state = BootstrapState.UNSTARTED

        self.rest = ClusterRestClient(config)
        self.membership = MembershipCoordinator(etcd, config, sleep=sleep)
        self.health = ClusterHealth(self.rest, config, sleep=sleep)
        self.joiner = JoinOrchestrator(config, self.rest, self.health, self.membership, sleep=sleep)
        self.provisioner = ClusterProvisioner(config, self.rest, self.host)

    def start(self):
        """Run the bootstrap. Only returns by raising."""
        if not self.config.ip:
            raise ValueError("NodeConfig.ip must be set before starting the node")

        if not self.config.has_credentials:
            self.membership.load_admin_credentials()

        self._transition(BootstrapState.ELECTING)
        is_first = self.membership.attempt_election()

        self._start_local_service()

        if is_first:
            self._transition(BootstrapState.INITIALIZING)
            logger.info("We became first cluster node, init cluster and bucket")
            self.provisioner.cluster_init()
            self.provisioner.create_default_bucket()
        else:
            self._transition(BootstrapState.JOINING)
            self.joiner.join_existing_cluster()

        self._transition(BootstrapState.HEARTBEATING)
        self.membership.run_heartbeat_loop(self.heartbeat_ttl)

        raise BootstrapError("Heartbeat loop exited")

    def close(self):
        self.rest.close()

    def _start_local_service(self):
        self.host.prepare_var_directory()
        self.host.start_service()
        self.health.wait_for_admin_api()
        self.config.version = self.health.fetch_cluster_version()

    def _transition(self, state: BootstrapState):
        logger.info(f"Bootstrap state {self.state.value} -> {state.value}")
        self.state = state
