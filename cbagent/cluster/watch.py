"""
Block until the cluster is up, for scripts that must wait on it.
"""

import logging
import time
from typing import Callable

from ..client.etcd import CoordinationError
from ..client.rest import RestError
from ..retry import linear_sleeper, retry_loop
from .health import ClusterDataError, ClusterHealth
from .membership import MembershipCoordinator

logger = logging.getLogger(__name__)

WATCH_SLEEP_STEP_SECONDS = 10


class ClusterWatcher:
    def __init__(self, membership: MembershipCoordinator, health: ClusterHealth,
                 sleep: Callable[[float], None] = time.sleep):
        self.membership = membership
        self.health = health
        self._sleep = sleep

    def wait_until_cluster_running(self, max_attempts: int):
        """Wait until every node reported by a live peer is healthy."""
        self._wait(lambda peer: self.health.all_healthy(peer), max_attempts, "WaitUntilClusterRunning")

    def wait_until_num_nodes_running(self, num_nodes: int, max_attempts: int):
        """Wait until at least num_nodes nodes are listed and all are healthy."""
        self._wait(
            lambda peer: self.health.count_healthy(num_nodes, peer),
            max_attempts,
            "WaitUntilNumNodesRunning",
        )

    def _wait(self, check: Callable[[str], bool], max_attempts: int, description: str):
        def worker() -> bool:
            try:
                peer = self.membership.find_live_peer()
            except CoordinationError as e:
                logger.info(f"Finding live peer failed: {e}")
                return False
            if not peer:
                return False

            logger.info(f"Connecting to live peer: {peer}")
            try:
                ok = check(peer)
            except (RestError, ClusterDataError) as e:
                logger.info(f"Health check against {peer} failed: {e}")
                return False
            return ok

        retry_loop(
            worker,
            linear_sleeper(max_attempts, WATCH_SLEEP_STEP_SECONDS),
            sleep=self._sleep,
            description=description,
        )
