"""
Joining a non-first node into a running cluster.

Find a live peer through the membership directory, ask it to add us, wait
for any rebalance in progress to finish, then kick off a new rebalance.
Completion of that rebalance is not awaited here.

If several nodes join at about the same time, each triggers its own
rebalance. The cluster serializes them.
"""

import logging
import time
from typing import Callable

from ..client.etcd import CoordinationError
from ..client.rest import ClusterRestClient, RestError, RestStatusError
from ..config import NodeConfig
from ..retry import linear_sleeper, retry_loop
from .health import ClusterHealth
from .membership import MembershipCoordinator

logger = logging.getLogger(__name__)

MAX_RETRIES_JOIN_CLUSTER = 10
JOIN_SLEEP_STEP_SECONDS = 10
ADD_NODE_SLEEP_STEP_SECONDS = 10
REBALANCE_SLEEP_STEP_SECONDS = 100

ALREADY_MEMBER_MESSAGE = "Node is already part of cluster"


class JoinOrchestrator:
    def __init__(self, config: NodeConfig, rest: ClusterRestClient,
                 health: ClusterHealth, membership: MembershipCoordinator,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.rest = rest
        self.health = health
        self.membership = membership
        self._sleep = sleep

    def join_existing_cluster(self):
        """Wait for a live peer to show up, then join through it."""
        logger.info("Joining existing cluster")
        peers = []

        def worker() -> bool:
            try:
                peer = self.membership.find_live_peer()
            except CoordinationError as e:
                logger.warning(f"Finding live peer failed: {e}. Trying again")
                return False
            if peer:
                peers.append(peer)
                return True
            return False

        retry_loop(
            worker,
            linear_sleeper(MAX_RETRIES_JOIN_CLUSTER, JOIN_SLEEP_STEP_SECONDS),
            sleep=self._sleep,
            description="FindLivePeer",
        )
        self.join_peer(peers[0])

    def join_peer(self, peer: str):
        logger.info(f"Joining cluster through {peer}")

        if not self.health.is_member_healthy(peer, self.config.ip):
            self.add_node_retry(peer)
        else:
            logger.info(f"{self.config.ip} is already a healthy member")

        self.wait_until_no_rebalance(peer)
        self.trigger_rebalance(peer)

    def add_node(self, peer: str):
        """Ask peer to add this node. "Already a member" counts as success."""
        url = self.rest.url(peer, "/controller/addNode")
        data = {
            "hostname": self.config.ip,
            "user": self.config.admin_username,
            "password": self.config.admin_password,
        }
        logger.info(f"AddNode posting to {url} with hostname {self.config.ip}")

        try:
            self.rest.submit_form(url, data)
        except RestStatusError as e:
            if ALREADY_MEMBER_MESSAGE not in e.body:
                raise
            logger.info("Node was already part of cluster, so no need to add")

    def add_node_retry(self, peer: str):
        """AddNode sometimes fails transiently (e.g. a 400), so retry it."""
        def worker() -> bool:
            try:
                self.add_node(peer)
            except RestError as e:
                logger.warning(f"AddNode failed with err: {e}")
                return False
            return True

        retry_loop(
            worker,
            linear_sleeper(MAX_RETRIES_JOIN_CLUSTER, ADD_NODE_SLEEP_STEP_SECONDS),
            sleep=self._sleep,
            description="AddNode",
        )

    def wait_until_no_rebalance(self, peer: str):
        def worker() -> bool:
            if self.health.is_rebalancing(peer):
                logger.info("Rebalance in progress")
                return False
            logger.info("No rebalance in progress")
            return True

        retry_loop(
            worker,
            linear_sleeper(MAX_RETRIES_JOIN_CLUSTER, REBALANCE_SLEEP_STEP_SECONDS),
            sleep=self._sleep,
            description="WaitUntilNoRebalance",
        )

    def trigger_rebalance(self, peer: str):
        """Rebalance over every known node, ejecting none."""
        otp_nodes = self.health.otp_nodes(peer)
        logger.info(f"Triggering rebalance with known nodes: {otp_nodes}")

        data = {
            "ejectedNodes": "",
            "knownNodes": ",".join(otp_nodes),
        }
        self.rest.submit_form(self.rest.url(peer, "/controller/rebalance"), data)
