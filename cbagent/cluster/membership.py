"""
First-node election and liveness publication through the coordination store.

The membership directory is the only shared state between agents. Whoever
creates it first is the first node; every live agent keeps an entry under it
with a short TTL, and keeps the directory's own TTL fresh so that it vanishes
once every agent has gone silent.
"""

import logging
import posixpath
import time
from typing import Callable, Optional

from ..client.etcd import CoordinationError, EtcdClient, EtcdNode, KeyAlreadyExists
from ..config import KEY_NODE_STATE, KEY_USER_PASS, NodeConfig
from ..retry import fixed_sleeper, retry_loop

logger = logging.getLogger(__name__)

MAX_RETRIES_LOAD_CREDENTIALS = 10
LOAD_CREDENTIALS_SLEEP_SECONDS = 10


class CredentialsError(Exception):
    """The credentials entry is not of the form username:password."""


def first_live_peer(directory: Optional[EtcdNode]) -> str:
    """
    Address of the first child of the membership directory, or "".

    This deliberately returns whichever entry comes first rather than picking
    a best peer.
    """
    if directory is None or not directory.nodes:
        return ""
    return posixpath.basename(directory.nodes[0].key.rstrip("/"))


class MembershipCoordinator:
    def __init__(self, etcd: EtcdClient, config: NodeConfig,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            etcd: The process-wide coordination store client
            config: Local node config (ip is used as the membership entry name)
            sleep: Sleep function, injectable for tests
        """
        self.etcd = etcd
        self.config = config
        self._sleep = sleep
        self._last_publish_error: Optional[Exception] = None

    def attempt_election(self) -> bool:
        """
        Try to become the first cluster node.

        The directory is created without a TTL since nobody knows how long
        initialization will take; the heartbeat attaches one later.
        Returns False if another node created it first.
        """
        try:
            self.etcd.create_dir(KEY_NODE_STATE)
        except KeyAlreadyExists:
            logger.info(f"Key {KEY_NODE_STATE} already exists, another node won the election")
            return False

        logger.info(f"Created key {KEY_NODE_STATE}, this node is first")
        return True

    def find_live_peer(self) -> str:
        """Address of some live node, or "" if none is published yet."""
        directory = self.etcd.get(KEY_NODE_STATE)
        peer = first_live_peer(directory)
        logger.info(f"Live peer: {peer or '<none>'}")
        return peer

    def publish_liveness(self, ttl: int) -> bool:
        """
        Refresh our entry and the directory TTL. Failures are logged, never
        raised; the next tick tries again.
        """
        try:
            self.etcd.update_dir(KEY_NODE_STATE, ttl)
        except CoordinationError as e:
            logger.warning(
                f"Error updating {KEY_NODE_STATE} dir TTL: {e}. "
                "Ignoring error, but this could cause problems"
            )

        key = posixpath.join(KEY_NODE_STATE, self.config.ip)
        try:
            self.etcd.set(key, "up", ttl)
        except CoordinationError as e:
            logger.warning(
                f"Error publishing node state to {key}: {e}. Ignoring error, but other "
                "nodes won't be able to join this node until this issue is resolved."
            )
            self._last_publish_error = e
            return False

        logger.debug(f"Published node state to {key}")
        if self._last_publish_error is not None:
            logger.info(
                f"Published node state to {key}. The previous error "
                f"({self._last_publish_error}) seems to have fixed itself"
            )
            self._last_publish_error = None
        return True

    def run_heartbeat_loop(self, ttl: int):
        """Publish liveness every ttl/2 seconds. Never returns."""
        logger.info(f"Entering heartbeat loop (ttl={ttl}s)")
        while True:
            self.publish_liveness(ttl)
            self._sleep(ttl / 2)

    def load_admin_credentials(self):
        """
        Read username:password from the credentials entry into the config,
        retrying while the entry is missing or the store is unreachable.
        """
        def worker() -> bool:
            try:
                node = self.etcd.get(KEY_USER_PASS)
            except CoordinationError as e:
                logger.warning(f"Error getting key {KEY_USER_PASS}: {e}")
                return False
            if node is None or node.value is None:
                logger.warning(f"Key {KEY_USER_PASS} not set yet")
                return False

            try:
                self.config.set_userpass(node.value)
            except ValueError as e:
                raise CredentialsError(str(e)) from e
            logger.info(f"Loaded admin credentials for user {self.config.admin_username}")
            return True

        retry_loop(
            worker,
            fixed_sleeper(MAX_RETRIES_LOAD_CREDENTIALS, LOAD_CREDENTIALS_SLEEP_SECONDS),
            sleep=self._sleep,
            description="LoadAdminCredentials",
        )
