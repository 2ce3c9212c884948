"""
Cluster health checks against the admin REST API.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..client.rest import ClusterRestClient, RestError
from ..config import NodeConfig
from ..retry import fixed_sleeper, retry_loop

logger = logging.getLogger(__name__)

MAX_RETRIES_REST = 10
REST_RETRY_SLEEP_SECONDS = 10

STATUS_HEALTHY = "healthy"
REBALANCE_STATUS_NONE = "none"


class ClusterDataError(Exception):
    """The admin API returned data of an unexpected shape."""


@dataclass
class ClusterNodeStatus:
    hostname: str  # ex: "10.231.192.180:8091"
    otp_node: str  # ex: "ns_1@10.231.192.180"
    status: str

    @property
    def healthy(self) -> bool:
        return self.status == STATUS_HEALTHY

    @classmethod
    def from_json(cls, entry) -> "ClusterNodeStatus":
        if not isinstance(entry, dict):
            raise ClusterDataError(f"Node had unexpected data type: {entry!r}")
        fields = {}
        for name in ("hostname", "otpNode", "status"):
            value = entry.get(name)
            if not isinstance(value, str):
                raise ClusterDataError(f"No {name} string found in node {entry!r}")
            fields[name] = value
        return cls(fields["hostname"], fields["otpNode"], fields["status"])


class ClusterHealth:
    def __init__(self, rest: ClusterRestClient, config: NodeConfig,
                 sleep: Callable[[float], None] = time.sleep):
        self.rest = rest
        self.config = config
        self._sleep = sleep

    def wait_for_admin_api(self):
        """Poll the local admin API root until it answers 200."""
        url = self.rest.url(self.config.ip, "/")

        def worker() -> bool:
            logger.info(f"Waiting for REST service at {url} to be up")
            if self.rest.status_code(url) == 200:
                logger.info("REST service appears to be up")
                return True
            return False

        retry_loop(
            worker,
            fixed_sleeper(MAX_RETRIES_REST, REST_RETRY_SLEEP_SECONDS),
            sleep=self._sleep,
            description="WaitForAdminAPI",
        )

    def fetch_cluster_version(self) -> str:
        """Read implementationVersion from /pools, retrying while unreachable."""
        url = self.rest.url(self.config.ip, "/pools")
        found = []

        def worker() -> bool:
            try:
                pools = self.rest.fetch_json(url, dict)
            except RestError as e:
                logger.info(f"Got error {e} fetching cluster details, assuming the cluster is not up yet")
                return False

            version = pools.get("implementationVersion")
            if not isinstance(version, str):
                raise ClusterDataError("Expected implementationVersion to contain a string")
            found.append(version)
            return True

        retry_loop(
            worker,
            fixed_sleeper(MAX_RETRIES_REST, REST_RETRY_SLEEP_SECONDS),
            sleep=self._sleep,
            description="FetchClusterVersion",
        )
        logger.info(f"Cluster version: {found[0]}")
        return found[0]

    def list_member_statuses(self, peer: str) -> List[ClusterNodeStatus]:
        """Cluster topology as seen by peer. Malformed entries raise."""
        pools_default = self.rest.fetch_json(self.rest.url(peer, "/pools/default"), dict)
        nodes = pools_default.get("nodes")
        if not isinstance(nodes, list):
            raise ClusterDataError("Unexpected data type in nodes field")
        return [ClusterNodeStatus.from_json(entry) for entry in nodes]

    def count_healthy(self, min_expected: Optional[int], peer: str) -> bool:
        """
        True when at least min_expected members are listed and all are
        healthy. Pass None to skip the count check.
        """
        members = self.list_member_statuses(peer)

        if min_expected is not None and len(members) < min_expected:
            logger.info(f"Not enough nodes are up.  Expected {min_expected}, got {len(members)}")
            return False

        for member in members:
            if not member.healthy:
                logger.info(f"Node {member.hostname} not healthy.  Status: {member.status}")
                return False

        logger.info("All cluster nodes appear to be healthy")
        return True

    def all_healthy(self, peer: str) -> bool:
        return self.count_healthy(None, peer)

    def is_member_healthy(self, peer: str, ip: str) -> bool:
        """Is ip already a healthy member, according to peer?"""
        for member in self.list_member_statuses(peer):
            if ip in member.hostname:
                if member.healthy:
                    return True
                logger.info(f"{ip} in cluster, but status not healthy.  Status: {member.status}")
        return False

    def otp_nodes(self, peer: str) -> List[str]:
        return [member.otp_node for member in self.list_member_statuses(peer)]

    def is_rebalancing(self, peer: str) -> bool:
        """Anything but status "none" counts as rebalancing."""
        progress = self.rest.fetch_json(self.rest.url(peer, "/pools/default/rebalanceProgress"), dict)
        status = progress.get("status")
        if not isinstance(status, str):
            raise ClusterDataError("Unexpected type in status field of rebalanceProgress")
        return status != REBALANCE_STATUS_NONE
