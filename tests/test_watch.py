"""
Tests for waiting on cluster readiness.
"""

import pytest

from cbagent.cluster.health import ClusterHealth
from cbagent.cluster.membership import MembershipCoordinator
from cbagent.cluster.watch import ClusterWatcher
from cbagent.config import KEY_NODE_STATE
from cbagent.retry import RetriesExhausted


@pytest.fixture
def watcher(etcd, rest, node_config, sleeps):
    return ClusterWatcher(
        MembershipCoordinator(etcd, node_config, sleep=sleeps),
        ClusterHealth(rest, node_config, sleep=sleeps),
        sleep=sleeps,
    )


@pytest.fixture
def live_peer(fake_etcd):
    fake_etcd.put(KEY_NODE_STATE, dir=True)
    fake_etcd.put(f"{KEY_NODE_STATE}/127.0.0.1", "up", ttl=10)


class TestClusterWatcher:
    """Test readiness waits."""

    def test_running(self, watcher, live_peer, sleeps):
        watcher.wait_until_cluster_running(5)
        assert sleeps.calls == []

    def test_no_peer_keeps_waiting(self, watcher, sleeps):
        with pytest.raises(RetriesExhausted):
            watcher.wait_until_cluster_running(3)
        assert sleeps.calls == [10, 20]

    def test_unhealthy_keeps_waiting(self, watcher, live_peer, fake_couchbase, sleeps):
        fake_couchbase.nodes[0]["status"] = "warmup"
        with pytest.raises(RetriesExhausted):
            watcher.wait_until_cluster_running(3)

    def test_errors_keep_waiting(self, watcher, live_peer, fake_couchbase, sleeps):
        """Test: malformed topology is retried here, not fatal."""
        fake_couchbase.nodes_payload = ["garbage"]
        with pytest.raises(RetriesExhausted):
            watcher.wait_until_cluster_running(2)

    def test_num_nodes(self, watcher, live_peer, fake_couchbase, sleeps):
        with pytest.raises(RetriesExhausted):
            watcher.wait_until_num_nodes_running(2, 2)

        fake_couchbase.nodes.append({"hostname": "10.0.0.2:8091", "otpNode": "ns_1@10.0.0.2", "status": "healthy"})
        watcher.wait_until_num_nodes_running(2, 2)
