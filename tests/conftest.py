"""
Pytest fixtures for agent tests.
"""

import pytest

from cbagent.client.etcd import EtcdClient
from cbagent.client.rest import ClusterRestClient
from cbagent.config import NodeConfig

from fakes import FakeCouchbase, FakeEtcd, FakeHost, ServerThread, SleepRecorder


@pytest.fixture
def fake_etcd():
    """Fresh fake coordination store for each test."""
    fake = FakeEtcd()
    server = ServerThread(fake.app).start()
    fake.url = server.url
    yield fake
    server.stop()


@pytest.fixture
def fake_couchbase():
    """Fresh fake admin API for each test."""
    fake = FakeCouchbase()
    server = ServerThread(fake.app).start()
    fake.port = server.port
    yield fake
    server.stop()


@pytest.fixture
def etcd(fake_etcd):
    client = EtcdClient([fake_etcd.url], timeout=5)
    yield client
    client.close()


@pytest.fixture
def node_config(fake_couchbase):
    return NodeConfig(
        ip="127.0.0.1",
        port=fake_couchbase.port,
        admin_username="Administrator",
        admin_password="s3cret",
    )


@pytest.fixture
def rest(node_config):
    client = ClusterRestClient(node_config, timeout=5)
    yield client
    client.close()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def host():
    return FakeHost()
