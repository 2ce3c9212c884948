"""
Tests for node configuration.
"""

import pytest

from cbagent import config
from cbagent.config import NodeConfig


class TestNodeConfig:
    def test_defaults(self):
        node = NodeConfig(ip="10.0.0.5")
        assert node.port == 8091
        assert node.default_bucket_ram_mb == 128
        assert node.default_bucket_replica_number == 1
        assert not node.has_credentials

    def test_userpass_splits_on_first_colon(self):
        node = NodeConfig(ip="10.0.0.5")
        node.set_userpass("Administrator:pa:ss")
        assert node.admin_username == "Administrator"
        assert node.admin_password == "pa:ss"
        assert node.has_credentials

    def test_userpass_without_colon(self):
        with pytest.raises(ValueError):
            NodeConfig(ip="10.0.0.5").set_userpass("Administrator")


class TestEnv:
    def test_int_env_falls_back_on_garbage(self, monkeypatch):
        monkeypatch.setenv("CBAGENT_TEST_INT", "ten")
        assert config._int_env("CBAGENT_TEST_INT", 10) == 10
        monkeypatch.setenv("CBAGENT_TEST_INT", " 7 ")
        assert config._int_env("CBAGENT_TEST_INT", 10) == 7
