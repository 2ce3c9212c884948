"""
Agent configuration.

Process-wide settings come from environment variables; per-node state lives in
NodeConfig, which the bootstrap fills in as it learns the cluster version and
admin credentials.
"""

import os
from dataclasses import dataclass
from typing import List, Optional


def _int_env(name: str, default: int) -> int:
    raw = str(os.getenv(name, str(default))).strip()
    try:
        return int(raw)
    except ValueError:
        return default


def _str_env(name: str, default: str) -> str:
    raw = str(os.getenv(name, default)).strip()
    return raw or default


def _list_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return split_server_list(raw)


def split_server_list(raw: Optional[str]) -> List[str]:
    """Turn "a:2379,b:2379" into ["a:2379", "b:2379"]."""
    if not raw:
        return []
    return [s.strip() for s in raw.split(",") if s.strip()]


# Coordination store keys
KEY_NODE_STATE = "/couchbase.com/couchbase-node-state"
KEY_USER_PASS = "/couchbase.com/userpass"

# Setting the admin credentials requires the factory default identity
FACTORY_ADMIN_USERNAME = "admin"
FACTORY_ADMIN_PASSWORD = "password"

DEFAULT_ADMIN_PORT = 8091
DEFAULT_BUCKET_RAM_MB = 128
DEFAULT_BUCKET_REPLICA_NUMBER = 1
DEFAULT_BUCKET_PROXY_PORT = 11215
FALLBACK_CLUSTER_RAM_MB = 1024

DEFAULT_ETCD_SERVER = "http://127.0.0.1:2379"

ETCD_SERVERS = _list_env("CBAGENT_ETCD_SERVERS")
HEARTBEAT_TTL = _int_env("CBAGENT_HEARTBEAT_TTL", 10)
LOG_LEVEL = _str_env("CBAGENT_LOG_LEVEL", "INFO")
SERVICE_NAME = _str_env("CBAGENT_SERVICE_NAME", "couchbase-server")
VAR_DIR = _str_env("CBAGENT_VAR_DIR", "/opt/couchbase/var")


@dataclass
class NodeConfig:
    """State of the local node, shared read-only with every component."""

    ip: str
    port: int = DEFAULT_ADMIN_PORT
    version: str = ""
    admin_username: str = ""
    admin_password: str = ""
    default_bucket_ram_mb: int = DEFAULT_BUCKET_RAM_MB
    default_bucket_replica_number: int = DEFAULT_BUCKET_REPLICA_NUMBER

    @property
    def has_credentials(self) -> bool:
        return bool(self.admin_username)

    def set_userpass(self, userpass: str):
        """Apply a "username:password" pair. Only the first colon separates."""
        if ":" not in userpass:
            raise ValueError(f"Invalid user/pass: {userpass!r}")
        self.admin_username, _, self.admin_password = userpass.partition(":")
