"""
One-time setup done by the first node: admin credentials, cluster RAM quota
and the default bucket.
"""

import logging

from ..client.rest import ClusterRestClient
from ..config import DEFAULT_BUCKET_PROXY_PORT, FALLBACK_CLUSTER_RAM_MB, NodeConfig
from ..host import HostError, HostServices

logger = logging.getLogger(__name__)

DEFAULT_BUCKET_NAME = "default"
CLUSTER_RAM_PERCENT = 75


def calculate_cluster_ram(host: HostServices) -> int:
    """75% of the host's total memory, in MB."""
    total_mb = host.total_memory_mb()
    logger.info(f"Total RAM (MB) on machine: {total_mb}")
    return total_mb * CLUSTER_RAM_PERCENT // 100


class ClusterProvisioner:
    def __init__(self, config: NodeConfig, rest: ClusterRestClient, host: HostServices):
        self.config = config
        self.rest = rest
        self.host = host

    def cluster_init(self):
        """
        Set the admin username and password, then the cluster RAM quota.
        Only the first call uses the factory default credentials.
        """
        logger.info(f"Initializing cluster with admin user {self.config.admin_username}")
        data = {
            "username": self.config.admin_username,
            "password": self.config.admin_password,
            "port": str(self.config.port),
        }
        self.rest.submit_form(
            self.rest.url(self.config.ip, "/settings/web"), data, factory_default_credentials=True
        )
        self.set_cluster_ram()

    def set_cluster_ram(self):
        try:
            ram_mb = calculate_cluster_ram(self.host)
        except HostError as e:
            logger.warning(
                f"Failed to calculate cluster ram: {e}.  Default to {FALLBACK_CLUSTER_RAM_MB} MB"
            )
            ram_mb = FALLBACK_CLUSTER_RAM_MB

        logger.info(f"Attempting to set cluster ram to: {ram_mb} MB")
        self.rest.submit_form(
            self.rest.url(self.config.ip, "/pools/default"), {"memoryQuota": str(ram_mb)}
        )

    def has_default_bucket(self) -> bool:
        buckets = self.rest.fetch_json(self.rest.url(self.config.ip, "/pools/default/buckets"), list)
        for bucket in buckets:
            if isinstance(bucket, dict) and bucket.get("name") == DEFAULT_BUCKET_NAME:
                return True
        return False

    def create_default_bucket(self):
        if self.has_default_bucket():
            logger.info("Default bucket already exists, nothing to do")
            return

        logger.info("Creating default bucket")
        data = {
            "name": DEFAULT_BUCKET_NAME,
            "ramQuotaMB": str(self.config.default_bucket_ram_mb),
            "authType": "none",
            "replicaNumber": str(self.config.default_bucket_replica_number),
            "proxyPort": str(DEFAULT_BUCKET_PROXY_PORT),
        }
        self.rest.submit_form(self.rest.url(self.config.ip, "/pools/default/buckets"), data)
