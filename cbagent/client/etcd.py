"""
Client for the etcd v2 keys API.

Only what the agent needs: directory creation with prevExist=false (the
election primitive), TTL refresh on directories, plain sets and
strongly-consistent reads.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from ..config import DEFAULT_ETCD_SERVER

logger = logging.getLogger(__name__)

ERROR_KEY_NOT_FOUND = 100
ERROR_NODE_EXIST = 105


class CoordinationError(Exception):
    """The coordination store rejected a request or could not be reached."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        self.error_code = error_code
        super().__init__(message)


class KeyAlreadyExists(CoordinationError):
    pass


@dataclass
class EtcdNode:
    key: str
    value: Optional[str] = None
    is_dir: bool = False
    ttl: Optional[int] = None
    nodes: List["EtcdNode"] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "EtcdNode":
        return cls(
            key=data.get("key", ""),
            value=data.get("value"),
            is_dir=bool(data.get("dir", False)),
            ttl=data.get("ttl"),
            nodes=[cls.from_json(child) for child in data.get("nodes") or []],
        )


def _normalize_server(server: str) -> str:
    server = server.strip().rstrip("/")
    if "://" not in server:
        server = f"http://{server}"
    return server


class EtcdClient:
    def __init__(self, servers: Optional[List[str]] = None, timeout: float = 10):
        """
        Args:
            servers: etcd base URLs or host:port pairs, tried in order
            timeout: Per-request timeout in seconds
        """
        self.servers = [_normalize_server(s) for s in (servers or [DEFAULT_ETCD_SERVER])]
        self.timeout = timeout
        self.session = requests.Session()
        logger.info(f"Coordination store servers: {self.servers}")

    def create_dir(self, key: str, ttl: Optional[int] = None) -> EtcdNode:
        """
        Atomically create a directory. Raises KeyAlreadyExists if the key
        is already present.
        """
        data = {"dir": "true", "prevExist": "false"}
        if ttl:
            data["ttl"] = str(ttl)
        return self._write(key, data)

    def update_dir(self, key: str, ttl: int) -> EtcdNode:
        """Refresh the TTL of an existing directory."""
        return self._write(key, {"dir": "true", "prevExist": "true", "ttl": str(ttl)})

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> EtcdNode:
        """Create or overwrite a key."""
        data = {"value": value}
        if ttl:
            data["ttl"] = str(ttl)
        return self._write(key, data)

    def get(self, key: str) -> Optional[EtcdNode]:
        """
        Read a key or directory with a quorum read.
        Returns None when the key does not exist.
        """
        try:
            body = self._request("GET", key, params={"quorum": "true"})
        except CoordinationError as e:
            if e.error_code == ERROR_KEY_NOT_FOUND:
                return None
            raise
        return EtcdNode.from_json(body.get("node") or {"key": key})

    def close(self):
        """Close the session."""
        self.session.close()

    def _write(self, key: str, data: dict) -> EtcdNode:
        body = self._request("PUT", key, data=data)
        return EtcdNode.from_json(body.get("node") or {"key": key})

    def _request(self, method: str, key: str, params: dict = None, data: dict = None) -> dict:
        if not key.startswith("/"):
            key = f"/{key}"

        response = None
        last_error = None
        for server in self.servers:
            try:
                response = self.session.request(
                    method,
                    f"{server}/v2/keys{key}",
                    params=params,
                    data=data,
                    timeout=self.timeout,
                )
                break
            except requests.RequestException as e:
                logger.warning(f"etcd server {server} unreachable: {e}")
                last_error = e

        if response is None:
            raise CoordinationError(
                f"No etcd server reachable ({', '.join(self.servers)}): {last_error}"
            ) from last_error

        try:
            body = response.json()
        except ValueError as e:
            raise CoordinationError(
                f"{method} {key}: non-JSON response (status {response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise CoordinationError(f"{method} {key}: unexpected response {body!r}")

        if 200 <= response.status_code <= 299:
            return body

        error_code = body.get("errorCode")
        message = f"{body.get('message', 'etcd error')} ({body.get('cause', key)})"
        if error_code == ERROR_NODE_EXIST:
            raise KeyAlreadyExists(message, error_code)
        raise CoordinationError(message, error_code)
